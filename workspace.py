"""Per-project workspace directory and JSON stage checkpoints."""

from __future__ import annotations

import json
import logging
import os
import time
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

from models import Project

DEFAULT_WORKSPACE_DIR = "./workspace"
PROJECT_SUBDIRS = ("literature", "experiments", "drafts")
INITIAL_CHECKPOINT = "initial"

LOGGER = logging.getLogger(__name__)


class ProjectWorkspace:
    """Shared file system the pipeline stages coordinate through.

    Checkpoints are flat ``<name>.json`` files, never merged or compacted.
    There is no automatic resume: ``load_project`` plus ``read_checkpoint``
    lets an operator pick up a run by hand.
    """

    def __init__(self, root: str | Path | None = None) -> None:
        self.root = Path(root or os.getenv("WORKSPACE_DIR") or DEFAULT_WORKSPACE_DIR)
        self.root.mkdir(parents=True, exist_ok=True)

    def start_project(self, query: str, **extra: Any) -> Project:
        project_id = f"project-{int(time.time() * 1000)}"
        directory = self.root / project_id
        suffix = 1
        while directory.exists():
            directory = self.root / f"{project_id}-{suffix}"
            suffix += 1

        directory.mkdir(parents=True)
        for name in PROJECT_SUBDIRS:
            (directory / name).mkdir()

        project = Project(project_id=directory.name, query=query, directory=directory)
        self.write_checkpoint(
            project,
            INITIAL_CHECKPOINT,
            {"query": query, "started": datetime.now(UTC).isoformat(), **extra},
        )
        LOGGER.info("Started project %s in %s", project.project_id, directory)
        return project

    def write_checkpoint(self, project: Project, name: str, data: Any) -> Path:
        path = project.directory / f"{name}.json"
        path.write_text(dump_checkpoint(data), encoding="utf-8")
        project.state[name] = str(path)
        LOGGER.info("Checkpoint written: project=%s stage=%s", project.project_id, name)
        return path

    def read_checkpoint(self, project: Project, name: str) -> Any | None:
        path = project.directory / f"{name}.json"
        if not path.exists():
            return None
        return json.loads(path.read_text(encoding="utf-8"))

    def load_project(self, project_dir: str | Path) -> Project:
        """Rebuild a Project from its directory for inspection or manual resume."""
        directory = Path(project_dir)
        if not directory.is_absolute() and not directory.exists():
            directory = self.root / directory
        initial_path = directory / f"{INITIAL_CHECKPOINT}.json"
        if not initial_path.exists():
            raise FileNotFoundError(f"No {initial_path.name} in project directory {directory}")

        initial = json.loads(initial_path.read_text(encoding="utf-8"))
        state = {path.stem: str(path) for path in sorted(directory.glob("*.json"))}
        return Project(
            project_id=directory.name,
            query=initial.get("query", ""),
            directory=directory,
            state=state,
        )


def dump_checkpoint(data: Any) -> str:
    """Serialize checkpoint data; reloading and dumping again is byte-identical."""
    return json.dumps(data, indent=2, ensure_ascii=False)
