"""Markdown document writers for research outputs.

Every document is written as ``<slug>_<task>_<timestamp>.md`` inside the
output directory, next to a ``_references.csv`` listing the cited articles
so they open cleanly in Excel / Numbers / Google Sheets.
"""

from __future__ import annotations

import csv
import logging
import os
import re
from collections.abc import Mapping, Sequence
from datetime import UTC, datetime
from pathlib import Path

from models import Article, SectionType, TaskType
from pubmed_client import format_citation

DEFAULT_OUTPUT_DIR = "./output"

LOGGER = logging.getLogger(__name__)

REFERENCE_COLUMNS = [
    "rank",
    "pmid",
    "title",
    "authors",
    "journal",
    "pub_date",
    "doi",
    "has_abstract",
    "citation",
]

BULLETS_PER_SLIDE = 6
REFERENCES_PER_SLIDE = 5

_TASK_TITLES: dict[TaskType, str] = {
    TaskType.SUMMARY: "Literature Summary",
    TaskType.ABSTRACT: "Literature Review Abstract",
    TaskType.KOL_BRIEFING: "KOL Briefing",
    TaskType.COMPETITIVE: "Competitive Intelligence Analysis",
    TaskType.MEDICAL_INFO: "Medical Information Response",
    TaskType.PAPER: "Literature Review",
    TaskType.SLIDES: "Slide Outline",
}

_SLUG_RE = re.compile(r"[^a-z0-9]+")


class OutputGenerator:
    """Formats and persists one document per research run."""

    def __init__(self, output_dir: str | Path | None = None) -> None:
        self.output_dir = Path(output_dir or os.getenv("OUTPUT_DIR") or DEFAULT_OUTPUT_DIR)

    def generate_report(
        self,
        query: str,
        articles: Sequence[Article],
        summary: str,
        task_type: TaskType | str = TaskType.SUMMARY,
    ) -> Path:
        task_type = TaskType(task_type)
        lines = [
            f"# {_TASK_TITLES[task_type]}: {query}",
            "",
            *_metadata_lines(query, articles),
            "",
            "## Analysis",
            "",
            summary.strip(),
            "",
            *_reference_lines(articles),
        ]
        return self._write(query, task_type, lines, articles)

    def generate_paper(
        self,
        query: str,
        articles: Sequence[Article],
        summary: str,
        sections: Mapping[SectionType, str] | None = None,
    ) -> Path:
        sections = sections or {}
        lines = [
            f"# {_TASK_TITLES[TaskType.PAPER]}: {query}",
            "",
            *_metadata_lines(query, articles),
            "",
            "## Abstract",
            "",
            summary.strip(),
            "",
        ]
        for section in SectionType:
            text = sections.get(section)
            if not text:
                continue
            lines.extend([f"## {section.value.title()}", "", text.strip(), ""])
        lines.extend(_reference_lines(articles))
        return self._write(query, TaskType.PAPER, lines, articles)

    def generate_slides(self, query: str, articles: Sequence[Article], summary: str) -> Path:
        """Slide-text outline: one ``---`` separated block per slide."""
        slides: list[list[str]] = [
            [f"# {query}", "", "Medical Affairs literature review", f"_{_today()}_"],
            [
                "## Search overview",
                "",
                f"- Articles analyzed: {len(articles)}",
                f"- Abstracts retrieved: {sum(1 for a in articles if a.abstract)}",
                f"- Publication years: {_year_range(articles)}",
            ],
        ]

        bullets = _summary_bullets(summary)
        for index, chunk in enumerate(_chunks(bullets, BULLETS_PER_SLIDE), 1):
            heading = "## Key findings" if index == 1 else f"## Key findings ({index})"
            slides.append([heading, "", *(f"- {bullet}" for bullet in chunk)])

        for index, chunk in enumerate(_chunks(list(articles), REFERENCES_PER_SLIDE), 1):
            heading = "## References" if index == 1 else f"## References ({index})"
            slides.append([heading, "", *(f"- {format_citation(a)}" for a in chunk)])

        lines: list[str] = []
        for slide_index, slide in enumerate(slides):
            if slide_index:
                lines.extend(["", "---", ""])
            lines.extend(slide)
        return self._write(query, TaskType.SLIDES, lines, articles)

    def _write(
        self,
        query: str,
        task_type: TaskType,
        lines: list[str],
        articles: Sequence[Article],
    ) -> Path:
        self.output_dir.mkdir(parents=True, exist_ok=True)
        stem = f"{slugify(query)}_{task_type.value}_{datetime.now(UTC).strftime('%Y%m%dT%H%M%S')}"
        path = self.output_dir / f"{stem}.md"
        path.write_text("\n".join(lines).rstrip() + "\n", encoding="utf-8")

        write_references_csv(articles, self.output_dir / f"{stem}_references.csv")
        LOGGER.info("Wrote %s document to %s", task_type.value, path)
        return path


def write_references_csv(articles: Sequence[Article], path: Path) -> None:
    rows = [
        {
            "rank": rank,
            "pmid": article.pmid,
            "title": article.title,
            "authors": "; ".join(article.authors),
            "journal": article.journal,
            "pub_date": article.pub_date,
            "doi": article.doi,
            "has_abstract": bool(article.abstract),
            "citation": format_citation(article),
        }
        for rank, article in enumerate(articles, 1)
    ]
    with path.open("w", newline="", encoding="utf-8") as fh:
        writer = csv.DictWriter(fh, fieldnames=REFERENCE_COLUMNS)
        writer.writeheader()
        writer.writerows(rows)


def slugify(text: str, max_len: int = 60) -> str:
    """Filesystem-safe slug used to name output files."""
    slug = _SLUG_RE.sub("_", text.lower()).strip("_")
    return slug[:max_len].rstrip("_") or "research"


def _metadata_lines(query: str, articles: Sequence[Article]) -> list[str]:
    return [
        f"- **Query:** {query}",
        f"- **Generated:** {_today()}",
        f"- **Articles analyzed:** {len(articles)}",
        "- **Source:** PubMed",
    ]


def _reference_lines(articles: Sequence[Article]) -> list[str]:
    lines = ["## References", ""]
    lines.extend(f"{i}. {format_citation(a)}" for i, a in enumerate(articles, 1))
    return lines


def _summary_bullets(summary: str) -> list[str]:
    bullets: list[str] = []
    for raw in summary.splitlines():
        line = raw.strip().lstrip("-*#").strip()
        line = re.sub(r"^\d+[.)]\s*", "", line)
        if line:
            bullets.append(line)
    return bullets


def _chunks(items: list, size: int) -> list[list]:
    return [items[i : i + size] for i in range(0, len(items), size)]


def _year_range(articles: Sequence[Article]) -> str:
    years = sorted(a.year for a in articles if a.year.isdigit())
    if not years:
        return "n.d."
    return years[0] if years[0] == years[-1] else f"{years[0]}-{years[-1]}"


def _today() -> str:
    return datetime.now(UTC).date().isoformat()
