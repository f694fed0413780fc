from __future__ import annotations

import csv
from pathlib import Path

import pytest

from models import Article, SectionType, TaskType
from output_generator import OutputGenerator, slugify

SAMPLE_ARTICLES = [
    Article(
        pmid="111",
        title="Semaglutide and Cardiovascular Outcomes in Obesity",
        authors=["Lincoff AM", "Brown-Frandsen K"],
        journal="N Engl J Med",
        pub_date="2023 Dec 14",
        doi="10.1056/NEJMoa2307563",
        abstract="SELECT trial abstract.",
    ),
    Article(
        pmid="222",
        title="Tirzepatide Once Weekly for the Treatment of Obesity",
        authors=["Jastreboff AM"],
        journal="N Engl J Med",
        pub_date="2022 Jul 21",
    ),
]

SAMPLE_SUMMARY = """1. Key findings overview
- Semaglutide reduced MACE by 20%.
2. Clinical implications
- Consider GLP-1 RAs in secondary prevention.
3. Evidence gaps
4. Stakeholder relevance"""


@pytest.fixture
def generator(tmp_path: Path) -> OutputGenerator:
    return OutputGenerator(tmp_path / "output")


def _references(path: Path) -> list[dict]:
    csv_path = path.with_name(f"{path.stem}_references.csv")
    with csv_path.open(newline="", encoding="utf-8") as fh:
        return list(csv.DictReader(fh))


def test_generate_report_writes_markdown_and_references(generator: OutputGenerator) -> None:
    path = generator.generate_report("GLP-1 CV outcomes", SAMPLE_ARTICLES, SAMPLE_SUMMARY, TaskType.KOL_BRIEFING)

    assert path.exists()
    assert path.parent == generator.output_dir
    assert path.name.startswith("glp_1_cv_outcomes_kol-briefing_")
    text = path.read_text(encoding="utf-8")
    assert text.startswith("# KOL Briefing: GLP-1 CV outcomes")
    assert "- **Articles analyzed:** 2" in text
    assert "Semaglutide reduced MACE by 20%." in text
    assert "1. Lincoff AM, Brown-Frandsen K (2023). Semaglutide and Cardiovascular Outcomes in Obesity." in text

    rows = _references(path)
    assert [row["pmid"] for row in rows] == ["111", "222"]
    assert rows[0]["authors"] == "Lincoff AM; Brown-Frandsen K"
    assert rows[0]["has_abstract"] == "True"
    assert rows[1]["has_abstract"] == "False"
    assert rows[1]["citation"].endswith("PMID: 222")


def test_generate_report_accepts_task_string(generator: OutputGenerator) -> None:
    path = generator.generate_report("aspirin", SAMPLE_ARTICLES, "text", "summary")
    assert path.read_text(encoding="utf-8").startswith("# Literature Summary: aspirin")


def test_generate_paper_includes_drafted_sections_in_order(generator: OutputGenerator) -> None:
    sections = {
        SectionType.DISCUSSION: "Discussion body.",
        SectionType.INTRODUCTION: "Introduction body.",
        SectionType.METHODS: "",
    }

    path = generator.generate_paper("GLP-1 CV outcomes", SAMPLE_ARTICLES, "Abstract body.", sections)

    text = path.read_text(encoding="utf-8")
    assert "## Abstract\n\nAbstract body." in text
    assert text.index("## Introduction") < text.index("## Discussion") < text.index("## References")
    assert "## Methods" not in text
    assert "_paper_" in path.name


def test_generate_slides_splits_into_slides(generator: OutputGenerator) -> None:
    articles = SAMPLE_ARTICLES * 3

    path = generator.generate_slides("GLP-1 CV outcomes", articles, SAMPLE_SUMMARY + "\n5. Budget impact")

    text = path.read_text(encoding="utf-8")
    slides = text.split("\n---\n")
    assert slides[0].startswith("# GLP-1 CV outcomes")
    assert "- Articles analyzed: 6" in slides[1]
    assert "- Publication years: 2022-2023" in slides[1]
    assert "## Key findings\n" in text
    assert "## Key findings (2)" in text
    assert "## References\n" in text
    assert "## References (2)" in text
    assert "- Key findings overview" in text


def test_slugify() -> None:
    assert slugify("GLP-1 agonist: CV outcomes?") == "glp_1_agonist_cv_outcomes"
    assert slugify("???") == "research"
    assert len(slugify("x" * 200)) == 60


def test_output_dir_read_from_env_at_construction(tmp_path: Path, monkeypatch) -> None:
    monkeypatch.setenv("OUTPUT_DIR", str(tmp_path / "from_env"))
    assert OutputGenerator().output_dir == tmp_path / "from_env"
