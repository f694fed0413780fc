"""Shared typed models for the research assistant."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum
from pathlib import Path
from typing import Any


class TaskType(StrEnum):
    """Document kinds the single-shot research workflow can produce."""

    SUMMARY = "summary"
    ABSTRACT = "abstract"
    KOL_BRIEFING = "kol-briefing"
    COMPETITIVE = "competitive"
    MEDICAL_INFO = "medical-info"
    PAPER = "paper"
    SLIDES = "slides"


class SectionType(StrEnum):
    INTRODUCTION = "introduction"
    METHODS = "methods"
    RESULTS = "results"
    DISCUSSION = "discussion"


@dataclass(slots=True)
class Article:
    """One PubMed search hit.

    ``abstract`` stays an empty string until enrichment merges the efetch
    text in place.
    """

    pmid: str
    title: str
    authors: list[str] = field(default_factory=list)
    journal: str = ""
    pub_date: str = ""
    source: str = ""
    doi: str = ""
    abstract: str = ""
    mesh_terms: list[str] = field(default_factory=list)

    @property
    def year(self) -> str:
        return self.pub_date[:4]

    def to_dict(self) -> dict[str, Any]:
        return {
            "pmid": self.pmid,
            "title": self.title,
            "authors": list(self.authors),
            "journal": self.journal,
            "pub_date": self.pub_date,
            "source": self.source,
            "doi": self.doi,
            "abstract": self.abstract,
            "mesh_terms": list(self.mesh_terms),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Article:
        return cls(
            pmid=str(data.get("pmid", "")),
            title=data.get("title", ""),
            authors=list(data.get("authors") or []),
            journal=data.get("journal", ""),
            pub_date=data.get("pub_date", ""),
            source=data.get("source", ""),
            doi=data.get("doi", ""),
            abstract=data.get("abstract", ""),
            mesh_terms=list(data.get("mesh_terms") or []),
        )


@dataclass(frozen=True, slots=True)
class AbstractRecord:
    """Best-effort result of a single efetch call; ``error`` is set on failure."""

    pmid: str
    abstract: str = ""
    title: str | None = None
    pub_year: str | None = None
    mesh_terms: tuple[str, ...] = ()
    error: str | None = None


@dataclass(slots=True)
class Hypothesis:
    statement: str
    importance: str = ""
    validation: str = ""
    evidence: list[Article] = field(default_factory=list)
    passed_review: bool = True

    def to_dict(self) -> dict[str, Any]:
        return {
            "statement": self.statement,
            "importance": self.importance,
            "validation": self.validation,
            "evidence": [article.to_dict() for article in self.evidence],
            "passed_review": self.passed_review,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Hypothesis:
        return cls(
            statement=data.get("statement", ""),
            importance=data.get("importance", ""),
            validation=data.get("validation", ""),
            evidence=[Article.from_dict(item) for item in data.get("evidence") or []],
            passed_review=bool(data.get("passed_review", True)),
        )


DEFAULT_DATA_SOURCES: tuple[str, ...] = ("PubMed", "ClinicalTrials.gov", "Internal data")


@dataclass(slots=True)
class Plan:
    hypothesis: Hypothesis
    methodology: str
    data_sources: list[str] = field(default_factory=lambda: list(DEFAULT_DATA_SOURCES))
    timeline: str = "Auto-estimated"

    def to_dict(self) -> dict[str, Any]:
        return {
            "hypothesis": self.hypothesis.to_dict(),
            "methodology": self.methodology,
            "data_sources": list(self.data_sources),
            "timeline": self.timeline,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Plan:
        return cls(
            hypothesis=Hypothesis.from_dict(data.get("hypothesis") or {}),
            methodology=data.get("methodology", ""),
            data_sources=list(data.get("data_sources") or DEFAULT_DATA_SOURCES),
            timeline=data.get("timeline", "Auto-estimated"),
        )


@dataclass(slots=True)
class ExecutionResult:
    plan: Plan
    analysis: str
    negative_result: bool
    timestamp: str
    status: str = "completed"

    def to_dict(self) -> dict[str, Any]:
        return {
            "plan": self.plan.to_dict(),
            "analysis": self.analysis,
            "status": self.status,
            "negative_result": self.negative_result,
            "timestamp": self.timestamp,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ExecutionResult:
        return cls(
            plan=Plan.from_dict(data.get("plan") or {}),
            analysis=data.get("analysis", ""),
            negative_result=bool(data.get("negative_result", False)),
            timestamp=data.get("timestamp", ""),
            status=data.get("status", "completed"),
        )


@dataclass(slots=True)
class Paper:
    """Draft paper produced by the writing stage."""

    paper: str
    hypothesis: str
    is_negative_result: bool
    timestamp: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "paper": self.paper,
            "hypothesis": self.hypothesis,
            "is_negative_result": self.is_negative_result,
            "timestamp": self.timestamp,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Paper:
        return cls(
            paper=data.get("paper", ""),
            hypothesis=data.get("hypothesis", ""),
            is_negative_result=bool(data.get("is_negative_result", False)),
            timestamp=data.get("timestamp", ""),
        )


@dataclass(slots=True)
class Project:
    project_id: str
    query: str
    directory: Path
    state: dict[str, str] = field(default_factory=dict)


@dataclass(slots=True)
class ResearchOptions:
    """Search and synthesis knobs for one research run.

    ``clinical_only`` wins over ``recent_years`` when both are set.
    """

    clinical_only: bool = False
    phase: str | None = None
    recent_years: int | None = None
    max_results: int = 15
    focus_areas: list[str] = field(default_factory=list)
    drugs: list[str] = field(default_factory=list)


@dataclass(slots=True)
class ResearchResult:
    success: bool
    query: str = ""
    task_type: TaskType | None = None
    articles: list[Article] = field(default_factory=list)
    summary: str = ""
    output_path: Path | None = None
    duration_seconds: float = 0.0
    error: str | None = None

    def to_dict(self) -> dict[str, Any]:
        if not self.success:
            return {"success": False, "error": self.error}
        return {
            "success": True,
            "query": self.query,
            "task_type": str(self.task_type) if self.task_type else None,
            "articles": [article.to_dict() for article in self.articles],
            "summary": self.summary,
            "output_path": str(self.output_path) if self.output_path else None,
            "duration_seconds": self.duration_seconds,
        }


@dataclass(slots=True)
class PipelineResult:
    success: bool
    stage: str
    project: Project | None = None
    hypotheses: list[Hypothesis] = field(default_factory=list)
    plans: list[Plan] = field(default_factory=list)
    results: list[ExecutionResult] = field(default_factory=list)
    papers: list[Paper] = field(default_factory=list)
    requires_human_review: bool = False
    error: str | None = None

    @property
    def negative_result_count(self) -> int:
        return sum(1 for result in self.results if result.negative_result)
