"""Single-shot research workflow: PubMed search -> Venice synthesis -> document."""

from __future__ import annotations

import logging
import time
from pathlib import Path

from errors import EmptyResultError
from models import AbstractRecord, Article, ResearchOptions, ResearchResult, SectionType, TaskType
from output_generator import OutputGenerator
from pubmed_client import PubMedClient
from venice_client import VeniceClient

LOGGER = logging.getLogger(__name__)

MEDICAL_INFO_MAX_ARTICLES = 5
NO_ARTICLES_MESSAGE = "No articles found for query"


class ResearchAgent:
    """Composes the literature and generative clients with the document writer."""

    def __init__(self, pubmed: PubMedClient, venice: VeniceClient, output: OutputGenerator) -> None:
        self.pubmed = pubmed
        self.venice = venice
        self.output = output

    def research(
        self,
        query: str,
        task_type: TaskType | str = TaskType.SUMMARY,
        options: ResearchOptions | None = None,
    ) -> ResearchResult:
        """Run search, synthesis, formatting and reporting for one query.

        Never raises for stage failures: any error is turned into a
        ``ResearchResult`` with ``success=False``.
        """
        options = options or ResearchOptions()
        started = time.monotonic()
        LOGGER.info("Research run: query=%r task=%s", query, task_type)

        try:
            task_type = TaskType(task_type)

            LOGGER.info("[1/4] Searching PubMed...")
            articles = self._search(query, options)
            LOGGER.info("Found %s articles", len(articles))
            if not articles:
                raise EmptyResultError(NO_ARTICLES_MESSAGE)

            LOGGER.info("[2/4] Analyzing with Venice AI...")
            summary = self._synthesize(query, task_type, articles, options)

            LOGGER.info("[3/4] Generating output...")
            output_path = self._format(query, task_type, articles, summary)
            LOGGER.info("Output saved to: %s", output_path)
        except Exception as exc:  # broad by design: the workflow always returns a result
            LOGGER.exception("Research run failed for query=%r: %s", query, exc)
            return ResearchResult(success=False, error=str(exc))

        duration = round(time.monotonic() - started, 1)
        LOGGER.info(
            "[4/4] Complete: articles=%s duration=%ss output=%s", len(articles), duration, output_path
        )
        return ResearchResult(
            success=True,
            query=query,
            task_type=task_type,
            articles=articles,
            summary=summary,
            output_path=output_path,
            duration_seconds=duration,
        )

    def quick_search(self, query: str, max_results: int = 10) -> list[Article]:
        return self.pubmed.search_and_enrich(query, max_results)

    def get_abstract(self, pmid: str) -> AbstractRecord:
        return self.pubmed.fetch_abstract(pmid)

    def _search(self, query: str, options: ResearchOptions) -> list[Article]:
        if options.clinical_only:
            if options.recent_years:
                LOGGER.warning("Both clinical and recent filters set; using the clinical-trial filter")
            return self.pubmed.search_clinical_trials(query, options.phase)
        if options.recent_years:
            return self.pubmed.search_recent(query, options.recent_years)
        return self.pubmed.search_and_enrich(query, options.max_results)

    def _synthesize(
        self,
        query: str,
        task_type: TaskType,
        articles: list[Article],
        options: ResearchOptions,
    ) -> str:
        if task_type is TaskType.ABSTRACT:
            return self.venice.generate_abstract_text(articles, query)
        if task_type is TaskType.KOL_BRIEFING:
            return self.venice.generate_kol_briefing(query, articles)
        if task_type is TaskType.COMPETITIVE:
            return self.venice.generate_competitive_analysis(options.drugs, articles)
        if task_type is TaskType.MEDICAL_INFO:
            return self.venice.generate_medical_info_response(
                query, articles[:MEDICAL_INFO_MAX_ARTICLES]
            )
        if task_type in (TaskType.SUMMARY, TaskType.PAPER, TaskType.SLIDES):
            return self.venice.summarize(articles, options.focus_areas)
        raise ValueError(f"Unsupported task type: {task_type!r}")

    def _format(self, query: str, task_type: TaskType, articles: list[Article], summary: str) -> Path:
        if task_type is TaskType.PAPER:
            sections = {
                section: self.venice.generate_paper_section(query, articles, section)
                for section in SectionType
            }
            return self.output.generate_paper(query, articles, summary, sections)
        if task_type is TaskType.SLIDES:
            return self.output.generate_slides(query, articles, summary)
        return self.output.generate_report(query, articles, summary, task_type)
