"""Four-stage multi-agent research pipeline with JSON checkpoints.

Stages run strictly in sequence for one project:

  Ideation   literature search + hypothesis generation
  Planning   methodology per surviving hypothesis
  Execution  evidence analysis per plan (negative results are kept)
  Writing    short draft paper per analysis

Each stage's full output is checkpointed into the project directory before
the next stage starts.
"""

from __future__ import annotations

import logging
from datetime import UTC, datetime
from enum import StrEnum

from errors import EmptyResultError
from interpreter import HeuristicInterpreter, ResponseInterpreter
from models import Article, ExecutionResult, Hypothesis, Paper, PipelineResult, Plan
from pubmed_client import PubMedClient
from venice_client import VeniceClient
from workspace import ProjectWorkspace

LOGGER = logging.getLogger(__name__)

IDEATION_MAX_RESULTS = 20
IDEATION_PROMPT_ARTICLES = 10
ABSTRACT_SNIPPET_LENGTH = 300


class PipelineStage(StrEnum):
    CREATED = "created"
    IDEATION = "ideation"
    PLANNING = "planning"
    EXECUTION = "execution"
    WRITING = "writing"
    DONE = "done"


def _now() -> str:
    return datetime.now(UTC).isoformat()


class IdeationAgent:
    """Literature review and hypothesis generation."""

    def __init__(self, pubmed: PubMedClient, venice: VeniceClient, interpreter: ResponseInterpreter) -> None:
        self.pubmed = pubmed
        self.venice = venice
        self.interpreter = interpreter

    def generate(self, query: str, max_results: int = IDEATION_MAX_RESULTS) -> list[Hypothesis]:
        LOGGER.info("Ideation: searching literature for %r", query)
        articles = self.pubmed.search_and_enrich(query, max_results)
        if not articles:
            raise EmptyResultError("No articles found for query")

        response = self.venice.generate(
            build_ideation_prompt(articles), temperature=0.7, max_tokens=2000
        )
        return self.interpreter.parse_hypotheses(response, articles)


class PlanningAgent:
    def __init__(self, venice: VeniceClient) -> None:
        self.venice = venice

    def create_plan(self, hypothesis: Hypothesis) -> Plan:
        prompt = (
            "Design a research methodology for testing this hypothesis in medical affairs context:\n\n"
            f"HYPOTHESIS: {hypothesis.statement}\n\n"
            "Include: (1) research questions, (2) data sources needed, "
            "(3) analytical methods, (4) success criteria"
        )
        methodology = self.venice.generate(prompt, temperature=0.5, max_tokens=1000)
        return Plan(hypothesis=hypothesis, methodology=methodology)


class ExecutionAgent:
    """Analyzes the evidence for a plan's hypothesis with a second generative pass."""

    def __init__(self, venice: VeniceClient, interpreter: ResponseInterpreter) -> None:
        self.venice = venice
        self.interpreter = interpreter

    def run(self, plan: Plan) -> ExecutionResult:
        LOGGER.info("Execution: analyzing %s...", plan.hypothesis.statement[:50])
        prompt = (
            "Analyze the evidence for this hypothesis and provide findings. "
            "If evidence is insufficient, clearly state this as a finding too (negative result).\n\n"
            f"HYPOTHESIS: {plan.hypothesis.statement}"
        )
        analysis = self.venice.generate(prompt, temperature=0.3, max_tokens=1500)
        return ExecutionResult(
            plan=plan,
            analysis=analysis,
            negative_result=self.interpreter.is_negative_result(analysis),
            timestamp=_now(),
        )


class WritingAgent:
    def __init__(self, venice: VeniceClient) -> None:
        self.venice = venice

    def write(self, result: ExecutionResult) -> Paper:
        prompt = (
            "Write a short, focused research paper (800-1200 words) based on these findings. "
            "Include: Title, Abstract, Introduction, Methods, Results, Discussion, Conclusion. "
            "If findings are negative or inconclusive, report this transparently - "
            "negative results are valuable knowledge.\n\n"
            f"HYPOTHESIS: {result.plan.hypothesis.statement}\n\n"
            f"FINDINGS: {result.analysis}"
        )
        text = self.venice.generate(prompt, temperature=0.5, max_tokens=2000)
        return Paper(
            paper=text,
            hypothesis=result.plan.hypothesis.statement,
            is_negative_result=result.negative_result,
            timestamp=_now(),
        )


class MultiAgentPipeline:
    """Runs ideation -> planning -> execution -> writing for one query."""

    def __init__(
        self,
        pubmed: PubMedClient,
        venice: VeniceClient,
        workspace: ProjectWorkspace,
        interpreter: ResponseInterpreter | None = None,
    ) -> None:
        interpreter = interpreter or HeuristicInterpreter()
        self.workspace = workspace
        self.ideation = IdeationAgent(pubmed, venice, interpreter)
        self.planning = PlanningAgent(venice)
        self.execution = ExecutionAgent(venice, interpreter)
        self.writing = WritingAgent(venice)

    def research(
        self,
        query: str,
        max_results: int = IDEATION_MAX_RESULTS,
        require_human_review: bool = False,
    ) -> PipelineResult:
        """Run every stage; a stage failure ends the run with ``success=False``."""
        result = PipelineResult(
            success=False,
            stage=PipelineStage.CREATED,
            requires_human_review=require_human_review,
        )

        try:
            project = self.workspace.start_project(query, require_human_review=require_human_review)
            result.project = project
            LOGGER.info("[Phase 1] Project %s started", project.project_id)

            result.stage = PipelineStage.IDEATION
            LOGGER.info("[Phase 2] IDEATION: literature review + hypothesis generation")
            hypotheses = self.ideation.generate(query, max_results)
            self.workspace.write_checkpoint(project, "ideation", [h.to_dict() for h in hypotheses])
            result.hypotheses = [h for h in hypotheses if h.passed_review]
            LOGGER.info(
                "Generated %s hypotheses, %s passed review", len(hypotheses), len(result.hypotheses)
            )

            result.stage = PipelineStage.PLANNING
            LOGGER.info("[Phase 3] PLANNING: research methodology design")
            result.plans = [self.planning.create_plan(h) for h in result.hypotheses]
            self.workspace.write_checkpoint(project, "planning", [p.to_dict() for p in result.plans])

            result.stage = PipelineStage.EXECUTION
            LOGGER.info("[Phase 4] EXECUTION: running analyses")
            result.results = [self.execution.run(plan) for plan in result.plans]
            self.workspace.write_checkpoint(project, "execution", [r.to_dict() for r in result.results])

            result.stage = PipelineStage.WRITING
            LOGGER.info("[Phase 5] WRITING: generating research papers")
            result.papers = [self.writing.write(r) for r in result.results]
            self.workspace.write_checkpoint(project, "papers", [p.to_dict() for p in result.papers])
        except Exception as exc:  # broad by design: same failure contract as ResearchAgent
            LOGGER.exception("Pipeline failed during %s for query=%r: %s", result.stage, query, exc)
            result.error = str(exc)
            return result

        if require_human_review:
            LOGGER.warning("[SAFETY] Human review required before distribution")

        result.stage = PipelineStage.DONE
        result.success = True
        LOGGER.info(
            "Pipeline complete: project=%s papers=%s negative_results=%s",
            project.project_id,
            len(result.papers),
            result.negative_result_count,
        )
        return result


def build_ideation_prompt(articles: list[Article]) -> str:
    literature = "\n".join(
        f"- {a.title}" + (f": {a.abstract[:ABSTRACT_SNIPPET_LENGTH]}" if a.abstract else "")
        for a in articles[:IDEATION_PROMPT_ARTICLES]
    )
    return (
        "Based on these medical literature search results, generate 3-5 specific, testable "
        "research hypotheses. For each hypothesis, include: (1) the hypothesis statement, "
        "(2) why it's important, (3) how it could be validated. Also identify any evidence "
        "gaps or negative findings that would be valuable to report.\n\n"
        f"LITERATURE:\n{literature}"
    )
