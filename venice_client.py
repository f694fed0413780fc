"""Venice AI client for synthesis and medical writing.

Venice exposes an OpenAI-compatible chat-completions endpoint, so the OpenAI
SDK is used with a Venice base URL.
"""

from __future__ import annotations

import json
import logging
import os
from collections.abc import Callable, Sequence

import openai
from openai import OpenAI

from errors import NetworkError, UpstreamError
from models import Article, SectionType

DEFAULT_API_BASE_URL = "https://api.venice.ai/api/v1"
DEFAULT_MODEL = "llama-3.3-70b"
DEFAULT_TIMEOUT_SECONDS = 120.0
DEFAULT_MAX_TOKENS = 4000
DEFAULT_TEMPERATURE = 0.7

LOGGER = logging.getLogger(__name__)


class VeniceClient:
    """Prompt templates for medical-affairs writing layered over ``generate``.

    None of the template methods post-process the model output.
    """

    def __init__(
        self,
        api_key: str | None = None,
        model: str | None = None,
        temperature: float | None = None,
        base_url: str | None = None,
        client: OpenAI | None = None,
    ) -> None:
        self.api_key = api_key or os.getenv("VENICE_INFERENCE_KEY") or ""
        self.model = model or os.getenv("VENICE_MODEL") or DEFAULT_MODEL
        self.base_url = base_url or os.getenv("VENICE_API_BASE_URL") or DEFAULT_API_BASE_URL
        self.timeout = float(os.getenv("VENICE_TIMEOUT_SECONDS") or DEFAULT_TIMEOUT_SECONDS)
        self.temperature = DEFAULT_TEMPERATURE if temperature is None else temperature
        if not self.api_key:
            LOGGER.warning("VENICE_INFERENCE_KEY is not set; Venice calls will be rejected upstream")
        self._client = client

    @property
    def client(self) -> OpenAI:
        """SDK client, built on first use; a missing key fails here rather than at construction."""
        if self._client is None:
            if not self.api_key:
                raise UpstreamError("Venice API request rejected: VENICE_INFERENCE_KEY is not set")
            # Retries stay off: a failed call surfaces to the caller immediately.
            self._client = OpenAI(
                api_key=self.api_key,
                base_url=self.base_url,
                max_retries=0,
                timeout=self.timeout,
            )
        return self._client

    def generate(
        self,
        prompt: str,
        model: str | None = None,
        max_tokens: int | None = None,
        temperature: float | None = None,
    ) -> str:
        """Send a single-turn prompt and return the generated text verbatim."""
        model = model or self.model
        max_tokens = max_tokens or DEFAULT_MAX_TOKENS
        temperature = self.temperature if temperature is None else temperature

        LOGGER.debug(
            "Calling Venice model=%s max_tokens=%s temperature=%s", model, max_tokens, temperature
        )
        try:
            response = self.client.chat.completions.create(
                model=model,
                messages=[{"role": "user", "content": prompt}],
                max_tokens=max_tokens,
                temperature=temperature,
            )
        except openai.APIStatusError as exc:
            LOGGER.error("Venice API error: status=%s body=%s", exc.status_code, exc.body)
            raise UpstreamError(
                "Venice API request failed", status_code=exc.status_code, body=exc.body
            ) from exc
        except openai.APIConnectionError as exc:
            LOGGER.error("Venice API connection error: %s", exc)
            raise NetworkError(f"Venice API connection failed: {exc}") from exc

        try:
            content = response.choices[0].message.content
        except (AttributeError, IndexError, TypeError) as exc:
            raise UpstreamError(f"Unexpected Venice response shape: {response}") from exc
        if content is None:
            raise UpstreamError("Venice response did not contain message content")
        return content

    # ------------------------------------------------------------------
    # Medical-affairs templates
    # ------------------------------------------------------------------

    def summarize(self, articles: Sequence[Article], focus_areas: Sequence[str] | None = None) -> str:
        focus_text = ""
        if focus_areas:
            focus_text = "\n\nFocus areas to emphasize: " + ", ".join(focus_areas)

        findings = json.dumps([article.to_dict() for article in articles], indent=2)
        prompt = (
            "You are a Medical Affairs expert specializing in synthesizing clinical research. "
            "Summarize the following PubMed search findings into a coherent scientific summary "
            "suitable for medical affairs purposes (KOL engagement, medical information, HEOR)."
            f"{focus_text}\n\nFINDINGS:\n{findings}\n\n"
            "Provide a structured summary with:\n"
            "1. Key findings overview\n"
            "2. Clinical implications\n"
            "3. Evidence gaps\n"
            "4. Potential stakeholder relevance"
        )
        return self.generate(prompt, temperature=0.5, max_tokens=2000)

    def generate_abstract_text(self, articles: Sequence[Article], topic: str) -> str:
        references = "\n".join(
            f"{i}. {a.title} (PMID: {a.pmid}) - {', '.join(a.authors) or 'Unknown'}"
            for i, a in enumerate(articles, 1)
        )
        prompt = (
            f'Write a professional medical abstract for a literature review on: "{topic}"\n\n'
            f"Based on the following research papers:\n{references}\n\n"
            "Include: Background, Methods, Results summary, Conclusions. "
            "Use standard medical writing style."
        )
        return self.generate(prompt, temperature=0.3, max_tokens=1500)

    def generate_paper_section(
        self,
        topic: str,
        articles: Sequence[Article],
        section: SectionType | str = SectionType.INTRODUCTION,
    ) -> str:
        """Draft one review section; an unknown section raises ValueError."""
        section = SectionType(section)
        builder = _SECTION_PROMPTS.get(section)
        if builder is None:
            raise ValueError(f"No prompt template for section {section!r}")
        return self.generate(builder(topic, articles), temperature=0.5, max_tokens=2500)

    def generate_kol_briefing(self, topic: str, articles: Sequence[Article]) -> str:
        findings = "\n".join(f"- {a.title}" for a in articles)
        prompt = (
            f'Create a Key Opinion Leader (KOL) briefing document on: "{topic}"\n\n'
            f"For each key finding:\n{findings}\n\n"
            "Include:\n"
            "1. Executive summary (2-3 sentences)\n"
            "2. Key insights for HCPs\n"
            "3. Clinical practice implications\n"
            "4. Unmet needs / gaps\n"
            "5. Suggested discussion points\n\n"
            "Write in a professional, concise manner suitable for medical affairs use."
        )
        return self.generate(prompt, temperature=0.5, max_tokens=1500)

    def generate_competitive_analysis(self, drugs: Sequence[str], articles: Sequence[Article]) -> str:
        evidence = "\n".join(f"- {a.title}: {_snippet(a.abstract, 300)}" for a in articles)
        prompt = (
            f"Create a competitive intelligence analysis comparing: {', '.join(drugs)}\n\n"
            f"Evidence from literature:\n{evidence}\n\n"
            "Include:\n"
            "1. Efficacy comparison\n"
            "2. Safety profile comparison\n"
            "3. Market positioning\n"
            "4. Research gaps by competitor\n"
            "5. Strategic implications"
        )
        return self.generate(prompt, temperature=0.5, max_tokens=2000)

    def generate_medical_info_response(self, query: str, articles: Sequence[Article]) -> str:
        evidence = "\n\n".join(f"PMID {a.pmid}: {a.title}. {a.abstract}" for a in articles)
        prompt = (
            f'Draft a medical information response to this inquiry: "{query}"\n\n'
            f"Relevant published evidence:\n{evidence}\n\n"
            "Include:\n"
            "1. Brief response statement\n"
            "2. Summary of evidence\n"
            "3. Citations (PMID)\n"
            "4. Disclaimer\n\n"
            "Write in compliant medical information style."
        )
        return self.generate(prompt, temperature=0.3, max_tokens=1000)


def _snippet(text: str, max_len: int) -> str:
    return text[:max_len] if text else "N/A"


def _introduction_prompt(topic: str, articles: Sequence[Article]) -> str:
    titles = ", ".join(a.title for a in articles)
    return (
        f'Write an Introduction section for a medical literature review on: "{topic}". '
        f"Based on: {titles}. "
        "Include background, rationale, and what this review addresses."
    )


def _methods_prompt(topic: str, articles: Sequence[Article]) -> str:
    return (
        "Write a Methods section describing how a systematic literature review was conducted. "
        f"Search terms: {topic}. Databases: PubMed, EMBASE, Cochrane. "
        f"{len(articles)} records were retrieved. "
        "Include search strategy, inclusion/exclusion criteria."
    )


def _results_prompt(topic: str, articles: Sequence[Article]) -> str:
    findings = "\n".join(f"- {a.title}: {_snippet(a.abstract, 500)}" for a in articles)
    return (
        f"Write a Results section summarizing these findings:\n{findings}\n"
        "Present key findings, study characteristics, outcomes."
    )


def _discussion_prompt(topic: str, articles: Sequence[Article]) -> str:
    return (
        f'Write a Discussion section for: "{topic}". Synthesize the findings, compare with '
        "existing literature, discuss clinical implications, limitations, and conclusions."
    )


_SECTION_PROMPTS: dict[SectionType, Callable[[str, Sequence[Article]], str]] = {
    SectionType.INTRODUCTION: _introduction_prompt,
    SectionType.METHODS: _methods_prompt,
    SectionType.RESULTS: _results_prompt,
    SectionType.DISCUSSION: _discussion_prompt,
}
