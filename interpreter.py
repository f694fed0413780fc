"""Heuristic interpretation of free-text model output (no LLM calls)."""

from __future__ import annotations

import re
from collections.abc import Sequence
from typing import Protocol

from models import Article, Hypothesis

# Phrases that mark an analysis as a negative result.
_NEGATIVE_RESULT_TOKENS: frozenset[str] = frozenset({
    "insufficient",
    "limited evidence",
})

_NUMBERED_LINE_RE = re.compile(r"^\d+[.)]")
_NUMBER_PREFIX_RE = re.compile(r"^\d+[.):]\s*")
_HYPOTHESIS_LABEL_RE = re.compile(r"^hypothesis\s*\d*\s*[:.)\-]?\s*", re.IGNORECASE)

FALLBACK_STATEMENT_LENGTH = 200
EVIDENCE_PER_HYPOTHESIS = 5
MIN_DETAIL_LENGTH = 20


class ResponseInterpreter(Protocol):
    """Turns generated text into pipeline records."""

    def parse_hypotheses(self, text: str, articles: Sequence[Article]) -> list[Hypothesis]: ...

    def is_negative_result(self, analysis: str) -> bool: ...


class HeuristicInterpreter:
    """Line-based parsing tuned for numbered model output.

    A hypothesis starts at each numbered line or any line mentioning
    "hypothesis"; the next two lines longer than MIN_DETAIL_LENGTH become its
    importance and validation. Every hypothesis passes review.
    """

    def parse_hypotheses(self, text: str, articles: Sequence[Article]) -> list[Hypothesis]:
        hypotheses: list[Hypothesis] = []
        current: Hypothesis | None = None

        for raw_line in text.split("\n"):
            line = _strip_markdown(raw_line)
            if _starts_hypothesis(line):
                if current is not None:
                    hypotheses.append(current)
                current = Hypothesis(
                    statement=_statement_from(line),
                    evidence=list(articles[:EVIDENCE_PER_HYPOTHESIS]),
                    passed_review=True,
                )
            elif current is not None and len(line) > MIN_DETAIL_LENGTH:
                if not current.importance:
                    current.importance = line
                elif not current.validation:
                    current.validation = line

        if current is not None:
            hypotheses.append(current)

        if not hypotheses:
            return [Hypothesis(statement=text[:FALLBACK_STATEMENT_LENGTH], passed_review=True)]
        return hypotheses

    def is_negative_result(self, analysis: str) -> bool:
        lowered = analysis.lower()
        return any(token in lowered for token in _NEGATIVE_RESULT_TOKENS)


def _strip_markdown(line: str) -> str:
    return line.replace("**", "").strip().lstrip("#").strip()


def _starts_hypothesis(line: str) -> bool:
    return bool(_NUMBERED_LINE_RE.match(line)) or "hypothesis" in line.lower()


def _statement_from(line: str) -> str:
    statement = _NUMBER_PREFIX_RE.sub("", line)
    statement = _HYPOTHESIS_LABEL_RE.sub("", statement)
    return _NUMBER_PREFIX_RE.sub("", statement).strip()
