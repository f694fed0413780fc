import pytest

from interpreter import HeuristicInterpreter
from models import Article

_ARTICLES = [Article(pmid=str(i), title=f"Article {i}") for i in range(8)]


@pytest.fixture
def interpreter() -> HeuristicInterpreter:
    return HeuristicInterpreter()


def test_numbered_lines_with_two_details_each(interpreter: HeuristicInterpreter) -> None:
    text = (
        "1. Semaglutide lowers MACE in patients without diabetes\n"
        "This matters because cardiovascular risk persists after weight loss.\n"
        "Validate with a pooled analysis of SELECT and STEP trials.\n"
        "2) Early GLP-1 initiation improves renal outcomes\n"
        "Renal decline is a major cost driver in type 2 diabetes care.\n"
        "Validate using eGFR slopes from FLOW trial subgroups.\n"
    )

    hypotheses = interpreter.parse_hypotheses(text, _ARTICLES)

    assert len(hypotheses) == 2
    first, second = hypotheses
    assert first.statement == "Semaglutide lowers MACE in patients without diabetes"
    assert first.importance == "This matters because cardiovascular risk persists after weight loss."
    assert first.validation == "Validate with a pooled analysis of SELECT and STEP trials."
    assert second.statement == "Early GLP-1 initiation improves renal outcomes"
    assert second.validation == "Validate using eGFR slopes from FLOW trial subgroups."
    assert all(h.passed_review for h in hypotheses)
    assert [a.pmid for a in first.evidence] == ["0", "1", "2", "3", "4"]


def test_hypothesis_label_is_stripped(interpreter: HeuristicInterpreter) -> None:
    text = (
        "**Hypothesis 1:** Tirzepatide reduces hepatic fat more than semaglutide\n"
        "NAFLD is underdiagnosed in the obese population today.\n"
    )

    hypotheses = interpreter.parse_hypotheses(text, _ARTICLES)

    assert len(hypotheses) == 1
    assert hypotheses[0].statement == "Tirzepatide reduces hepatic fat more than semaglutide"
    assert hypotheses[0].importance == "NAFLD is underdiagnosed in the obese population today."
    assert hypotheses[0].validation == ""


def test_short_lines_are_ignored(interpreter: HeuristicInterpreter) -> None:
    text = "1. A testable statement about dosing\nToo short.\n\nStill short line\n"

    hypothesis = interpreter.parse_hypotheses(text, _ARTICLES)[0]

    assert hypothesis.importance == ""
    assert hypothesis.validation == ""


def test_lines_before_first_hypothesis_are_ignored(interpreter: HeuristicInterpreter) -> None:
    text = (
        "Here are some ideas based on the literature you provided.\n"
        "1. Statins reduce dementia risk in older adults\n"
    )

    hypotheses = interpreter.parse_hypotheses(text, _ARTICLES)

    assert len(hypotheses) == 1
    assert hypotheses[0].importance == ""


def test_fallback_hypothesis_when_nothing_parsed(interpreter: HeuristicInterpreter) -> None:
    text = "The evidence base is thin. " * 20

    hypotheses = interpreter.parse_hypotheses(text, _ARTICLES)

    assert len(hypotheses) == 1
    assert hypotheses[0].statement == text[:200]
    assert len(hypotheses[0].statement) == 200
    assert hypotheses[0].passed_review is True


@pytest.mark.parametrize("analysis", [
    "There is Insufficient Evidence to support this hypothesis.",
    "INSUFFICIENT data were available.",
    "Only limited evidence supports a benefit.",
    "LIMITED EVIDENCE from two small trials.",
])
def test_negative_result_detected(interpreter: HeuristicInterpreter, analysis: str) -> None:
    assert interpreter.is_negative_result(analysis) is True


@pytest.mark.parametrize("analysis", [
    "Strong evidence from three RCTs supports the hypothesis.",
    "Evidence is limited to observational cohorts.",
    "",
])
def test_negative_result_not_detected(interpreter: HeuristicInterpreter, analysis: str) -> None:
    assert interpreter.is_negative_result(analysis) is False
