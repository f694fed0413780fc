from unittest.mock import MagicMock, patch

import httpx
import openai
import pytest

from errors import NetworkError, UpstreamError
from models import Article, SectionType
from venice_client import DEFAULT_MAX_TOKENS, DEFAULT_TEMPERATURE, VeniceClient

_URL = "https://api.venice.ai/api/v1/chat/completions"

_ARTICLES = [
    Article(pmid="111", title="Semaglutide and MACE", authors=["Lincoff AM"], abstract="A" * 800),
    Article(pmid="222", title="Tirzepatide in obesity", authors=[], abstract=""),
]


def _completion(content: str | None) -> MagicMock:
    choice = MagicMock()
    choice.message.content = content
    response = MagicMock()
    response.choices = [choice]
    return response


def _client(content: str | None = "generated text") -> tuple[VeniceClient, MagicMock]:
    sdk = MagicMock()
    sdk.chat.completions.create.return_value = _completion(content)
    return VeniceClient(api_key="test-key", model="test-model", client=sdk), sdk


def test_generate_returns_message_content_verbatim() -> None:
    venice, sdk = _client("  Raw model output.\n")

    assert venice.generate("Hello") == "  Raw model output.\n"

    kwargs = sdk.chat.completions.create.call_args.kwargs
    assert kwargs["model"] == "test-model"
    assert kwargs["messages"] == [{"role": "user", "content": "Hello"}]
    assert kwargs["max_tokens"] == DEFAULT_MAX_TOKENS
    assert kwargs["temperature"] == DEFAULT_TEMPERATURE


def test_generate_honours_zero_temperature() -> None:
    venice, sdk = _client()

    venice.generate("Hello", temperature=0.0, max_tokens=10, model="other")

    kwargs = sdk.chat.completions.create.call_args.kwargs
    assert kwargs["temperature"] == 0.0
    assert kwargs["max_tokens"] == 10
    assert kwargs["model"] == "other"


def test_generate_raises_upstream_error_with_status_on_http_500() -> None:
    venice, sdk = _client()
    response = httpx.Response(500, request=httpx.Request("POST", _URL))
    sdk.chat.completions.create.side_effect = openai.InternalServerError(
        "Internal Server Error", response=response, body={"error": "boom"}
    )

    with pytest.raises(UpstreamError) as excinfo:
        venice.generate("Hello")

    assert excinfo.value.status_code == 500
    assert excinfo.value.body == {"error": "boom"}
    assert "500" in str(excinfo.value)


def test_generate_raises_network_error_on_connection_failure() -> None:
    venice, sdk = _client()
    sdk.chat.completions.create.side_effect = openai.APIConnectionError(
        request=httpx.Request("POST", _URL)
    )

    with pytest.raises(NetworkError):
        venice.generate("Hello")


def test_generate_raises_upstream_error_on_missing_content() -> None:
    venice, _ = _client(None)

    with pytest.raises(UpstreamError):
        venice.generate("Hello")


def test_generate_raises_upstream_error_on_empty_choices() -> None:
    venice, sdk = _client()
    sdk.chat.completions.create.return_value = MagicMock(choices=[])

    with pytest.raises(UpstreamError):
        venice.generate("Hello")


def test_client_reads_env_and_disables_retries() -> None:
    env = {
        "VENICE_INFERENCE_KEY": "env-key",
        "VENICE_MODEL": "env-model",
        "VENICE_API_BASE_URL": "https://venice.example/v1",
        "VENICE_TIMEOUT_SECONDS": "15",
    }
    with patch("venice_client.OpenAI") as mock_openai, patch.dict("os.environ", env):
        venice = VeniceClient()
        mock_openai.assert_not_called()
        mock_openai.return_value.chat.completions.create.return_value = _completion("ok")
        venice.generate("Hello")

    assert venice.api_key == "env-key"
    kwargs = mock_openai.call_args.kwargs
    assert kwargs["api_key"] == "env-key"
    assert kwargs["base_url"] == "https://venice.example/v1"
    assert kwargs["timeout"] == 15.0
    assert kwargs["max_retries"] == 0
    assert mock_openai.return_value.chat.completions.create.call_args.kwargs["model"] == "env-model"


def test_missing_key_fails_on_first_call_not_construction() -> None:
    with patch.dict("os.environ", {}, clear=True):
        venice = VeniceClient()

        with pytest.raises(UpstreamError, match="VENICE_INFERENCE_KEY"):
            venice.generate("Hello")

    assert venice.api_key == ""


def test_summarize_includes_focus_areas_and_findings() -> None:
    venice, sdk = _client()

    venice.summarize(_ARTICLES, ["cardiovascular safety", "HEOR"])

    kwargs = sdk.chat.completions.create.call_args.kwargs
    prompt = kwargs["messages"][0]["content"]
    assert "Focus areas to emphasize: cardiovascular safety, HEOR" in prompt
    assert '"pmid": "111"' in prompt
    assert kwargs["temperature"] == 0.5
    assert kwargs["max_tokens"] == 2000


def test_generate_abstract_text_lists_references() -> None:
    venice, sdk = _client()

    venice.generate_abstract_text(_ARTICLES, "GLP-1 outcomes")

    kwargs = sdk.chat.completions.create.call_args.kwargs
    prompt = kwargs["messages"][0]["content"]
    assert "1. Semaglutide and MACE (PMID: 111) - Lincoff AM" in prompt
    assert "2. Tirzepatide in obesity (PMID: 222) - Unknown" in prompt
    assert kwargs["temperature"] == 0.3


@pytest.mark.parametrize("section, marker", [
    (SectionType.INTRODUCTION, "Introduction section"),
    (SectionType.METHODS, "Methods section"),
    ("results", "Results section"),
    ("discussion", "Discussion section"),
])
def test_generate_paper_section_selects_template(section: SectionType | str, marker: str) -> None:
    venice, sdk = _client()

    venice.generate_paper_section("GLP-1 outcomes", _ARTICLES, section)

    kwargs = sdk.chat.completions.create.call_args.kwargs
    assert marker in kwargs["messages"][0]["content"]
    assert kwargs["max_tokens"] == 2500


def test_generate_paper_section_results_truncates_abstracts() -> None:
    venice, sdk = _client()

    venice.generate_paper_section("topic", _ARTICLES, SectionType.RESULTS)

    prompt = sdk.chat.completions.create.call_args.kwargs["messages"][0]["content"]
    assert "A" * 500 in prompt
    assert "A" * 501 not in prompt
    assert "- Tirzepatide in obesity: N/A" in prompt


def test_generate_paper_section_rejects_unknown_section() -> None:
    venice, sdk = _client()

    with pytest.raises(ValueError):
        venice.generate_paper_section("topic", _ARTICLES, "conclusion")

    sdk.chat.completions.create.assert_not_called()


def test_competitive_and_medical_info_prompts() -> None:
    venice, sdk = _client()

    venice.generate_competitive_analysis(["semaglutide", "tirzepatide"], _ARTICLES)
    competitive = sdk.chat.completions.create.call_args.kwargs
    assert "comparing: semaglutide, tirzepatide" in competitive["messages"][0]["content"]
    assert competitive["temperature"] == 0.5

    venice.generate_medical_info_response("Is semaglutide safe?", _ARTICLES)
    medinfo = sdk.chat.completions.create.call_args.kwargs
    assert "PMID 111: Semaglutide and MACE." in medinfo["messages"][0]["content"]
    assert medinfo["temperature"] == 0.3
    assert medinfo["max_tokens"] == 1000


def test_kol_briefing_prompt() -> None:
    venice, sdk = _client()

    venice.generate_kol_briefing("GLP-1 outcomes", _ARTICLES)

    prompt = sdk.chat.completions.create.call_args.kwargs["messages"][0]["content"]
    assert "Key Opinion Leader (KOL) briefing" in prompt
    assert "- Semaglutide and MACE" in prompt
