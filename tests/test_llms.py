"""Tests for blueolive.core.llms: the litellm wrapper and analysis parsing."""

from unittest.mock import MagicMock, patch

import pytest

from blueolive.core.llms import (
    AnalysisParseError,
    LLMError,
    call_llm,
    extract_json_object,
    normalize_model_name,
    parse_analysis_result,
)


def _make_completion_response(content: str | None = "Hello") -> MagicMock:
    """Build a minimal litellm-style response mock."""
    message = MagicMock()
    message.content = content

    choice = MagicMock()
    choice.message = message

    response = MagicMock()
    response.choices = [choice]
    response.usage.prompt_tokens = 10
    response.usage.completion_tokens = 5
    response._response_ms = 120.0
    response._hidden_params = {"response_cost": 0.001}
    return response


@pytest.fixture()
def mock_completion():
    with patch("blueolive.core.llms.completion") as m:
        m.return_value = _make_completion_response()
        yield m


def test_call_llm_routes_to_provider(mock_completion, monkeypatch):
    monkeypatch.setattr("blueolive.config.settings.gemini_api_key", "gk-test")

    content, stats = call_llm("hello", system_prompt="be brief", model="gemini-2.5-flash")

    kwargs = mock_completion.call_args.kwargs
    assert kwargs["model"] == "gemini/gemini-2.5-flash"
    assert kwargs["api_key"] == "gk-test"
    assert kwargs["messages"] == [
        {"role": "system", "content": "be brief"},
        {"role": "user", "content": "hello"},
    ]
    assert content == "Hello"
    assert stats == {
        "prompt_tokens": 10,
        "completion_tokens": 5,
        "response_ms": 120.0,
        "response_cost": 0.001,
    }


def test_call_llm_strips_date_suffix(mock_completion):
    call_llm("hello", model="gpt-5-mini-2025-08-07")
    assert mock_completion.call_args.kwargs["model"] == "openai/gpt-5-mini"


def test_call_llm_rejects_unsupported_model(mock_completion):
    with pytest.raises(LLMError, match="Unsupported model"):
        call_llm("hello", model="not-a-model")
    mock_completion.assert_not_called()


def test_call_llm_wraps_provider_errors(mock_completion):
    mock_completion.side_effect = RuntimeError("rate limited")
    with pytest.raises(LLMError, match="rate limited"):
        call_llm("hello", model="gpt-4.1")


def test_call_llm_empty_content_is_an_error(mock_completion):
    mock_completion.return_value = _make_completion_response(content=None)
    with pytest.raises(LLMError, match="No content"):
        call_llm("hello", model="gpt-4.1")


def test_normalize_model_name_keeps_unknown_names():
    assert normalize_model_name("claude-haiku-4-5-2025-10-01") == "claude-haiku-4-5"
    assert normalize_model_name("custom-2025-01-01") == "custom-2025-01-01"


def test_extract_json_object_skips_surrounding_prose():
    text = 'Here is the analysis:\n```json\n{"summary": "ok", "phases": []}\n```\nDone.'
    assert extract_json_object(text) == '{"summary": "ok", "phases": []}'


def test_extract_json_object_ignores_braces_inside_strings():
    text = '{"summary": "threatens {Nf7} and \\"}\\" tricks"} trailing {"second": 1}'
    assert extract_json_object(text) == '{"summary": "threatens {Nf7} and \\"}\\" tricks"}'


def test_extract_json_object_returns_first_object_only():
    assert extract_json_object('{"a": {"b": 1}} {"c": 2}') == '{"a": {"b": 1}}'


def test_extract_json_object_without_object():
    assert extract_json_object("I cannot analyse this game.") is None
    assert extract_json_object("") is None


def test_parse_analysis_result(sample_games):
    result = parse_analysis_result(sample_games["analysis_json"])

    assert result.summary.startswith("Ann played")
    assert result.phases[0].name == "Opening"
    assert result.key_moments[0].move_number == 5
    assert result.key_moments[0].is_mistake is False
    assert result.recommendations == ["Study the Moller attack"]


def test_parse_analysis_result_repairs_trailing_commas():
    result = parse_analysis_result(
        'Sure! {"summary": "Solid game", "recommendations": ["Castle earlier",],}'
    )
    assert result.summary == "Solid game"
    assert result.recommendations == ["Castle earlier"]


def test_parse_analysis_result_coerces_numeric_evaluations():
    result = parse_analysis_result(
        '{"summary": "s", "key_moments": [{"move_number": 12, "move": "Qh5", "evaluation": -1.5}]}'
    )
    assert result.key_moments[0].evaluation == "-1.5"


def test_parse_analysis_result_without_json_fails():
    with pytest.raises(AnalysisParseError, match="no JSON object"):
        parse_analysis_result("The game was interesting.")


def test_parse_analysis_result_requires_summary():
    with pytest.raises(AnalysisParseError, match="does not match"):
        parse_analysis_result('{"phases": []}')
