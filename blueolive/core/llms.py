import json
import logging
import re
from typing import Any

import json_repair
from litellm import completion
from pydantic import ValidationError

from blueolive.config import settings
from blueolive.core.model_resolver import TaskType, get_api_keys, resolve_model
from blueolive.models.pydantic_models.analysis import AnalysisResult

logger = logging.getLogger(__name__)

SUPPORTED_LLM_MODELS = [
    {"provider": "openai", "model_name": "gpt-5.2"},
    {"provider": "openai", "model_name": "gpt-5-mini"},
    {"provider": "openai", "model_name": "gpt-5"},
    {"provider": "openai", "model_name": "gpt-4.1"},
    {"provider": "anthropic", "model_name": "claude-sonnet-4-5"},
    {"provider": "anthropic", "model_name": "claude-haiku-4-5"},
    {"provider": "gemini", "model_name": "gemini-2.5-flash"},
    {"provider": "gemini", "model_name": "gemini-2.5-flash-lite"},
    {"provider": "gemini", "model_name": "gemini-2.5-pro"},
]
SUPPORTED_LLM_MODEL_NAMES = {item["model_name"] for item in SUPPORTED_LLM_MODELS}
LLM_PROVIDER_BY_MODEL = {
    item["model_name"]: item["provider"] for item in SUPPORTED_LLM_MODELS
}

# Pattern to strip date suffixes like "-2025-08-07" from versioned model names
_DATE_SUFFIX_RE = re.compile(r"-\d{4}-\d{2}-\d{2}$")


class LLMError(Exception):
    """The model call failed or returned nothing usable."""


class AnalysisParseError(ValueError):
    """The model replied, but not with a usable analysis object."""


def normalize_model_name(model_name: str) -> str:
    """Strip date-version suffix (e.g. '-2025-08-07') from a model name."""
    base = _DATE_SUFFIX_RE.sub("", model_name)
    if base in SUPPORTED_LLM_MODEL_NAMES:
        return base
    return model_name


def call_llm(
    input_text: str,
    system_prompt: str | None = None,
    model: str | None = None,
    max_tokens: int | None = None,
    request_kwargs: dict | None = None,
    messages: list[dict[str, Any]] | None = None,
) -> tuple[str, dict]:
    """
    Call an LLM and return the response along with usage metrics.

    Returns:
        tuple: (content, stats_dict) where stats_dict contains:
            - prompt_tokens: int
            - completion_tokens: int
            - response_ms: float
            - response_cost: float
    """
    if messages is None:
        messages = []
        if system_prompt:
            messages.append({"role": "system", "content": system_prompt})
        messages.append({"role": "user", "content": input_text})

    selected_model_name = (
        normalize_model_name(model) if model else resolve_model(TaskType.DEFAULT)
    )
    if selected_model_name not in SUPPORTED_LLM_MODEL_NAMES:
        raise LLMError(f"Unsupported model: {selected_model_name}")

    provider = LLM_PROVIDER_BY_MODEL[selected_model_name]
    completion_kwargs: dict = {
        "model": f"{provider}/{selected_model_name}",
        "messages": messages,
        "max_tokens": max_tokens or settings.llm_max_tokens,
    }
    api_key = get_api_keys().get(provider)
    if api_key:
        completion_kwargs["api_key"] = api_key

    try:
        response = completion(**completion_kwargs, **(request_kwargs or {}))
    except Exception as e:
        raise LLMError(f"Error calling LLM: {str(e)}") from e

    content = response.choices[0].message.content
    if not content:
        raise LLMError("No content received from LLM")

    usage = getattr(response, "usage", None)
    hidden_params = getattr(response, "_hidden_params", None) or {}
    stats = {
        "prompt_tokens": getattr(usage, "prompt_tokens", None),
        "completion_tokens": getattr(usage, "completion_tokens", None),
        "response_ms": getattr(response, "_response_ms", None),
        "response_cost": hidden_params.get("response_cost"),
    }
    return content.strip(), stats


def extract_json_object(text: str) -> str | None:
    """Return the first balanced ``{...}`` block in *text*, or None without a brace.

    Braces inside JSON string literals are ignored, so a comment such as
    ``"threatens {Nf7}"`` does not end the object early. Models often wrap
    the object in prose or markdown fences; those are skipped.
    """
    start = text.find("{") if text else -1
    if start == -1:
        return None

    depth = 0
    in_string = False
    escaped = False
    for index in range(start, len(text)):
        char = text[index]
        if in_string:
            if escaped:
                escaped = False
            elif char == "\\":
                escaped = True
            elif char == '"':
                in_string = False
            continue
        if char == '"':
            in_string = True
        elif char == "{":
            depth += 1
        elif char == "}":
            depth -= 1
            if depth == 0:
                return text[start : index + 1]
    # Unbalanced: hand back the tail so a truncated reply can still be repaired
    return text[start:]


def try_json_parsing(json_data: str):
    res = json_repair.loads(json_data)
    if not res:
        raise ValueError(f"Failed to parse JSON: {json_data}")
    return res


def parse_analysis_result(text: str) -> AnalysisResult:
    """Turn a raw model reply into a validated ``AnalysisResult``."""
    candidate = extract_json_object(text)
    if candidate is None:
        raise AnalysisParseError("Failed to parse AI response: no JSON object found")

    try:
        data = json.loads(candidate)
    except json.JSONDecodeError:
        logger.warning("Model reply is not strict JSON, attempting repair")
        try:
            data = try_json_parsing(candidate)
        except ValueError as e:
            raise AnalysisParseError(f"Failed to parse AI response: {e}") from e

    if not isinstance(data, dict):
        raise AnalysisParseError("Failed to parse AI response: expected a JSON object")

    try:
        return AnalysisResult.model_validate(data)
    except ValidationError as e:
        raise AnalysisParseError(
            f"AI response does not match the analysis format: {e.error_count()} error(s)"
        ) from e
