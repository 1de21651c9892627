"""Central model resolver that picks the best available LLM for each task type.

Each task type has a priority-ordered list of (model, provider) pairs.
``resolve_model`` walks the list and returns the first model whose provider
has an API key configured.  ``settings.analysis_model`` pins a model for
game analysis regardless of the priority list.
"""

import logging
from enum import Enum
from typing import Dict, List, Set, Tuple

from blueolive.config import settings

logger = logging.getLogger(__name__)


class TaskType(str, Enum):
    GAME_ANALYSIS = "game_analysis"
    DEFAULT = "default"


# Priority-ordered model lists per task.
# First model whose provider has a configured API key wins.
MODEL_PRIORITY: Dict[TaskType, List[Tuple[str, str]]] = {
    TaskType.GAME_ANALYSIS: [
        ("gemini-2.5-flash", "gemini"),
        ("claude-sonnet-4-5", "anthropic"),
        ("gpt-5-mini", "openai"),
    ],
    TaskType.DEFAULT: [
        ("gpt-5-mini", "openai"),
        ("gemini-2.5-flash", "gemini"),
        ("claude-haiku-4-5", "anthropic"),
    ],
}


def get_api_keys() -> Dict[str, str]:
    return {
        "openai": settings.openai_api_key,
        "anthropic": settings.anthropic_api_key,
        "gemini": settings.gemini_api_key,
    }


def get_available_providers() -> Set[str]:
    """Return providers that have a non-empty API key configured."""
    return {provider for provider, key in get_api_keys().items() if key}


def resolve_model(task: TaskType) -> str:
    """Return the best available model for *task*.

    Raises ``RuntimeError`` when no provider is available at all.
    """
    if task == TaskType.GAME_ANALYSIS and settings.analysis_model:
        return settings.analysis_model

    available = get_available_providers()
    priority = MODEL_PRIORITY.get(task, MODEL_PRIORITY[TaskType.DEFAULT])

    for model_name, provider in priority:
        if provider in available:
            logger.debug(
                "Resolved model for %s: %s (provider=%s)", task.value, model_name, provider
            )
            return model_name

    raise RuntimeError(
        f"No LLM API key configured for task '{task.value}'. "
        "Set at least one of: OPENAI_API_KEY, ANTHROPIC_API_KEY, GEMINI_API_KEY"
    )
