"""
Game analysis through the configured LLM.

``GameAnalyzer`` is built once at startup and handed to whatever runs the
worker (inline dispatcher, Celery task or the worker endpoint).
"""

import asyncio
import logging

from blueolive.core.llms import call_llm, parse_analysis_result
from blueolive.core.model_resolver import TaskType, resolve_model
from blueolive.core.prompts import GAME_ANALYSIS_SYSTEM_PROMPT, build_analysis_prompt
from blueolive.models.analysis import Analysis
from blueolive.models.enums import PlayerColor
from blueolive.models.pydantic_models.analysis import AnalysisResult

logger = logging.getLogger(__name__)


class GameAnalyzer:
    def __init__(self, model: str | None = None):
        # Resolved per call when not pinned, so key changes are picked up
        self.model = model

    async def analyze(self, analysis: Analysis) -> AnalysisResult:
        """
        Analyse one stored game from the recorded player's perspective.

        Raises:
            LLMError: the model call failed
            AnalysisParseError: the reply did not contain a usable analysis
        """
        model = self.model or resolve_model(TaskType.GAME_ANALYSIS)
        prompt = build_analysis_prompt(
            pgn=analysis.pgn,
            metadata=analysis.game_metadata or {},
            player_name=analysis.player_name,
            player_color=PlayerColor(analysis.player_color),
        )

        logger.info(
            f"Starting analysis {analysis.analysis_id} for {analysis.player_name} "
            f"({analysis.player_color}) using {model}"
        )
        content, stats = await asyncio.to_thread(
            call_llm,
            input_text=prompt,
            system_prompt=GAME_ANALYSIS_SYSTEM_PROMPT,
            model=model,
        )
        logger.info(
            f"Model replied for {analysis.analysis_id} "
            f"(prompt_tokens={stats.get('prompt_tokens')}, "
            f"completion_tokens={stats.get('completion_tokens')})"
        )
        return parse_analysis_result(content)
