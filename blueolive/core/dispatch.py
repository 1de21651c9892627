"""
Hand-off of created analyses to the worker.

Two strategies implement ``Dispatcher``:

- ``InlineDispatcher`` runs the worker as a background task on the API's own
  event loop. Used for local development and tests.
- ``CeleryDispatcher`` enqueues ``analysis_worker.process_analysis`` on the
  Celery broker and returns once the broker has accepted it.

The strategy is chosen once at startup by ``build_dispatcher``.
"""

import asyncio
import logging
from typing import Protocol

from celery import Celery
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from blueolive.core.analysis_store import AnalysisStore
from blueolive.core.game_analyzer import GameAnalyzer
from blueolive.tasks.analysis_worker import PROCESS_ANALYSIS_TASK, process_analysis

logger = logging.getLogger(__name__)

INLINE_MODE = "inline"
CELERY_MODE = "celery"


class DispatchError(Exception):
    """The analysis could not be handed to the worker."""


class Dispatcher(Protocol):
    async def dispatch(self, analysis_id: str) -> str:
        """Schedule processing of one analysis and return an acknowledgement id."""
        ...


class InlineDispatcher:
    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        analyzer: GameAnalyzer,
    ):
        self.session_factory = session_factory
        self.analyzer = analyzer
        # Strong references; the loop only keeps weak ones to running tasks
        self._tasks: set[asyncio.Task] = set()

    async def dispatch(self, analysis_id: str) -> str:
        try:
            task = asyncio.create_task(
                self._run(analysis_id), name=f"analysis-{analysis_id}"
            )
        except RuntimeError as e:
            raise DispatchError(f"Could not schedule {analysis_id}: {e}") from e
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        logger.info(f"Scheduled inline processing for {analysis_id}")
        return f"inline-{analysis_id}"

    async def _run(self, analysis_id: str) -> None:
        try:
            async with self.session_factory() as session:
                await process_analysis(analysis_id, AnalysisStore(session), self.analyzer)
        except Exception as e:
            logger.error(
                f"Inline processing of {analysis_id} failed: {e}", exc_info=True
            )

    @property
    def pending_count(self) -> int:
        return len(self._tasks)

    async def drain(self) -> None:
        """Wait for every scheduled analysis to finish."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)


class CeleryDispatcher:
    def __init__(self, celery_app: Celery):
        self.celery_app = celery_app

    async def dispatch(self, analysis_id: str) -> str:
        try:
            result = await asyncio.to_thread(
                self.celery_app.send_task,
                PROCESS_ANALYSIS_TASK,
                kwargs={"analysis_id": analysis_id},
            )
        except Exception as e:
            logger.error(f"Failed to enqueue {analysis_id}: {e}", exc_info=True)
            raise DispatchError(f"Failed to enqueue analysis {analysis_id}: {e}") from e
        logger.info(f"Enqueued {analysis_id} as Celery task {result.id}")
        return result.id

    async def drain(self) -> None:
        """Nothing runs in-process for the queue strategy."""


def build_dispatcher(
    settings,
    session_factory: async_sessionmaker[AsyncSession],
    analyzer: GameAnalyzer,
) -> InlineDispatcher | CeleryDispatcher:
    mode = settings.dispatch_mode.lower()
    if mode == INLINE_MODE:
        logger.info("Dispatching analyses inline on the API event loop")
        return InlineDispatcher(session_factory, analyzer)
    if mode == CELERY_MODE:
        from blueolive.celery_app import celery_app

        logger.info("Dispatching analyses through Celery")
        return CeleryDispatcher(celery_app)
    raise ValueError(f"Unknown dispatch mode: {settings.dispatch_mode}")
