"""
Request dependencies for the collaborators built once at startup.

``blueolive.main`` puts the storage client, analyzer and dispatcher on
``app.state``; handlers receive them through these functions so tests can
swap them by setting ``app.state`` directly.
"""

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from blueolive.core.analysis_store import AnalysisStore
from blueolive.core.dispatch import Dispatcher
from blueolive.core.game_analyzer import GameAnalyzer
from blueolive.core.storage import ObjectStorage
from blueolive.db.session import get_db


def get_storage(request: Request) -> ObjectStorage:
    return request.app.state.storage


def get_dispatcher(request: Request) -> Dispatcher:
    return request.app.state.dispatcher


def get_analyzer(request: Request) -> GameAnalyzer:
    return request.app.state.analyzer


def get_analysis_store(db: AsyncSession = Depends(get_db)) -> AnalysisStore:
    return AnalysisStore(db)
