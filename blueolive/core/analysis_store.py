"""
Persistence for analysis records.

All writes go through ``AnalysisStore`` so the status state machine
(pending -> processing -> completed | failed) is enforced in one place.
Every mutation is committed before the method returns.
"""

import logging
from datetime import datetime
from typing import Any

from sqlalchemy import and_, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from blueolive.core.ownership import Owner
from blueolive.core.pgn_parser import ParsedGame
from blueolive.models.analysis import Analysis
from blueolive.models.enums import (
    ALLOWED_STATUS_TRANSITIONS,
    AnalysisStatus,
    PlayerColor,
)
from blueolive.models.pydantic_models.analysis import AnalysisResult
from blueolive.utils import prefixed_id, utcnow

logger = logging.getLogger(__name__)

ANALYSIS_ID_PREFIX = "ana"


class InvalidStatusTransition(Exception):
    def __init__(self, analysis_id: str, current: str, target: str):
        self.analysis_id = analysis_id
        self.current = current
        self.target = target
        super().__init__(
            f"Analysis {analysis_id} cannot move from {current} to {target}"
        )


def check_transition(analysis: Analysis, target: AnalysisStatus) -> None:
    current = AnalysisStatus(analysis.status)
    if target not in ALLOWED_STATUS_TRANSITIONS[current]:
        raise InvalidStatusTransition(analysis.analysis_id, current.value, target.value)


class AnalysisStore:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(
        self,
        owner: Owner,
        batch_id: str | None,
        game: ParsedGame,
        source_url: str | None,
        player_name: str,
        player_color: PlayerColor,
    ) -> Analysis:
        now = utcnow()
        analysis = Analysis(
            analysis_id=prefixed_id(ANALYSIS_ID_PREFIX),
            owner_key=owner.key,
            batch_id=batch_id,
            status=AnalysisStatus.PENDING.value,
            pgn=game.pgn,
            source_url=source_url,
            player_name=player_name,
            player_color=PlayerColor(player_color).value,
            game_metadata=game.metadata.model_dump(),
            created_at=now,
            updated_at=now,
        )
        self.session.add(analysis)
        await self.session.commit()
        await self.session.refresh(analysis)
        logger.info(
            f"Created analysis {analysis.analysis_id} "
            f"(batch={batch_id}, color={analysis.player_color})"
        )
        return analysis

    async def get(self, analysis_id: str, owner: Owner | None = None) -> Analysis | None:
        """Fetch one record. With an owner, records belonging to others read as missing."""
        query = select(Analysis).where(Analysis.analysis_id == analysis_id)
        if owner is not None:
            query = query.where(Analysis.owner_key == owner.key)
        result = await self.session.execute(query)
        return result.scalar_one_or_none()

    async def get_statuses(
        self, analysis_ids: list[str], owner: Owner
    ) -> dict[str, AnalysisStatus]:
        if not analysis_ids:
            return {}
        result = await self.session.execute(
            select(Analysis.analysis_id, Analysis.status).where(
                and_(
                    Analysis.analysis_id.in_(analysis_ids),
                    Analysis.owner_key == owner.key,
                )
            )
        )
        return {row.analysis_id: AnalysisStatus(row.status) for row in result}

    async def list_for_owner(
        self, owner: Owner, page: int = 1, limit: int = 20
    ) -> tuple[list[Analysis], int]:
        total = await self.session.scalar(
            select(func.count())
            .select_from(Analysis)
            .where(Analysis.owner_key == owner.key)
        )
        result = await self.session.execute(
            select(Analysis)
            .where(Analysis.owner_key == owner.key)
            .order_by(Analysis.created_at.desc(), Analysis.id.desc())
            .offset((page - 1) * limit)
            .limit(limit)
        )
        return list(result.scalars().all()), total or 0

    async def claim(self, analysis: Analysis) -> bool:
        """Move a pending record to processing.

        The update is conditional on the row still being pending, so when two
        workers pick up the same id only one of them gets ``True``.
        """
        check_transition(analysis, AnalysisStatus.PROCESSING)
        result = await self.session.execute(
            update(Analysis)
            .where(
                and_(
                    Analysis.id == analysis.id,
                    Analysis.status == AnalysisStatus.PENDING.value,
                )
            )
            .values(status=AnalysisStatus.PROCESSING.value, updated_at=utcnow())
            .execution_options(synchronize_session=False)
        )
        await self.session.commit()
        await self.session.refresh(analysis)
        if result.rowcount != 1:
            logger.info(
                f"Analysis {analysis.analysis_id} already claimed "
                f"(status={analysis.status})"
            )
            return False
        return True

    async def complete(
        self, analysis: Analysis, result: AnalysisResult | dict[str, Any]
    ) -> Analysis:
        check_transition(analysis, AnalysisStatus.COMPLETED)
        if isinstance(result, AnalysisResult):
            result = result.model_dump()
        now = utcnow()
        analysis.status = AnalysisStatus.COMPLETED.value
        analysis.result = result
        analysis.error = None
        analysis.completed_at = now
        analysis.updated_at = now
        await self.session.commit()
        await self.session.refresh(analysis)
        return analysis

    async def fail(self, analysis: Analysis, reason: str) -> Analysis:
        check_transition(analysis, AnalysisStatus.FAILED)
        analysis.status = AnalysisStatus.FAILED.value
        analysis.result = None
        analysis.error = reason or "Analysis failed"
        analysis.updated_at = utcnow()
        await self.session.commit()
        await self.session.refresh(analysis)
        return analysis

    async def stale_pending(
        self, older_than: datetime, limit: int = 100
    ) -> list[Analysis]:
        result = await self.session.execute(
            select(Analysis)
            .where(
                and_(
                    Analysis.status == AnalysisStatus.PENDING.value,
                    Analysis.updated_at < older_than,
                )
            )
            .order_by(Analysis.updated_at)
            .limit(limit)
        )
        return list(result.scalars().all())

    async def touch(self, analysis: Analysis) -> None:
        analysis.updated_at = utcnow()
        await self.session.commit()
