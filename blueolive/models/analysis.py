"""
Analysis model - one row per game submitted for AI analysis.
"""

import uuid
from sqlalchemy import CheckConstraint, Column, String, Text, DateTime, Index, JSON, Uuid
from sqlalchemy.dialects.postgresql import JSONB

from blueolive.db.base import Base
from blueolive.models.enums import AnalysisStatus
from blueolive.utils import utcnow

JSONDocument = JSON().with_variant(JSONB(), "postgresql")


class Analysis(Base):
    __tablename__ = "analyses"
    __table_args__ = (
        CheckConstraint(
            "status IN ('pending', 'processing', 'completed', 'failed')",
            name="ck_analysis_status",
        ),
        CheckConstraint(
            "player_color IN ('white', 'black')", name="ck_analysis_player_color"
        ),
        Index("ix_analyses_owner_key_created_at", "owner_key", "created_at"),
    )

    # Storage-internal key, never exposed to clients
    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)

    # Client-facing identifier, e.g. ana_550e8400-...
    analysis_id = Column(String, unique=True, index=True, nullable=False)

    # "user:<uuid>" or "anonymous", see blueolive.core.ownership
    owner_key = Column(String, nullable=False, index=True)

    # Shared by all analyses created from one bulk submission; not unique across batches
    batch_id = Column(String, nullable=True, index=True)

    # pending | processing | completed | failed
    status = Column(
        String, nullable=False, default=AnalysisStatus.PENDING.value, index=True
    )

    pgn = Column(Text, nullable=False)
    source_url = Column(String, nullable=True)
    player_name = Column(String, nullable=False)

    # white | black
    player_color = Column(String, nullable=False)

    # white, black, result, event, date, eco, opening as parsed from the headers
    game_metadata = Column(JSONDocument, nullable=False)

    # Only set once status is completed
    result = Column(JSONDocument, nullable=True)

    # Only set once status is failed
    error = Column(Text, nullable=True)

    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(
        DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow
    )
    completed_at = Column(DateTime(timezone=True), nullable=True)
