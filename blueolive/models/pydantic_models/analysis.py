"""
Pydantic models for analysis payloads: parsed game metadata, the structured
AI result, and the request/response bodies of the analysis endpoints.
"""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field, field_validator

from blueolive.config import settings
from blueolive.core.storage import SUPPORTED_REFERENCE_PREFIXES
from blueolive.models.analysis import Analysis
from blueolive.models.enums import AnalysisStatus, PlayerColor


class GameMetadata(BaseModel):
    """Header fields extracted from one game record."""

    white: str = "Unknown"
    black: str = "Unknown"
    result: str = "*"
    event: str | None = None
    date: str | None = None
    eco: str | None = None
    opening: str | None = None


class GamePhase(BaseModel):
    model_config = ConfigDict(coerce_numbers_to_str=True)

    name: str
    moves: str = ""
    evaluation: str = ""
    key_ideas: list[str] = Field(default_factory=list)


class KeyMoment(BaseModel):
    model_config = ConfigDict(coerce_numbers_to_str=True)

    move_number: int
    move: str
    fen: str = ""
    evaluation: str = ""
    comment: str = ""
    is_mistake: bool = False


class AnalysisResult(BaseModel):
    """Structured insight returned by the analysis model for one game."""

    summary: str = Field(min_length=1)
    phases: list[GamePhase] = Field(default_factory=list)
    key_moments: list[KeyMoment] = Field(default_factory=list)
    recommendations: list[str] = Field(default_factory=list)


class SkippedGame(BaseModel):
    white: str
    black: str
    reason: str


class BulkAnalysisRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    urls: list[str] = Field(min_length=1, max_length=settings.bulk_max_urls)
    player_name: str = Field(
        alias="playerName",
        min_length=1,
        description="Your name as it appears in the PGN files",
    )

    @field_validator("urls")
    @classmethod
    def check_storage_references(cls, urls: list[str]) -> list[str]:
        for url in urls:
            if not url.startswith(SUPPORTED_REFERENCE_PREFIXES):
                raise ValueError(
                    f"Each URL must be a stored file reference "
                    f"({', '.join(SUPPORTED_REFERENCE_PREFIXES)}...): {url}"
                )
        return urls

    @field_validator("player_name")
    @classmethod
    def strip_player_name(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("Player name is required")
        return value


class BulkAnalysisResponse(BaseModel):
    batch_id: str
    analysis_ids: list[str]
    total_games: int
    skipped_games: list[SkippedGame] | None = None


class UploadResponse(BaseModel):
    urls: list[str]


class AnalysisStatusOut(BaseModel):
    status: AnalysisStatus


class AnalysisOut(BaseModel):
    analysis_id: str
    batch_id: str | None = None
    status: AnalysisStatus
    player_name: str
    player_color: PlayerColor
    source_url: str | None = None
    pgn: str
    metadata: GameMetadata
    result: AnalysisResult | None = None
    error: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None
    completed_at: datetime | None = None

    @classmethod
    def from_model(cls, analysis: Analysis) -> "AnalysisOut":
        return cls(
            analysis_id=analysis.analysis_id,
            batch_id=analysis.batch_id,
            status=AnalysisStatus(analysis.status),
            player_name=analysis.player_name,
            player_color=PlayerColor(analysis.player_color),
            source_url=analysis.source_url,
            pgn=analysis.pgn,
            metadata=GameMetadata.model_validate(analysis.game_metadata or {}),
            result=AnalysisResult.model_validate(analysis.result)
            if analysis.result
            else None,
            error=analysis.error,
            created_at=analysis.created_at,
            updated_at=analysis.updated_at,
            completed_at=analysis.completed_at,
        )


class AnalysisListItem(BaseModel):
    analysis_id: str
    batch_id: str | None = None
    status: AnalysisStatus
    player_color: PlayerColor
    metadata: GameMetadata
    created_at: datetime | None = None

    @classmethod
    def from_model(cls, analysis: Analysis) -> "AnalysisListItem":
        return cls(
            analysis_id=analysis.analysis_id,
            batch_id=analysis.batch_id,
            status=AnalysisStatus(analysis.status),
            player_color=PlayerColor(analysis.player_color),
            metadata=GameMetadata.model_validate(analysis.game_metadata or {}),
            created_at=analysis.created_at,
        )


class WorkerProcessRequest(BaseModel):
    analysis_id: str | None = None
