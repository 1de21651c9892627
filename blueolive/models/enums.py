"""
Enumerations shared by the analysis models, API schemas and workers.
"""

from enum import Enum


class AnalysisStatus(str, Enum):
    """Lifecycle of a single game analysis: pending → processing → completed | failed."""

    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (AnalysisStatus.COMPLETED, AnalysisStatus.FAILED)


# Forward-only; terminal states have no outgoing edges
ALLOWED_STATUS_TRANSITIONS: dict[AnalysisStatus, frozenset[AnalysisStatus]] = {
    AnalysisStatus.PENDING: frozenset({AnalysisStatus.PROCESSING}),
    AnalysisStatus.PROCESSING: frozenset(
        {AnalysisStatus.COMPLETED, AnalysisStatus.FAILED}
    ),
    AnalysisStatus.COMPLETED: frozenset(),
    AnalysisStatus.FAILED: frozenset(),
}


class PlayerColor(str, Enum):
    """Side of the board the analysed player had."""

    WHITE = "white"
    BLACK = "black"

    @property
    def opponent(self) -> "PlayerColor":
        return PlayerColor.BLACK if self is PlayerColor.WHITE else PlayerColor.WHITE
