"""
Who owns an analysis: a registered user or the shared anonymous identity.

The owner key is what gets persisted on each analysis row and what listing
and access checks filter on.
"""

from dataclasses import dataclass
from uuid import UUID

ANONYMOUS_OWNER_KEY = "anonymous"


@dataclass(frozen=True)
class RegisteredOwner:
    user_id: UUID
    email: str

    @property
    def key(self) -> str:
        return f"user:{self.user_id}"

    @property
    def is_anonymous(self) -> bool:
        return False


@dataclass(frozen=True)
class AnonymousOwner:
    @property
    def key(self) -> str:
        return ANONYMOUS_OWNER_KEY

    @property
    def is_anonymous(self) -> bool:
        return True


Owner = RegisteredOwner | AnonymousOwner

ANONYMOUS = AnonymousOwner()
