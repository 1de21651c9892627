from datetime import datetime, timezone
import uuid


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def prefixed_id(prefix: str) -> str:
    """Return a client-facing identifier such as ``ana_<uuid4>``."""
    return f"{prefix}_{uuid.uuid4()}"


def parse_id_list(raw: str) -> list[str]:
    """Split a comma-separated id list, dropping blanks and duplicates while keeping order."""
    seen: set[str] = set()
    ids: list[str] = []
    for part in raw.split(","):
        item = part.strip()
        if item and item not in seen:
            seen.add(item)
            ids.append(item)
    return ids
