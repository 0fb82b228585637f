# audit.py

from datetime import datetime, timezone
from typing import Optional


def utcnow() -> datetime:
    """Current UTC time as a naive datetime, the way timestamps are stored."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def to_naive_utc(value: Optional[datetime]) -> Optional[datetime]:
    if value is None or value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


def stamp_created(entity, user_id: Optional[str]) -> None:
    entity.created_by = user_id
    entity.created_date = utcnow()
    entity.modified_by = None
    entity.modified_date = None


def stamp_modified(entity, user_id: Optional[str]) -> None:
    now = utcnow()
    entity.modified_by = user_id
    entity.modified_date = now
    # Records inserted outside the services may lack a creator
    if not entity.created_by:
        entity.created_by = user_id
        entity.created_date = now
