"""
services/activity_service.py
----------------------------
Best-effort activity history.

A failure to write a history entry never fails the ledger operation that
triggered it; it is logged and the operation carries on.
"""

import dataclasses
from datetime import date
from enum import Enum
from typing import Any, Optional

from models.activity import ActivityLog, ActivityType, EntityType
from repositories.activity_repo import ActivityRepository
from repositories.record_store import RecordStore
from security.auth import ActorContext
from utils.dates import now_iso
from utils.logger import get_logger

logger = get_logger(__name__)


def snapshot_of(entity) -> dict[str, Any]:
    """JSON-friendly copy of a domain object for `entity_data`."""
    if dataclasses.is_dataclass(entity):
        entity = dataclasses.asdict(entity)
    return {k: _plain(v) for k, v in dict(entity).items()}


def _plain(value):
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, date):
        return value.isoformat()
    if isinstance(value, dict):
        return {k: _plain(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_plain(v) for v in value]
    return value


class ActivityService:
    """Records and lists who did what to which ledger entity."""

    def __init__(self, store: RecordStore):
        self.repo = ActivityRepository(store)

    def log(
        self,
        actor: ActorContext,
        activity_type: ActivityType,
        entity_type: EntityType,
        entity_id: str,
        entity,
        details: Optional[str] = None,
        project_id: Optional[str] = None,
    ) -> Optional[str]:
        """
        Append an entry to the history.

        Returns:
            The id of the new entry, or None if it could not be written.
        """
        entry = ActivityLog(
            user_id=actor.user_id,
            user_name=actor.name,
            activity_type=activity_type,
            entity_type=entity_type,
            entity_id=entity_id,
            entity_data=snapshot_of(entity),
            details=details,
            project_id=project_id,
            timestamp=now_iso(),
        )
        try:
            self.repo.add(entry)
        except Exception as e:
            logger.warning(
                f"Activity not recorded ({activity_type.value} {entity_type.value} {entity_id}): {e}"
            )
            return None
        logger.debug(f"Activity recorded: {entry.id}")
        return entry.id

    def history(
        self,
        entity_type: Optional[EntityType] = None,
        project_id: Optional[str] = None,
    ) -> list[ActivityLog]:
        """History entries, newest first."""
        entries = self.repo.list(entity_type, project_id)
        return sorted(entries, key=lambda e: e.timestamp or "", reverse=True)
