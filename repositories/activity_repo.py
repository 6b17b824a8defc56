"""
repositories/activity_repo.py
-----------------------------
Data access layer for the activity history (`activity_logs`).
"""

from typing import Optional

from models.activity import ActivityLog, ActivityType, EntityType
from repositories.record_store import Document, RecordStore

COLLECTION = "activity_logs"


class ActivityRepository:
    """Repository for activity log documents."""

    def __init__(self, store: RecordStore):
        self.store = store

    def add(self, entry: ActivityLog) -> ActivityLog:
        entry.id = self.store.create(COLLECTION, {
            "timestamp": entry.timestamp,
            "userId": entry.user_id,
            "userName": entry.user_name,
            "activityType": entry.activity_type.value,
            "entityType": entry.entity_type.value,
            "entityId": entry.entity_id,
            "entityData": entry.entity_data,
            "details": entry.details,
            "projectId": entry.project_id,
        })
        return entry

    def list(
        self,
        entity_type: Optional[EntityType] = None,
        project_id: Optional[str] = None,
    ) -> list[ActivityLog]:
        filters: Document = {}
        if entity_type is not None:
            filters["entityType"] = entity_type.value
        if project_id is not None:
            filters["projectId"] = project_id
        return [self._document_to_entry(d) for d in self.store.list(COLLECTION, filters or None)]

    @staticmethod
    def _document_to_entry(doc: Document) -> ActivityLog:
        return ActivityLog(
            id=doc["id"],
            timestamp=doc.get("timestamp"),
            user_id=doc.get("userId") or "",
            user_name=doc.get("userName") or "",
            activity_type=ActivityType(doc.get("activityType", "update")),
            entity_type=EntityType(doc.get("entityType", "expense")),
            entity_id=doc.get("entityId") or "",
            entity_data=doc.get("entityData") or {},
            details=doc.get("details"),
            project_id=doc.get("projectId"),
        )
