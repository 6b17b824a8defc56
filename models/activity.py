"""
models/activity.py
------------------
Domain model for the activity history.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional


class ActivityType(str, Enum):
    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"


class EntityType(str, Enum):
    EXPENSE = "expense"
    EXPENSE_ITEM = "expense_item"
    CASH_INFLOW = "cash_inflow"
    REIMBURSEMENT = "pca_reimbursement"
    CLOSING = "closing"
    PROJECT = "project"


@dataclass
class ActivityLog:
    """
    One entry of the activity history.

    `entity_data` is a copy of the entity as it was when the action happened.
    """
    user_id: str
    user_name: str
    activity_type: ActivityType
    entity_type: EntityType
    entity_id: str
    entity_data: dict[str, Any] = field(default_factory=dict)
    details: Optional[str] = None
    project_id: Optional[str] = None
    timestamp: Optional[str] = None
    id: Optional[str] = None
