"""
services/project_service.py
---------------------------
Creating, editing and removing projects.

Only the descriptive fields are handled here. The cached balance fields
belong to LedgerCoordinator and are never written by this service.
"""

from dataclasses import replace
from datetime import date
from typing import Optional, Union

from errors import ValidationError
from models.activity import ActivityType, EntityType
from models.project import Project
from repositories.project_repo import ProjectRepository
from repositories.record_store import RecordStore
from security.auth import ActorContext, authorized_only
from services.activity_service import ActivityService
from services.results import returns_result
from services.validation import require_date, require_text
from utils.logger import get_logger

logger = get_logger(__name__)

DateInput = Union[date, str, None]


def _check_dates(start: date, end: Optional[date]) -> None:
    if end is not None and end < start:
        raise ValidationError(
            f"End date {end} is before start date {start}", "end_date"
        )


class ProjectService:
    """Validated entry points for project records."""

    def __init__(self, store: RecordStore, activity: Optional[ActivityService] = None):
        self.repo = ProjectRepository(store)
        self.activity = activity or ActivityService(store)

    def list_projects(self) -> list[Project]:
        """Projects sorted by name."""
        return sorted(self.repo.list(), key=lambda p: p.name.lower())

    @returns_result
    @authorized_only
    def create_project(
        self,
        actor: ActorContext,
        name: str,
        description: str = "",
        start_date: DateInput = None,
        end_date: DateInput = None,
    ) -> str:
        """
        Register a new project with empty cached totals.

        Args:
            name: Required.
            start_date: Defaults to today.
            end_date: Optional; not before `start_date`.
        """
        title = require_text(name, "name")
        start = require_date(start_date, "start_date")
        end = require_date(end_date, "end_date") if end_date else None
        _check_dates(start, end)
        project = self.repo.add(Project(
            name=title,
            description=description or "",
            start_date=start,
            end_date=end,
            created_by=actor.user_id,
        ))
        self.activity.log(
            actor, ActivityType.CREATE, EntityType.PROJECT, project.id, project,
            f"Nouveau projet: {project.name}", project.id,
        )
        logger.info(f"Created project #{project.id} '{project.name}'")
        return project.id

    @returns_result
    @authorized_only
    def update_project(
        self,
        actor: ActorContext,
        project_id: str,
        name: Optional[str] = None,
        description: Optional[str] = None,
        start_date: DateInput = None,
        end_date: DateInput = None,
    ) -> str:
        """Edit the fields given. An end date, once set, can be moved but not removed."""
        existing = self.repo.get_by_id(project_id)
        updated = replace(
            existing,
            name=existing.name if name is None else require_text(name, "name"),
            description=existing.description if description is None else description,
            start_date=(
                existing.start_date if start_date is None
                else require_date(start_date, "start_date")
            ),
            end_date=existing.end_date if not end_date else require_date(end_date, "end_date"),
        )
        # older projects may have no start date
        if updated.start_date is not None:
            _check_dates(updated.start_date, updated.end_date)

        self.repo.update_details(updated)
        self.activity.log(
            actor, ActivityType.UPDATE, EntityType.PROJECT, project_id, updated,
            f"Projet modifié: {updated.name}", project_id,
        )
        logger.info(f"Updated project #{project_id}")
        return project_id

    @returns_result
    @authorized_only
    def delete_project(self, actor: ActorContext, project_id: str) -> str:
        """
        Remove a project document.

        Inflows and expenses that point to it are kept; later writes on them
        skip the missing project's cache with a warning.
        """
        existing = self.repo.get_by_id(project_id)
        self.repo.delete(project_id)
        self.activity.log(
            actor, ActivityType.DELETE, EntityType.PROJECT, project_id, existing,
            f"Projet supprimé: {existing.name}", project_id,
        )
        logger.info(f"Deleted project #{project_id} '{existing.name}'")
        return project_id
