"""
Project store: the list of project records persisted as one JSON blob.

Loading runs the migration chain. If anything about the stored blob is
wrong, the raw blob is copied to a timestamped backup key and the original
key is removed, so the engine starts empty without overwriting the user's
data. Saving stays disabled until the user does something that clearly
starts a fresh state (creating a project, or deleting the last one).
"""
import json
import time
from datetime import datetime, timezone
from threading import RLock
from typing import List, Optional

from pydantic import ValidationError

from prototype_engine.config import settings
from prototype_engine.logging_config import logger
from prototype_engine.models import LoadResult, Project, ProjectData, StoredData, now_stamp
from prototype_engine.storage.kv_store import KeyValueStore, get_kv_store
from prototype_engine.storage.migrations import CURRENT_DATA_VERSION, load_stored_projects


class ProjectNotFound(KeyError):
    pass


class ProjectStore:
    def __init__(self, kv: KeyValueStore, storage_key: Optional[str] = None) -> None:
        self._kv = kv
        self._key = storage_key or settings.PROJECTS_STORAGE_KEY
        self._lock = RLock()
        self.load_result = self.load_and_migrate()
        self._projects: List[Project] = list(self.load_result.projects)
        # Keeps a failed load from overwriting the backed-up data with [].
        self.allow_saving = not self.load_result.error_occurred

    @property
    def backup_prefix(self) -> str:
        return f"{self._key}-backup-"

    def load_and_migrate(self) -> LoadResult:
        raw = self._kv.get(self._key)
        if not raw:
            return LoadResult()

        try:
            project_dicts = load_stored_projects(raw)
            projects = [Project.model_validate(p) for p in project_dicts]
            logger.info("Projects loaded", count=len(projects), version=CURRENT_DATA_VERSION)
            return LoadResult(projects=projects)
        except (ValueError, TypeError, ValidationError) as e:
            # json.JSONDecodeError and the migration errors are ValueErrors
            logger.critical(
                "Project loading failed. Backing up potentially corrupt data.",
                error=str(e),
                exc_info=True
            )
            logger.warning("Original stored data", raw=raw[:2000])

            backup_key = f"{self.backup_prefix}{datetime.now(timezone.utc).isoformat()}"
            self._kv.set(backup_key, raw)
            self._kv.delete(self._key)

            logger.error(
                "Stored projects were backed up and the engine is starting fresh",
                backup_key=backup_key
            )
            return LoadResult(error_occurred=True, backup_key=backup_key)

    def save(self) -> bool:
        """Write the current projects. Returns False when skipped or failed."""
        if not self.allow_saving:
            logger.warning("Saving disabled after failed load", backup_key=self.load_result.backup_key)
            return False
        try:
            envelope = StoredData(version=CURRENT_DATA_VERSION, projects=self._projects)
            self._kv.set(self._key, json.dumps(envelope.model_dump()))
            return True
        except Exception as e:
            logger.error("Failed to save projects", error=str(e))
            return False

    def list(self) -> List[Project]:
        with self._lock:
            return list(self._projects)

    def get(self, project_id: str) -> Project:
        with self._lock:
            for project in self._projects:
                if project.id == project_id:
                    return project
        raise ProjectNotFound(project_id)

    def _new_id(self) -> str:
        existing = {p.id for p in self._projects}
        stamp = int(time.time() * 1000)
        while f"proj-{stamp}" in existing:
            stamp += 1
        return f"proj-{stamp}"

    def create(self, data: ProjectData) -> Project:
        with self._lock:
            project = Project(
                **data.model_dump(),
                id=self._new_id(),
                last_modified=now_stamp(),
            )
            self._projects.append(project)
            # Creating a project means the user wants to save, even after a failed load.
            self.allow_saving = True
            self.save()
            logger.info("Project created", project_id=project.id, name=project.name)
            return project

    def update(self, project: Project) -> Project:
        with self._lock:
            for index, existing in enumerate(self._projects):
                if existing.id == project.id:
                    self._projects[index] = project
                    self.save()
                    return project
        raise ProjectNotFound(project.id)

    def rename(self, project_id: str, new_name: str) -> Project:
        new_name = new_name.strip()
        if not new_name:
            raise ValueError("Project name cannot be empty")
        with self._lock:
            project = self.get(project_id).model_copy(update={"name": new_name})
            project.touch()
            return self.update(project)

    def delete(self, project_id: str) -> None:
        with self._lock:
            remaining = [p for p in self._projects if p.id != project_id]
            if len(remaining) == len(self._projects):
                raise ProjectNotFound(project_id)
            self._projects = remaining
            # Deleting the last project leaves a clean, empty state worth saving.
            if not remaining:
                self.allow_saving = True
            self.save()
            logger.info("Project deleted", project_id=project_id)

    def list_backups(self) -> List[str]:
        return self._kv.keys(self.backup_prefix)

    def get_backup(self, backup_key: str) -> Optional[str]:
        if not backup_key.startswith(self.backup_prefix):
            return None
        return self._kv.get(backup_key)


_project_store: Optional[ProjectStore] = None


def get_project_store() -> ProjectStore:
    global _project_store
    if _project_store is None:
        _project_store = ProjectStore(get_kv_store())
    return _project_store


def reset_project_store(store: Optional[ProjectStore] = None) -> None:
    global _project_store
    _project_store = store
