"""
Migration chain for stored project records.

Stored data comes in two shapes:

- legacy (version 1): a bare JSON array of project dicts
- versioned: ``{"version": <int>, "projects": [...]}``

Each step upgrades the project dicts from ``version - 1`` to ``version``.
Steps copy every record and only add or reshape fields, so an unknown
field written by an older release survives the upgrade untouched.
"""
import json
from typing import Any, Callable, Dict, List, Tuple

from prototype_engine.config import settings
from prototype_engine.logging_config import logger


CURRENT_DATA_VERSION = 3

ProjectDict = Dict[str, Any]


class UnrecognizedDataFormat(ValueError):
    """Stored blob is neither the legacy array nor the versioned envelope"""


class UnsupportedDataVersion(ValueError):
    """Stored blob was written by a newer release"""


def detect_format(saved_data: Any) -> Tuple[int, List[ProjectDict]]:
    """Return (stored_version, project dicts) for a decoded blob."""
    if isinstance(saved_data, list):
        return 1, saved_data

    if (
        isinstance(saved_data, dict)
        and isinstance(saved_data.get("version"), int)
        and not isinstance(saved_data.get("version"), bool)
        and isinstance(saved_data.get("projects"), list)
    ):
        return saved_data["version"], saved_data["projects"]

    raise UnrecognizedDataFormat("Unrecognized data format found in storage.")


def _add_tasks(project: ProjectDict) -> ProjectDict:
    migrated = dict(project)
    migrated["tasks"] = project.get("tasks") or []
    return migrated


def _split_inspiration_images(project: ProjectDict) -> ProjectDict:
    migrated = dict(project)
    if "inspiration_images" not in migrated:
        legacy_image = migrated.pop("inspiration_image", None)
        migrated["inspiration_images"] = [legacy_image] if legacy_image else []
        migrated["active_inspiration_image_index"] = 0
    else:
        migrated.setdefault("active_inspiration_image_index", 0)
    if not migrated.get("theme"):
        migrated["theme"] = settings.DEFAULT_THEME
    return migrated


# target version -> per-project upgrade step
MIGRATIONS: Dict[int, Callable[[ProjectDict], ProjectDict]] = {
    2: _add_tasks,
    3: _split_inspiration_images,
}


def migrate_projects(stored_version: int, projects: List[ProjectDict]) -> List[ProjectDict]:
    """Run every step newer than stored_version, oldest first."""
    if stored_version > CURRENT_DATA_VERSION:
        raise UnsupportedDataVersion(
            f"Stored data version {stored_version} is newer than supported version {CURRENT_DATA_VERSION}"
        )

    for record in projects:
        if not isinstance(record, dict):
            raise UnrecognizedDataFormat(f"Project record is not an object: {type(record).__name__}")

    migrated = list(projects)
    for target_version in sorted(MIGRATIONS):
        if stored_version < target_version:
            step = MIGRATIONS[target_version]
            migrated = [step(project) for project in migrated]
            logger.info(
                "Migrated stored projects",
                to_version=target_version,
                count=len(migrated)
            )
    return migrated


def load_stored_projects(raw: str) -> List[ProjectDict]:
    """Decode a stored blob and bring it up to CURRENT_DATA_VERSION."""
    saved_data = json.loads(raw)
    stored_version, projects = detect_format(saved_data)
    return migrate_projects(stored_version, projects)
