"""Bounded history of completed generation runs."""

import json
import logging
from typing import List, Optional

from pydantic import TypeAdapter, ValidationError

from .errors import PersistenceError
from .models import ArchivedProject
from .storage import ARCHIVE_KEY, KeyValueStore

logger = logging.getLogger(__name__)

ARCHIVE_CAPACITY = 10

_projects_adapter = TypeAdapter(List[ArchivedProject])


class ArchiveStore:
    """Most-recent-first list of archived projects, capped at ``capacity``."""

    def __init__(self, store: KeyValueStore, capacity: int = ARCHIVE_CAPACITY) -> None:
        self._store = store
        self._capacity = capacity

    @property
    def capacity(self) -> int:
        return self._capacity

    def list(self) -> List[ArchivedProject]:
        """Return archived projects, newest first.

        A missing or unreadable record yields an empty archive.
        """
        try:
            return self._read()
        except PersistenceError as e:
            logger.error(f"Archive read failed: {e}")
            return []

    def _read(self) -> List[ArchivedProject]:
        """Read the stored archive. Storage errors propagate; corrupt JSON reads as empty."""
        raw = self._store.get(ARCHIVE_KEY)
        if not raw:
            return []

        try:
            return _projects_adapter.validate_json(raw)
        except (ValidationError, json.JSONDecodeError) as e:
            logger.error(f"Archive record is corrupt, ignoring it: {e}")
            return []

    def save(self, project: ArchivedProject) -> None:
        """Prepend a project and evict the oldest beyond capacity.

        If the existing archive cannot be read, nothing is written so the
        stored history is not replaced by a single entry.
        """
        try:
            existing = self._read()
        except PersistenceError as e:
            logger.error(f"Archive read failed, not archiving {project.id}: {e}")
            return

        projects = [project] + existing
        evicted = projects[self._capacity:]
        projects = projects[: self._capacity]
        for old in evicted:
            logger.debug(f"Evicting archived project {old.id}")
        self._write(projects)
        logger.info(f"Archived project {project.id} ({len(project.scenes)} scenes)")

    def load(self, project_id: str) -> Optional[ArchivedProject]:
        for project in self.list():
            if project.id == project_id:
                return project
        return None

    def delete(self, project_id: str) -> bool:
        try:
            projects = self._read()
        except PersistenceError as e:
            logger.error(f"Archive read failed, not deleting {project_id}: {e}")
            return False
        remaining = [p for p in projects if p.id != project_id]
        if len(remaining) == len(projects):
            return False
        self._write(remaining)
        logger.info(f"Deleted archived project {project_id}")
        return True

    def _write(self, projects: List[ArchivedProject]) -> None:
        payload = _projects_adapter.dump_json(projects, by_alias=True).decode("utf-8")
        try:
            self._store.set(ARCHIVE_KEY, payload)
        except PersistenceError as e:
            logger.error(f"Archive write failed: {e}")
