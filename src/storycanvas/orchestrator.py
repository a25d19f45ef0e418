"""Session state machine: analyze, render sequentially, persist, archive."""

import json
import logging
import time
from enum import Enum
from typing import Callable, Optional

from pydantic import ValidationError

from .archive import ArchiveStore
from .errors import PersistenceError, SessionBusyError
from .gateway import Gateway
from .models import ArchivedProject, AspectRatio, Scene, SceneStatus, Session
from .storage import SESSION_KEY, KeyValueStore

logger = logging.getLogger(__name__)

ANALYSIS_FAILED_NOTICE = "Analysis failed. Check your API key or connection."
RESET_PROMPT = "Reset current session? History is preserved in the Archive."
DISCARD_PROMPT = "Discard current work and load this project?"

Notifier = Callable[[str], None]
Confirm = Callable[[str], bool]
ProgressCallback = Callable[[Scene], None]


class OrchestratorState(str, Enum):
    """Where the live session is in its lifecycle."""
    IDLE = "idle"
    ANALYZING = "analyzing"
    RENDERING = "rendering"
    READY = "ready"


def _log_notice(message: str) -> None:
    logger.warning(message)


class SessionRepository:
    """Reads and writes the live session under the session key."""

    def __init__(self, store: KeyValueStore) -> None:
        self._store = store

    def load(self) -> Optional[Session]:
        """Return the stored session, or None if absent or unreadable."""
        try:
            raw = self._store.get(SESSION_KEY)
        except PersistenceError as e:
            logger.error(f"Session recovery failed: {e}")
            return None

        if not raw:
            return None

        try:
            return Session.from_json(raw)
        except (ValidationError, json.JSONDecodeError) as e:
            logger.error(f"Session recovery failed, stored record is corrupt: {e}")
            return None

    def save(self, session: Session) -> bool:
        try:
            self._store.set(SESSION_KEY, session.to_json())
            return True
        except PersistenceError as e:
            logger.error(f"Failed to persist session: {e}")
            return False

    def delete(self) -> None:
        try:
            self._store.delete(SESSION_KEY)
        except PersistenceError as e:
            logger.error(f"Failed to delete stored session: {e}")


class Orchestrator:
    """Drives one story session through analysis and sequential rendering.

    Scenes are rendered strictly one at a time in decomposition order. A
    failed render marks that scene failed and the loop moves on. Results
    are written back by scene id.
    """

    def __init__(
        self,
        gateway: Gateway,
        store: KeyValueStore,
        archive: Optional[ArchiveStore] = None,
        notifier: Optional[Notifier] = None,
        on_progress: Optional[ProgressCallback] = None,
    ) -> None:
        self._gateway = gateway
        self._repo = SessionRepository(store)
        self._archive = archive or ArchiveStore(store)
        self._notify = notifier or _log_notice
        self._on_progress = on_progress
        self._session = Session()

    @property
    def session(self) -> Session:
        return self._session

    @property
    def archive(self) -> ArchiveStore:
        return self._archive

    @property
    def state(self) -> OrchestratorState:
        if self._session.is_analyzing:
            return OrchestratorState.ANALYZING
        if self._session.is_generating:
            return OrchestratorState.RENDERING
        if self._session.is_empty:
            return OrchestratorState.IDLE
        return OrchestratorState.READY

    def resume(self) -> Session:
        """Restore the persisted session, if there is one.

        No request survives a restart, so busy flags are cleared and any
        scene left pending or generating is marked failed (retryable).
        """
        stored = self._repo.load()
        if stored is None:
            self._session = Session()
            return self._session

        stored.is_analyzing = False
        stored.is_generating = False

        stuck = [s for s in stored.scenes if not s.status.is_terminal]
        for scene in stuck:
            scene.status = SceneStatus.FAILED
        if stuck:
            logger.info(f"Marked {len(stuck)} interrupted scene(s) as failed")

        self._session = stored
        if stuck:
            self._persist()
        return self._session

    async def submit(
        self,
        story: str,
        style: str = "",
        aspect_ratio: Optional[AspectRatio | str] = None,
    ) -> bool:
        """Analyze a story and render every scene.

        Returns:
            True when a run reached the all-settled state, False when the
            story was blank or analysis produced nothing.
        """
        if self._session.is_busy:
            raise SessionBusyError("A generation run is already in progress")

        if not story or not story.strip():
            return False

        session = self._session
        session.original_story = story
        session.style_input = style or ""
        if aspect_ratio is not None:
            session.aspect_ratio = AspectRatio(aspect_ratio)
        session.scenes = []
        session.is_analyzing = True
        # The prior scene list is gone; a stale record must not outlive it.
        self._repo.delete()

        try:
            drafts = await self._gateway.decompose(story, session.style_input)
        except Exception as e:
            logger.error(f"Decomposition raised: {e}")
            drafts = []

        if not drafts:
            session.is_analyzing = False
            self._notify(ANALYSIS_FAILED_NOTICE)
            return False

        stamp = int(time.time() * 1000)
        session.scenes = [Scene.from_draft(draft, i, stamp) for i, draft in enumerate(drafts)]
        session.is_analyzing = False
        session.is_generating = True
        logger.info(f"Rendering {len(session.scenes)} scenes")

        try:
            for scene_id in [scene.id for scene in session.scenes]:
                await self._render(scene_id)
        finally:
            session.is_generating = False

        self._persist()
        self._save_to_archive()

        logger.info(
            f"Run complete: {session.count(SceneStatus.COMPLETED)} completed, "
            f"{session.count(SceneStatus.FAILED)} failed"
        )
        return True

    async def retry(self, scene_id: str) -> bool:
        """Re-render a single scene. Unknown ids are ignored."""
        if self._session.is_busy:
            raise SessionBusyError("Cannot retry while a generation run is in progress")

        if self._session.find_scene(scene_id) is None:
            logger.debug(f"Retry ignored, no scene {scene_id}")
            return False

        await self._render(scene_id)
        self._persist()
        return True

    def reset(self, confirm: Confirm) -> bool:
        """Clear the live session after confirmation. The archive is kept."""
        if self._session.is_busy:
            raise SessionBusyError("Cannot reset while a generation run is in progress")

        if not confirm(RESET_PROMPT):
            return False

        self._repo.delete()
        self._session.clear()
        logger.info("Session reset")
        return True

    def load_project(self, project_id: str, confirm: Confirm) -> bool:
        """Replace the live session with an archived project."""
        if self._session.is_busy:
            raise SessionBusyError("Cannot load a project while a generation run is in progress")

        project = self._archive.load(project_id)
        if project is None:
            self._notify(f"No archived project {project_id}")
            return False

        if not self._session.is_empty and not confirm(DISCARD_PROMPT):
            return False

        self._session = project.to_session()
        self._persist()
        logger.info(f"Loaded archived project {project_id}")
        return True

    def delete_project(self, project_id: str) -> bool:
        return self._archive.delete(project_id)

    async def _render(self, scene_id: str) -> None:
        scene = self._session.find_scene(scene_id)
        if scene is None:
            return

        scene.status = SceneStatus.GENERATING
        self._progress(scene)
        prompt = scene.image_prompt

        try:
            url = await self._gateway.render_image(prompt, self._session.aspect_ratio)
        except Exception as e:
            logger.error(f"Render of {scene_id} raised: {e}")
            url = None

        # Look the scene up again; the list may have been replaced meanwhile.
        scene = self._session.find_scene(scene_id)
        if scene is None:
            return
        scene.image_url = url or None
        scene.status = SceneStatus.COMPLETED if url else SceneStatus.FAILED
        self._progress(scene)

    def _progress(self, scene: Scene) -> None:
        if self._on_progress is not None:
            self._on_progress(scene)

    def _persist(self) -> None:
        if self._session.is_busy or self._session.is_empty:
            return
        self._repo.save(self._session)

    def _save_to_archive(self) -> None:
        if self._session.is_empty:
            return
        self._archive.save(ArchivedProject.from_session(self._session))
