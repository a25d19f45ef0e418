from __future__ import annotations

from typing import Callable, Optional

import pytest

from storycanvas.models import SceneDraft, ShotType
from storycanvas.orchestrator import Orchestrator
from storycanvas.storage import MemoryStore

PNG_URI = "data:image/png;base64,iVBORw0KGgo="


def make_draft(text: str, shot_type: ShotType = ShotType.MAIN) -> SceneDraft:
    return SceneDraft(
        text=text,
        prompt=f"Sir Aldric: aquiline nose, rugged jaw. {text}",
        motion_prompt="Slow orbital pan",
        shot_type=shot_type,
    )


class FakeGateway:
    """Scripted stand-in for the AI gateway."""

    def __init__(
        self,
        drafts: Optional[list[SceneDraft]] = None,
        images: Optional[list[Optional[str]]] = None,
    ) -> None:
        self.drafts = drafts or []
        self.images = list(images) if images is not None else None
        self.decompose_calls: list[tuple[str, str]] = []
        self.render_calls: list[tuple[str, str]] = []
        self.before_render: Optional[Callable[[str], None]] = None

    def check_configuration(self) -> None:
        pass

    async def decompose(self, story: str, style: str = "") -> list[SceneDraft]:
        self.decompose_calls.append((story, style))
        return list(self.drafts)

    async def render_image(self, prompt: str, aspect_ratio) -> Optional[str]:
        if self.before_render is not None:
            self.before_render(prompt)
        self.render_calls.append((prompt, getattr(aspect_ratio, "value", aspect_ratio)))
        if self.images is None:
            return PNG_URI
        return self.images.pop(0)


@pytest.fixture
def store() -> MemoryStore:
    return MemoryStore()


@pytest.fixture
def notices() -> list[str]:
    return []


@pytest.fixture
def make_orchestrator(store: MemoryStore, notices: list[str]):
    def _make(gateway: FakeGateway) -> Orchestrator:
        return Orchestrator(gateway=gateway, store=store, notifier=notices.append)
    return _make
