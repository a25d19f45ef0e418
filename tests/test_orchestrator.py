from __future__ import annotations

import pytest

from conftest import PNG_URI, FakeGateway, make_draft
from storycanvas.archive import ArchiveStore
from storycanvas.errors import SessionBusyError
from storycanvas.models import AspectRatio, SceneStatus, Session, ShotType
from storycanvas.orchestrator import (
    ANALYSIS_FAILED_NOTICE,
    Orchestrator,
    OrchestratorState,
)
from storycanvas.storage import SESSION_KEY


@pytest.mark.asyncio
async def test_single_scene_story_completes_and_is_archived(make_orchestrator, store) -> None:
    gateway = FakeGateway(drafts=[make_draft("A knight walks into a tavern.")])
    orchestrator = make_orchestrator(gateway)

    ok = await orchestrator.submit("A knight walks into a tavern.", "")

    assert ok is True
    assert gateway.decompose_calls == [("A knight walks into a tavern.", "")]
    session = orchestrator.session
    assert len(session.scenes) == 1
    assert session.scenes[0].status is SceneStatus.COMPLETED
    assert session.scenes[0].image_url == PNG_URI
    assert session.scenes[0].shot_type is ShotType.MAIN
    assert orchestrator.state is OrchestratorState.READY
    assert len(ArchiveStore(store).list()) == 1


@pytest.mark.asyncio
async def test_empty_decomposition_returns_to_idle_with_notice(make_orchestrator, store, notices) -> None:
    gateway = FakeGateway(drafts=[])
    orchestrator = make_orchestrator(gateway)

    ok = await orchestrator.submit("Once upon a time.")

    assert ok is False
    assert orchestrator.state is OrchestratorState.IDLE
    assert orchestrator.session.scenes == []
    assert not orchestrator.session.is_busy
    assert notices == [ANALYSIS_FAILED_NOTICE]
    assert gateway.render_calls == []
    assert ArchiveStore(store).list() == []
    assert store.get(SESSION_KEY) is None


@pytest.mark.asyncio
async def test_failed_render_does_not_stop_the_run(make_orchestrator, store) -> None:
    gateway = FakeGateway(
        drafts=[make_draft("The gate opens."), make_draft("Crows scatter.", ShotType.B_ROLL)],
        images=[PNG_URI, None],
    )
    orchestrator = make_orchestrator(gateway)

    assert await orchestrator.submit("The gate opens. Crows scatter.") is True

    statuses = [s.status for s in orchestrator.session.scenes]
    assert statuses == [SceneStatus.COMPLETED, SceneStatus.FAILED]
    assert orchestrator.session.scenes[1].image_url is None
    assert len(ArchiveStore(store).list()) == 1


@pytest.mark.asyncio
async def test_retry_rerenders_only_the_target_scene(make_orchestrator) -> None:
    gateway = FakeGateway(
        drafts=[make_draft("The gate opens."), make_draft("Crows scatter.", ShotType.B_ROLL)],
        images=[PNG_URI, None],
    )
    orchestrator = make_orchestrator(gateway)
    await orchestrator.submit("The gate opens. Crows scatter.")
    first = orchestrator.session.scenes[0].model_copy(deep=True)
    second_id = orchestrator.session.scenes[1].id

    gateway.images = ["data:image/png;base64,AAAA"]
    assert await orchestrator.retry(second_id) is True

    assert len(gateway.render_calls) == 3
    assert gateway.render_calls[-1][0] == orchestrator.session.scenes[1].image_prompt
    assert orchestrator.session.scenes[1].status is SceneStatus.COMPLETED
    assert orchestrator.session.scenes[1].image_url == "data:image/png;base64,AAAA"
    assert orchestrator.session.scenes[0] == first


@pytest.mark.asyncio
async def test_retry_of_completed_scene_issues_exactly_one_call(make_orchestrator) -> None:
    gateway = FakeGateway(drafts=[make_draft("One."), make_draft("Two.")])
    orchestrator = make_orchestrator(gateway)
    await orchestrator.submit("One. Two.")
    other = orchestrator.session.scenes[1].model_copy(deep=True)

    await orchestrator.retry(orchestrator.session.scenes[0].id)

    assert len(gateway.render_calls) == 3
    assert orchestrator.session.scenes[1] == other


@pytest.mark.asyncio
async def test_retry_unknown_scene_is_a_noop(make_orchestrator) -> None:
    gateway = FakeGateway(drafts=[make_draft("One.")])
    orchestrator = make_orchestrator(gateway)
    await orchestrator.submit("One.")

    assert await orchestrator.retry("scene-missing") is False
    assert len(gateway.render_calls) == 1


@pytest.mark.asyncio
async def test_scene_list_matches_decomposition_order(make_orchestrator) -> None:
    drafts = [make_draft(f"Beat {i}.", ShotType.B_ROLL if i % 2 else ShotType.MAIN) for i in range(5)]
    gateway = FakeGateway(drafts=drafts)
    orchestrator = make_orchestrator(gateway)

    await orchestrator.submit("Five beats.")

    scenes = orchestrator.session.scenes
    assert [s.original_text for s in scenes] == [d.text for d in drafts]
    assert [s.shot_type for s in scenes] == [d.shot_type for d in drafts]
    assert len({s.id for s in scenes}) == 5
    assert len(gateway.decompose_calls) == 1


@pytest.mark.asyncio
async def test_renders_run_in_order_one_at_a_time(make_orchestrator) -> None:
    drafts = [make_draft(f"Beat {i}.") for i in range(4)]
    gateway = FakeGateway(drafts=drafts)
    orchestrator = make_orchestrator(gateway)
    observed: list[list[SceneStatus]] = []

    def before_render(prompt: str) -> None:
        observed.append([s.status for s in orchestrator.session.scenes])

    gateway.before_render = before_render
    await orchestrator.submit("Four beats.")

    assert [call[0] for call in gateway.render_calls] == [d.prompt for d in drafts]
    for i, statuses in enumerate(observed):
        assert all(s.is_terminal for s in statuses[:i])
        assert statuses[i] is SceneStatus.GENERATING
        assert all(s is SceneStatus.PENDING for s in statuses[i + 1:])


@pytest.mark.asyncio
async def test_render_uses_selected_aspect_ratio(make_orchestrator) -> None:
    gateway = FakeGateway(drafts=[make_draft("One.")])
    orchestrator = make_orchestrator(gateway)

    await orchestrator.submit("One.", "noir", AspectRatio.TALL)

    assert gateway.render_calls[0][1] == "9:16"
    assert orchestrator.session.aspect_ratio is AspectRatio.TALL


@pytest.mark.asyncio
async def test_blank_story_makes_no_calls(make_orchestrator) -> None:
    gateway = FakeGateway(drafts=[make_draft("One.")])
    orchestrator = make_orchestrator(gateway)

    assert await orchestrator.submit("   \n") is False
    assert gateway.decompose_calls == []


@pytest.mark.asyncio
async def test_submit_while_busy_is_refused(make_orchestrator) -> None:
    orchestrator = make_orchestrator(FakeGateway(drafts=[make_draft("One.")]))
    orchestrator.session.is_generating = True

    with pytest.raises(SessionBusyError):
        await orchestrator.submit("Another story.")


@pytest.mark.asyncio
async def test_archive_keeps_ten_most_recent_runs(make_orchestrator, store) -> None:
    gateway = FakeGateway()
    orchestrator = make_orchestrator(gateway)

    for i in range(11):
        gateway.drafts = [make_draft(f"Run {i}.")]
        await orchestrator.submit(f"Story {i}")

    projects = ArchiveStore(store).list()
    assert len(projects) == 10
    assert [p.story for p in projects] == [f"Story {i}" for i in range(10, 0, -1)]


@pytest.mark.asyncio
async def test_session_round_trips_through_storage(make_orchestrator, store) -> None:
    gateway = FakeGateway(
        drafts=[make_draft("The gate opens."), make_draft("Crows scatter.", ShotType.B_ROLL)],
        images=[PNG_URI, None],
    )
    orchestrator = make_orchestrator(gateway)
    await orchestrator.submit("The gate opens. Crows scatter.", "woodcut", "1:1")

    reloaded = Orchestrator(gateway=FakeGateway(), store=store)
    session = reloaded.resume()

    assert session.original_story == "The gate opens. Crows scatter."
    assert session.style_input == "woodcut"
    assert session.aspect_ratio is AspectRatio.SQUARE
    assert session.scenes == orchestrator.session.scenes
    assert reloaded.state is OrchestratorState.READY


def test_resume_marks_interrupted_scenes_failed(store) -> None:
    session = Session(
        original_story="Story",
        is_generating=True,
        scenes=[
            {"id": "scene-0-1", "originalText": "a", "imagePrompt": "p", "status": "completed", "imageUrl": PNG_URI},
            {"id": "scene-1-1", "originalText": "b", "imagePrompt": "p", "status": "generating"},
            {"id": "scene-2-1", "originalText": "c", "imagePrompt": "p", "status": "pending"},
        ],
    )
    store.set(SESSION_KEY, session.to_json())

    orchestrator = Orchestrator(gateway=FakeGateway(), store=store)
    resumed = orchestrator.resume()

    assert not resumed.is_busy
    assert [s.status for s in resumed.scenes] == [
        SceneStatus.COMPLETED,
        SceneStatus.FAILED,
        SceneStatus.FAILED,
    ]
    assert Session.from_json(store.get(SESSION_KEY)).scenes[2].status is SceneStatus.FAILED


def test_resume_with_corrupt_record_starts_empty(store) -> None:
    store.set(SESSION_KEY, "{not json")

    orchestrator = Orchestrator(gateway=FakeGateway(), store=store)

    assert orchestrator.resume().is_empty
    assert orchestrator.state is OrchestratorState.IDLE


@pytest.mark.asyncio
async def test_reset_requires_confirmation_and_keeps_archive(make_orchestrator, store) -> None:
    orchestrator = make_orchestrator(FakeGateway(drafts=[make_draft("One.")]))
    await orchestrator.submit("One.", "ink")

    assert orchestrator.reset(lambda message: False) is False
    assert store.get(SESSION_KEY) is not None

    assert orchestrator.reset(lambda message: True) is True
    assert orchestrator.state is OrchestratorState.IDLE
    assert orchestrator.session.original_story == ""
    assert orchestrator.session.style_input == ""
    assert store.get(SESSION_KEY) is None
    assert len(ArchiveStore(store).list()) == 1


@pytest.mark.asyncio
async def test_load_project_asks_before_discarding_work(make_orchestrator, store) -> None:
    gateway = FakeGateway(drafts=[make_draft("First.")])
    orchestrator = make_orchestrator(gateway)
    await orchestrator.submit("First story", aspect_ratio="9:16")
    first_id = ArchiveStore(store).list()[0].id

    gateway.drafts = [make_draft("Second."), make_draft("Third.")]
    await orchestrator.submit("Second story")

    prompts: list[str] = []

    def decline(message: str) -> bool:
        prompts.append(message)
        return False

    assert orchestrator.load_project(first_id, decline) is False
    assert len(prompts) == 1
    assert orchestrator.session.original_story == "Second story"

    assert orchestrator.load_project(first_id, lambda message: True) is True
    assert orchestrator.session.original_story == "First story"
    assert orchestrator.session.aspect_ratio is AspectRatio.TALL
    assert len(orchestrator.session.scenes) == 1
    assert Session.from_json(store.get(SESSION_KEY)).original_story == "First story"


def test_load_missing_project_notifies(make_orchestrator, notices) -> None:
    orchestrator = make_orchestrator(FakeGateway())

    assert orchestrator.load_project("proj-nope", lambda message: True) is False
    assert notices == ["No archived project proj-nope"]


@pytest.mark.asyncio
async def test_delete_project_leaves_live_session_alone(make_orchestrator, store) -> None:
    orchestrator = make_orchestrator(FakeGateway(drafts=[make_draft("One.")]))
    await orchestrator.submit("One.")
    project_id = ArchiveStore(store).list()[0].id
    before = orchestrator.session.model_copy(deep=True)

    assert orchestrator.delete_project(project_id) is True

    assert ArchiveStore(store).list() == []
    assert orchestrator.session == before
    assert store.get(SESSION_KEY) is not None


@pytest.mark.asyncio
async def test_render_exception_marks_scene_failed(make_orchestrator) -> None:
    gateway = FakeGateway(drafts=[make_draft("One."), make_draft("Two.")])

    def explode(prompt: str) -> None:
        if "One." in prompt:
            raise ConnectionError("socket closed")

    gateway.before_render = explode
    orchestrator = make_orchestrator(gateway)

    assert await orchestrator.submit("One. Two.") is True
    assert [s.status for s in orchestrator.session.scenes] == [
        SceneStatus.FAILED,
        SceneStatus.COMPLETED,
    ]


@pytest.mark.asyncio
async def test_failed_submit_does_not_bring_back_the_previous_session(make_orchestrator, store) -> None:
    gateway = FakeGateway(drafts=[make_draft("Old beat.")])
    orchestrator = make_orchestrator(gateway)
    await orchestrator.submit("Old story")
    assert store.get(SESSION_KEY) is not None

    gateway.drafts = []
    assert await orchestrator.submit("New story") is False

    assert store.get(SESSION_KEY) is None
    resumed = Orchestrator(gateway=FakeGateway(), store=store).resume()
    assert resumed.is_empty
    assert resumed.original_story == ""
    assert len(ArchiveStore(store).list()) == 1
