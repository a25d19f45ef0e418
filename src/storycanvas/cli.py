"""CLI entry point for StoryCanvas."""

import asyncio
import logging
from datetime import datetime
from pathlib import Path
from typing import Optional

import typer

from . import __version__
from .archive import ArchiveStore
from .config import config
from .errors import ConfigurationError
from .export import default_export_name, export_zip, save_scene_image, scene_file_name
from .gateway import AIGateway
from .models import AspectRatio, Scene, SceneStatus
from .orchestrator import DISCARD_PROMPT, Orchestrator
from .storage import JsonFileStore

app = typer.Typer(
    name="storycanvas",
    help="Turn stories into illustrated, directed scenes",
    no_args_is_help=True
)
history_app = typer.Typer(help="Browse the archive of completed runs", no_args_is_help=True)
app.add_typer(history_app, name="history")

STATUS_ICONS = {
    SceneStatus.PENDING: "⏳",
    SceneStatus.GENERATING: "🎨",
    SceneStatus.COMPLETED: "✅",
    SceneStatus.FAILED: "❌",
}


def setup_logging(verbose: bool = False) -> None:
    """Configure logging."""
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(levelname)s: %(message)s",
    )


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        typer.echo(f"storycanvas version {__version__}")
        raise typer.Exit()


def _notify(message: str) -> None:
    typer.echo(f"⚠️  {message}")


def _show_progress(scene: Scene) -> None:
    if scene.status.is_terminal:
        typer.echo(f"   {STATUS_ICONS[scene.status]} {scene.id}: {scene.status.value}")


def _confirm(assume_yes: bool):
    def confirm(message: str) -> bool:
        return assume_yes or typer.confirm(message)
    return confirm


def _orchestrator(gateway: Optional[AIGateway] = None) -> Orchestrator:
    store = JsonFileStore(config.storage_dir)
    orchestrator = Orchestrator(
        gateway=gateway or AIGateway(config),
        store=store,
        archive=ArchiveStore(store),
        notifier=_notify,
        on_progress=_show_progress,
    )
    orchestrator.resume()
    return orchestrator


def _configured_gateway() -> AIGateway:
    gateway = AIGateway(config)
    try:
        gateway.check_configuration()
    except ConfigurationError as e:
        typer.echo(f"❌ Configuration error: {e}")
        raise typer.Exit(1)
    return gateway


def _preview(text: str, width: int = 70) -> str:
    return text[:width] + "..." if len(text) > width else text


@app.callback()
def main(
    version: Optional[bool] = typer.Option(
        None,
        "--version",
        callback=version_callback,
        is_eager=True,
        help="Show version and exit"
    )
) -> None:
    """StoryCanvas - Direct your story as a sequence of cinematic shots."""
    pass


@app.command()
def generate(
    story: Optional[str] = typer.Argument(
        None,
        help="Story text to illustrate"
    ),
    story_file: Optional[Path] = typer.Option(
        None,
        "--file",
        "-f",
        help="Read the story from a text file",
        exists=True,
        file_okay=True,
        dir_okay=False
    ),
    style: str = typer.Option(
        "",
        "--style",
        "-s",
        help="Visual style directive (e.g., 'watercolor', 'film noir')"
    ),
    aspect_ratio: AspectRatio = typer.Option(
        AspectRatio.WIDE,
        "--aspect-ratio",
        "-a",
        help="Image aspect ratio"
    ),
    yes: bool = typer.Option(
        False,
        "--yes",
        "-y",
        help="Discard the current session without asking"
    ),
    verbose: bool = typer.Option(
        False,
        "--verbose",
        "-v",
        help="Enable verbose logging"
    ),
) -> None:
    """Decompose a story into scenes and render an image for each one."""
    setup_logging(verbose)

    if story_file is not None:
        story = story_file.read_text(encoding="utf-8")

    if not story or not story.strip():
        typer.echo("❌ Provide a story as an argument or with --file")
        raise typer.Exit(1)

    orchestrator = _orchestrator(_configured_gateway())

    if not orchestrator.session.is_empty and not _confirm(yes)(DISCARD_PROMPT):
        typer.echo("Cancelled")
        raise typer.Exit(1)

    typer.echo(f"🎬 Analyzing story ({len(story)} chars)")
    if style:
        typer.echo(f"   Style: {style}")
    typer.echo(f"   Aspect ratio: {aspect_ratio.value}")

    ok = asyncio.run(orchestrator.submit(story, style, aspect_ratio))
    if not ok:
        raise typer.Exit(1)

    session = orchestrator.session
    completed = session.count(SceneStatus.COMPLETED)
    failed = session.count(SceneStatus.FAILED)

    typer.echo(f"\n📊 Summary:")
    typer.echo(f"   Scenes: {len(session.scenes)}")
    typer.echo(f"   Completed: {completed}")
    typer.echo(f"   Failed: {failed}")

    if failed:
        typer.echo(f"\n⚠️  {failed} scene(s) failed. Use 'storycanvas retry <scene-id>' to try again.")
    else:
        typer.echo(f"\n✅ All scenes rendered!")


@app.command()
def status() -> None:
    """Show the current session."""
    orchestrator = _orchestrator(AIGateway(config))
    session = orchestrator.session

    if session.is_empty:
        typer.echo("📭 No active session")
        typer.echo("   Run 'storycanvas generate' to start one")
        return

    typer.echo(f"📁 Story: {_preview(session.original_story)}")
    if session.style_input:
        typer.echo(f"   Style: {session.style_input}")
    typer.echo(f"   Aspect ratio: {session.aspect_ratio.value}")
    typer.echo(f"   State: {orchestrator.state.value}")

    typer.echo("\n📽️  Scenes:")
    for scene in session.scenes:
        typer.echo(f"   {STATUS_ICONS[scene.status]} {scene.id} [{scene.shot_type.value}]")
        typer.echo(f"      → {_preview(scene.original_text, 60)}")
        typer.echo(f"      🎥 {_preview(scene.motion_prompt, 60)}")


@app.command()
def retry(
    scene_id: str = typer.Argument(..., help="Scene identifier to re-render"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable verbose logging"),
) -> None:
    """Re-render a single scene."""
    setup_logging(verbose)
    orchestrator = _orchestrator(_configured_gateway())

    if not asyncio.run(orchestrator.retry(scene_id)):
        typer.echo(f"❌ No scene {scene_id} in the current session")
        raise typer.Exit(1)

    scene = orchestrator.session.find_scene(scene_id)
    if scene.status != SceneStatus.COMPLETED:
        typer.echo(f"❌ {scene_id}: no image obtained")
        raise typer.Exit(1)
    typer.echo(f"✅ {scene_id}: rendered")


def _scene_or_exit(orchestrator: Orchestrator, scene_id: str) -> tuple[int, Scene]:
    for number, scene in enumerate(orchestrator.session.scenes, start=1):
        if scene.id == scene_id:
            return number, scene
    typer.echo(f"❌ No scene {scene_id} in the current session")
    raise typer.Exit(1)


@app.command()
def show(
    scene_id: str = typer.Argument(..., help="Scene identifier"),
) -> None:
    """Print a scene's excerpt, full image prompt and motion direction."""
    orchestrator = _orchestrator(AIGateway(config))
    number, scene = _scene_or_exit(orchestrator, scene_id)

    typer.echo(f"🎬 Shot #{number} [{scene.shot_type.value}] {STATUS_ICONS[scene.status]} {scene.status.value}")
    typer.echo(f"\n\"{scene.original_text}\"")
    typer.echo(f"\n🖼️  Image prompt:\n{scene.image_prompt}")
    typer.echo(f"\n🎥 Motion direction:\n{scene.motion_prompt}")


@app.command()
def save(
    scene_id: str = typer.Argument(..., help="Scene identifier"),
    output: Optional[Path] = typer.Option(
        None,
        "--output",
        "-o",
        help="Output image path (defaults to <shot-type>-scene-<n>.png)"
    ),
) -> None:
    """Save one scene's rendered image."""
    orchestrator = _orchestrator(AIGateway(config))
    number, scene = _scene_or_exit(orchestrator, scene_id)

    if not scene.image_url:
        typer.echo(f"❌ {scene_id} has no image yet")
        raise typer.Exit(1)

    output = output or Path(scene_file_name(scene, number))
    try:
        save_scene_image(scene, output)
    except Exception as e:
        typer.echo(f"❌ Error saving image: {e}")
        raise typer.Exit(1)
    typer.echo(f"💾 Saved {output}")


@app.command()
def reset(
    yes: bool = typer.Option(False, "--yes", "-y", help="Skip confirmation"),
) -> None:
    """Clear the current session. The archive is kept."""
    orchestrator = _orchestrator(AIGateway(config))
    if orchestrator.reset(_confirm(yes)):
        typer.echo("🧹 Session cleared")
    else:
        typer.echo("Cancelled")


@app.command()
def export(
    output: Optional[Path] = typer.Option(
        None,
        "--output",
        "-o",
        help="Output zip path"
    ),
) -> None:
    """Export rendered scenes and a manifest as a zip archive."""
    orchestrator = _orchestrator(AIGateway(config))
    session = orchestrator.session

    if not session.all_settled:
        typer.echo("❌ Nothing to export until every scene has finished rendering")
        raise typer.Exit(1)

    output = output or Path(default_export_name())
    result = export_zip(session, output)

    typer.echo(f"📦 Exported {len(result.written)} shots: {result.path}")
    if result.skipped:
        typer.echo(f"⚠️  Skipped {len(result.skipped)} shot(s): {', '.join(result.skipped)}")


@history_app.command("list")
def history_list() -> None:
    """List archived projects, newest first."""
    archive = ArchiveStore(JsonFileStore(config.storage_dir))
    projects = archive.list()

    if not projects:
        typer.echo("No archived productions found.")
        return

    for project in projects:
        created = datetime.fromtimestamp(project.timestamp / 1000).strftime("%Y-%m-%d %H:%M")
        typer.echo(f"🗂️  {project.id}  {created}  {len(project.scenes)} scenes")
        typer.echo(f"   \"{_preview(project.story, 60)}\"")


@history_app.command("load")
def history_load(
    project_id: str = typer.Argument(..., help="Archived project identifier"),
    yes: bool = typer.Option(False, "--yes", "-y", help="Skip confirmation"),
) -> None:
    """Replace the current session with an archived project."""
    orchestrator = _orchestrator(AIGateway(config))
    if not orchestrator.load_project(project_id, _confirm(yes)):
        raise typer.Exit(1)
    typer.echo(f"✅ Loaded {project_id} ({len(orchestrator.session.scenes)} scenes)")


@history_app.command("delete")
def history_delete(
    project_id: str = typer.Argument(..., help="Archived project identifier"),
) -> None:
    """Delete an archived project."""
    archive = ArchiveStore(JsonFileStore(config.storage_dir))
    if not archive.delete(project_id):
        typer.echo(f"❌ No archived project {project_id}")
        raise typer.Exit(1)
    typer.echo(f"🗑️  Deleted {project_id}")


if __name__ == "__main__":
    app()
