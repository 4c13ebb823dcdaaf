"""CLI entry point for the TubeMagic studio."""

import asyncio
import logging
import typer
from pathlib import Path
from typing import Optional

from . import __version__
from .assets import AssetResult, AssetStatus
from .config import config
from .errors import GenerationError
from .models import ImageSize, Project
from .store import LocalStorage, ProjectStore

app = typer.Typer(
    name="tubemagic",
    help="AI-powered YouTube automation studio",
    no_args_is_help=True
)


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
        typer.echo(f"tubemagic version {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: Optional[bool] = typer.Option(
        None,
        "--version",
        "-v",
        callback=version_callback,
        is_eager=True,
        help="Show version and exit"
    )
) -> None:
    """TubeMagic - Turn one idea into a full YouTube production package."""
    pass


def _prompt_credential() -> Optional[str]:
    return typer.prompt(
        "No Google credential selected. Path to a service account JSON (empty to skip)",
        default="",
        show_default=False,
    )


def _open_studio():
    from .studio import Studio

    try:
        return Studio.from_config(credential_prompt=_prompt_credential)
    except ValueError as e:
        typer.echo(f"❌ Configuration error: {e}")
        raise typer.Exit(1)


def _open_history() -> ProjectStore:
    store = ProjectStore(None, LocalStorage(config.storage_dir), history_limit=config.history_limit)
    store.load_history()
    return store


def _select(store: ProjectStore, project_id: str) -> Project:
    try:
        return store.select(project_id)
    except KeyError:
        typer.echo(f"❌ No project {project_id} in history")
        typer.echo("   Run 'tubemagic history' to list saved projects")
        raise typer.Exit(1)


def _echo_project(project: Project) -> None:
    typer.echo(f"📁 {project.youtube_title}")
    typer.echo(f"   ID: {project.id}")
    typer.echo(f"   Topic: {project.topic}")
    typer.echo(f"   Created: {project.created_at:%Y-%m-%d %H:%M}")
    typer.echo(f"   Thumbnail: {project.thumbnail_text}")
    typer.echo(f"   Music: {project.music_style}")
    typer.echo(f"   Tags: {', '.join(project.tags)}")
    typer.echo(f"   Hashtags: {' '.join(project.hashtags)}")

    typer.echo(f"\n📝 Script:\n{project.script}")

    typer.echo(f"\n🎙️  Voice-over:")
    for line in project.voice_over.splitlines():
        if line.strip():
            typer.echo(f"   {line.strip()}")

    typer.echo(f"\n📽️  Scenes:")
    for scene in project.scenes:
        if scene.video_url:
            media = f"🎞️  {scene.video_url}"
        elif scene.image_url:
            media = f"🖼️  {scene.image_url}"
        else:
            media = "no media yet"
        typer.echo(f"   • {scene.id}: {scene.text}")
        typer.echo(f"     {media}")


def _echo_result(result: AssetResult) -> bool:
    if result.status == AssetStatus.COMPLETED:
        typer.echo(f"   ✅ {result.scene_id}: {result.kind.value} → {result.output_uri}")
        return True
    if result.status == AssetStatus.FAILED:
        reason = result.error.reason if result.error else "Unknown error"
        typer.echo(f"   ❌ {result.scene_id}: {result.kind.value} failed - {reason}")
        return False
    typer.echo(f"   ⚠️  {result.scene_id}: {result.kind.value} {result.status.value}")
    return False


@app.command()
def produce(
    prompt: str = typer.Argument(
        ...,
        help="Video idea (e.g. '5 life-changing morning habits')"
    ),
    verbose: bool = typer.Option(
        False,
        "--verbose",
        help="Enable verbose logging"
    ),
) -> None:
    """Generate a full production package from one idea."""
    setup_logging(verbose)
    studio = _open_studio()

    typer.echo(f"🎬 Producing: {prompt}")
    try:
        project = asyncio.run(studio.store.create_project(prompt))
    except ValueError as e:
        typer.echo(f"❌ {e}")
        raise typer.Exit(1)
    except GenerationError:
        typer.echo(f"❌ {GenerationError.user_message}")
        raise typer.Exit(1)

    typer.echo("")
    _echo_project(project)
    typer.echo(f"\n✅ Saved to history as {project.id}")


@app.command()
def history() -> None:
    """List recent projects, newest first."""
    store = _open_history()
    if not store.history:
        typer.echo("No projects yet. Run 'tubemagic produce' to start one.")
        return

    for project in store.history:
        typer.echo(f"{project.id}  {project.created_at:%Y-%m-%d %H:%M}  {project.youtube_title}")


@app.command()
def show(
    project_id: str = typer.Argument(..., help="Project ID from 'tubemagic history'"),
) -> None:
    """Show a saved project."""
    store = _open_history()
    _echo_project(_select(store, project_id))


@app.command()
def image(
    project_id: str = typer.Argument(..., help="Project ID"),
    scene_id: str = typer.Argument(..., help="Scene ID (e.g. scene-0)"),
    size: ImageSize = typer.Option(
        ImageSize.K1,
        "--size",
        "-s",
        help="Resolution tier"
    ),
    verbose: bool = typer.Option(False, "--verbose", help="Enable verbose logging"),
) -> None:
    """Generate an image for one scene."""
    setup_logging(verbose)
    studio = _open_studio()
    _select(studio.store, project_id)

    typer.echo(f"🎨 Generating {size.value} ({size.label}) image for {scene_id}")
    try:
        result = asyncio.run(studio.assets.request_image(scene_id, size))
    except KeyError as e:
        typer.echo(f"❌ {e}")
        raise typer.Exit(1)

    if not _echo_result(result):
        raise typer.Exit(1)


@app.command()
def video(
    project_id: str = typer.Argument(..., help="Project ID"),
    scene_id: str = typer.Argument(..., help="Scene ID (e.g. scene-0)"),
    verbose: bool = typer.Option(False, "--verbose", help="Enable verbose logging"),
) -> None:
    """Generate a video for one scene. Waits for the video job to finish."""
    setup_logging(verbose)
    studio = _open_studio()
    _select(studio.store, project_id)

    typer.echo(f"🎬 Generating video for {scene_id} (this can take a few minutes)")
    try:
        result = asyncio.run(studio.assets.request_video(scene_id))
    except KeyError as e:
        typer.echo(f"❌ {e}")
        raise typer.Exit(1)

    if not _echo_result(result):
        raise typer.Exit(1)


@app.command()
def assets(
    project_id: str = typer.Argument(..., help="Project ID"),
    use_video: bool = typer.Option(
        False,
        "--video",
        help="Generate videos instead of images"
    ),
    size: ImageSize = typer.Option(
        ImageSize.K1,
        "--size",
        "-s",
        help="Resolution tier for images"
    ),
    verbose: bool = typer.Option(False, "--verbose", help="Enable verbose logging"),
) -> None:
    """Generate media for every scene of a project concurrently."""
    setup_logging(verbose)
    studio = _open_studio()
    project = _select(studio.store, project_id)

    kind = "videos" if use_video else f"{size.value} images"
    typer.echo(f"⏳ Generating {kind} for {len(project.scenes)} scenes...\n")
    results = asyncio.run(studio.assets.generate_all(size=size, video=use_video))

    successful = sum(1 for result in results if _echo_result(result))
    failed = len(results) - successful

    typer.echo(f"\n📊 Summary:")
    typer.echo(f"   Generated: {successful}")
    typer.echo(f"   Failed: {failed}")

    if failed > 0:
        raise typer.Exit(1)


@app.command()
def chat(
    verbose: bool = typer.Option(False, "--verbose", help="Enable verbose logging"),
) -> None:
    """Chat with the TubeMagic assistant. Type 'exit' to quit."""
    from .agents.assistant import GREETING

    setup_logging(verbose)
    studio = _open_studio()

    async def _converse() -> None:
        typer.echo(f"🤖 {GREETING}")
        while True:
            message = await asyncio.to_thread(typer.prompt, "You", default="", show_default=False)
            if message.strip().lower() in ("exit", "quit"):
                break
            if not message.strip():
                continue
            reply = await studio.chat.send(message)
            typer.echo(f"🤖 {reply.text}")

    asyncio.run(_converse())


@app.command()
def export(
    project_id: str = typer.Argument(..., help="Project ID"),
    output: Path = typer.Option(
        Path("production.yaml"),
        "--output",
        "-o",
        help="Output YAML file path"
    ),
) -> None:
    """Export a saved production package to YAML."""
    store = _open_history()
    project = _select(store, project_id)

    try:
        output.parent.mkdir(parents=True, exist_ok=True)
        project.to_yaml(output)
    except OSError as e:
        typer.echo(f"❌ Error saving package: {e}")
        raise typer.Exit(1)

    typer.echo(f"✅ Package saved: {output}")


if __name__ == "__main__":
    app()
