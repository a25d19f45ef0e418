"""Bulk export of rendered scenes to a zip archive."""

import base64
import logging
import time
import zipfile
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Optional

import requests

from .models import Scene, Session, ShotType

logger = logging.getLogger(__name__)

MAIN_FOLDER = "01_Main_Scenes"
BROLL_FOLDER = "02_B_Roll_Shots"
MANIFEST_NAME = "manifest.txt"

ImageFetcher = Callable[[str], bytes]


@dataclass
class ExportResult:
    """Outcome of an export."""

    path: Path
    written: list[str] = field(default_factory=list)
    skipped: list[str] = field(default_factory=list)


def default_export_name() -> str:
    return f"storycanvas-export-{int(time.time() * 1000)}.zip"


def fetch_image(url: str, timeout: float = 30.0) -> bytes:
    """Return the bytes behind a data URI or an http(s) URL."""
    if url.startswith("data:"):
        header, _, payload = url.partition(",")
        if ";base64" not in header:
            raise ValueError("Only base64 data URIs are supported")
        return base64.b64decode(payload, validate=True)

    response = requests.get(url, timeout=timeout)
    response.raise_for_status()
    return response.content


def export_zip(
    session: Session,
    output_path: Path,
    fetch: Optional[ImageFetcher] = None,
) -> ExportResult:
    """Write every rendered scene image plus a manifest to a zip file.

    Images are grouped by shot type. An image that cannot be fetched is
    logged and left out; the export carries on with the rest.

    Args:
        session: Session whose scenes are exported.
        output_path: Destination zip path.
        fetch: Function returning image bytes for a scene image reference.

    Returns:
        ExportResult listing written and skipped scene ids.
    """
    fetch = fetch or fetch_image
    result = ExportResult(path=output_path)

    notes = [
        "STORYCANVAS PRODUCTION NOTES",
        "============================\n",
        f"Story: {session.original_story}\n",
    ]

    output_path.parent.mkdir(parents=True, exist_ok=True)
    with zipfile.ZipFile(output_path, "w", compression=zipfile.ZIP_DEFLATED) as zf:
        shots = [scene for scene in session.scenes if scene.image_url]
        for number, scene in enumerate(shots, start=1):
            try:
                data = fetch(scene.image_url)
            except Exception as e:
                logger.error(f"Skipping {scene.id}, image fetch failed: {e}")
                result.skipped.append(scene.id)
                continue

            folder = MAIN_FOLDER if scene.shot_type == ShotType.MAIN else BROLL_FOLDER
            zf.writestr(f"{folder}/shot-{number}.png", data)
            notes.append(f"[SHOT {number}] {scene.original_text}\n")
            result.written.append(scene.id)

        zf.writestr(MANIFEST_NAME, "\n".join(notes))

    logger.info(f"Exported {len(result.written)} shots to {output_path}")
    return result


def scene_file_name(scene: Scene, number: int) -> str:
    """Download name for one scene image, e.g. ``b-roll-scene-2.png``."""
    return f"{scene.shot_type.value}-scene-{number}.png"


def save_scene_image(
    scene: Scene,
    output_path: Path,
    fetch: Optional[ImageFetcher] = None,
) -> Path:
    """Write a single scene's image to ``output_path``.

    Raises:
        ValueError: If the scene has no image.
    """
    if not scene.image_url:
        raise ValueError(f"Scene {scene.id} has no image")

    data = (fetch or fetch_image)(scene.image_url)
    output_path.parent.mkdir(parents=True, exist_ok=True)
    output_path.write_bytes(data)
    logger.info(f"Saved {scene.id} to {output_path}")
    return output_path
