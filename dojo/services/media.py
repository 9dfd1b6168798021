"""Filesystem-backed media source: a gallery directory and a camera inbox."""

from __future__ import annotations

import asyncio
from pathlib import Path

from dojo.config import settings
from katalog.gateway import MediaSource

IMAGE_SUFFIXES = {".jpg", ".jpeg", ".png", ".webp", ".heic"}


def _images_in(directory: Path | None) -> list[Path]:
    if directory is None or not directory.is_dir():
        return []
    return [p for p in directory.iterdir() if p.is_file() and p.suffix.lower() in IMAGE_SUFFIXES]


class DirectoryMediaSource(MediaSource):
    """
    Gallery picks return every image in the gallery directory, by name.
    A camera capture returns the newest image in the camera directory,
    or None when there is none (the capture was cancelled).
    """

    def __init__(self, gallery_dir: str | Path | None = None, camera_dir: str | Path | None = None) -> None:
        gallery = gallery_dir or settings.MEDIA_GALLERY_DIR
        camera = camera_dir or settings.MEDIA_CAMERA_DIR
        self.gallery_dir = Path(gallery) if gallery else None
        self.camera_dir = Path(camera) if camera else None

    async def pick_images_from_gallery(self) -> list[Path]:
        images = await asyncio.to_thread(_images_in, self.gallery_dir)
        return sorted(images, key=lambda p: p.name)

    async def capture_image_with_camera(self) -> Path | None:
        images = await asyncio.to_thread(_images_in, self.camera_dir)
        if not images:
            return None
        return max(images, key=lambda p: p.stat().st_mtime)
