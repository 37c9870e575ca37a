"""Image file discovery, decoding and writing."""

from __future__ import annotations

from pathlib import Path
from typing import List, Sequence

import numpy as np
from PIL import Image, UnidentifiedImageError

from lenscal.core.errors import ImageReadError


JPEG_SUFFIXES = (".jpg", ".jpeg")
JPEG_QUALITY = 95


def list_image_files(folder: Path, extensions: Sequence[str] = ("jpg",)) -> List[Path]:
    """Sorted image files in folder whose suffix matches one of extensions."""
    folder = Path(folder)
    if not folder.is_dir():
        raise FileNotFoundError(f"Image directory not found: {folder}")
    wanted = {"." + str(e).lstrip(".").lower() for e in extensions}
    return sorted(p for p in folder.iterdir() if p.is_file() and p.suffix.lower() in wanted)


def read_image(path: Path) -> np.ndarray:
    """Decode an image to an RGB uint8 array (H, W, 3)."""
    try:
        with Image.open(path) as img:
            arr = np.array(img.convert("RGB"), dtype=np.uint8)
    except (UnidentifiedImageError, OSError, ValueError) as exc:
        raise ImageReadError(f"cannot decode {path}: {exc}") from exc
    return arr


def write_image(path: Path, image: np.ndarray) -> Path:
    path = Path(path)
    img = Image.fromarray(np.ascontiguousarray(image.astype(np.uint8)))
    if path.suffix.lower() in JPEG_SUFFIXES:
        # Pillow defaults to quality 75 with 4:2:0 chroma.
        img.save(path, quality=JPEG_QUALITY, subsampling=0)
    else:
        img.save(path)
    return path


def image_size(image: np.ndarray) -> tuple[int, int]:
    """(width, height) of a pixel buffer."""
    return int(image.shape[1]), int(image.shape[0])
