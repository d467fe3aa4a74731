"""Image utility functions: thumbnail derivation and upload-tree helpers"""

import asyncio
import io
import logging
import os
import re
from pathlib import Path
from typing import List, Optional, Union

from PIL import Image, ImageOps

from apps.api.services.media_storage import LOCAL_URL_PREFIX

logger = logging.getLogger("artshare.images")

# Target boxes per derivative size key
IMAGE_SIZES = {
    "thumbnail": (400, 400),
    "medium": (800, 800),
    "large": (1600, 1600),
}

SUPPORTED_FORMATS = (".jpg", ".jpeg", ".png", ".webp", ".gif")

THUMBNAIL_QUALITY = 80
THUMBNAIL_FORMAT = "webp"

_THUMBNAIL_NAME = re.compile(
    r"_(?:" + "|".join(IMAGE_SIZES) + r")\.(?:webp|jpg|jpeg|png)$",
    re.IGNORECASE,
)

PathLike = Union[str, Path]


def is_image_file(filename: PathLike) -> bool:
    """Check whether a file name has a supported image extension"""
    return Path(filename).suffix.lower() in SUPPORTED_FORMATS


def is_thumbnail_name(name: str) -> bool:
    """Check whether a file name looks like a derivative, e.g. photo_thumbnail.webp"""
    return bool(_THUMBNAIL_NAME.search(name))


def get_thumbnail_path(original_path: PathLike, size: str = "thumbnail") -> Path:
    """Sibling path of the derivative for one size key"""
    original = Path(original_path)
    return original.with_name(f"{original.stem}_{size}.{THUMBNAIL_FORMAT}")


def derivative_paths(original_path: PathLike) -> List[Path]:
    """
    All sibling paths a derivative of this original could have been written to.

    Covers the WebP derivatives and the older same-format naming.
    """
    original = Path(original_path)
    paths = []
    for size in IMAGE_SIZES:
        paths.append(original.with_name(f"{original.stem}_{size}.{THUMBNAIL_FORMAT}"))
        if original.suffix and original.suffix.lower() != f".{THUMBNAIL_FORMAT}":
            paths.append(original.with_name(f"{original.stem}_{size}{original.suffix}"))
    return paths


def _prepare_for_webp(img: Image.Image) -> Image.Image:
    # Respect camera orientation before measuring
    img = ImageOps.exif_transpose(img)
    if img.mode in ("RGB", "RGBA"):
        return img
    if img.mode in ("P", "LA", "PA") or "transparency" in img.info:
        return img.convert("RGBA")
    return img.convert("RGB")


def _render(img: Image.Image, width: int, height: int, quality: int, fmt: str) -> bytes:
    img = _prepare_for_webp(img)
    # thumbnail() fits inside the box, keeps aspect ratio and never enlarges
    img.thumbnail((width, height), Image.Resampling.LANCZOS)

    buffer = io.BytesIO()
    if fmt == "jpeg":
        img.convert("RGB").save(buffer, format="JPEG", quality=quality, progressive=True)
    elif fmt == "png":
        img.save(buffer, format="PNG", compress_level=9)
    else:
        img.save(buffer, format="WEBP", quality=quality)
    return buffer.getvalue()


def generate_optimized_image(
    input_path: PathLike,
    output_path: PathLike,
    width: Optional[int] = None,
    height: Optional[int] = None,
    quality: int = THUMBNAIL_QUALITY,
    format: str = THUMBNAIL_FORMAT,
) -> bool:
    """
    Resize and re-encode an image file.

    Args:
        input_path: Source image on disk
        output_path: Destination file (parent directories are created)
        width: Box width, defaults to the source width
        height: Box height, defaults to the source height
        quality: Lossy quality for webp/jpeg
        format: 'webp', 'jpeg' or 'png'

    Returns:
        True on success, False if the image could not be processed
    """
    try:
        with Image.open(input_path) as img:
            img.load()
            data = _render(img, width or img.width, height or img.height, quality, format)
        output = Path(output_path)
        output.parent.mkdir(parents=True, exist_ok=True)
        output.write_bytes(data)
        return True
    except Exception as e:
        logger.warning(f"Generate optimized image failed for {input_path}: {e}")
        return False


async def generate_thumbnail(
    source_path: PathLike,
    size: str = "thumbnail",
    storage_root: Optional[PathLike] = None,
) -> Optional[str]:
    """
    Write a WebP derivative next to an uploaded image.

    Args:
        source_path: Original image inside the local storage root
        size: One of IMAGE_SIZES
        storage_root: Local storage root that maps to the /uploads/ prefix

    Returns:
        Servable URL of the derivative, or None for non-images and failures
    """
    if not is_image_file(source_path) or size not in IMAGE_SIZES:
        return None

    width, height = IMAGE_SIZES[size]
    output_path = get_thumbnail_path(source_path, size)

    loop = asyncio.get_running_loop()
    ok = await loop.run_in_executor(
        None,
        lambda: generate_optimized_image(
            source_path, output_path, width=width, height=height,
            quality=THUMBNAIL_QUALITY, format=THUMBNAIL_FORMAT
        )
    )
    if not ok:
        return None

    if storage_root is None:
        return output_path.as_posix()
    try:
        relative = output_path.resolve().relative_to(Path(storage_root).resolve())
    except ValueError:
        logger.warning(f"Thumbnail {output_path} is outside storage root {storage_root}")
        return None
    return LOCAL_URL_PREFIX + relative.as_posix().replace("\\", "/")


def make_thumbnail_bytes(data: bytes, size: str = "thumbnail") -> Optional[bytes]:
    """Buffer-to-buffer derivative with the same policy as generate_thumbnail"""
    if size not in IMAGE_SIZES:
        return None
    width, height = IMAGE_SIZES[size]
    try:
        with Image.open(io.BytesIO(data)) as img:
            img.load()
            return _render(img, width, height, THUMBNAIL_QUALITY, THUMBNAIL_FORMAT)
    except Exception as e:
        logger.warning(f"Generate thumbnail from buffer failed: {e}")
        return None


async def generate_thumbnail_from_bytes(data: bytes, size: str = "thumbnail") -> Optional[bytes]:
    """Run make_thumbnail_bytes off the event loop"""
    loop = asyncio.get_running_loop()
    return await loop.run_in_executor(None, make_thumbnail_bytes, data, size)


def delete_file_with_thumbnails(file_path: PathLike) -> bool:
    """
    Remove an original and every derivative sibling.

    Missing files are ignored; any other OSError propagates.

    Returns:
        True if the original existed
    """
    path = Path(file_path)
    existed = False
    try:
        path.unlink()
        existed = True
    except FileNotFoundError:
        pass
    for derivative in derivative_paths(path):
        try:
            derivative.unlink()
        except FileNotFoundError:
            continue
    return existed


def get_directory_size(dir_path: PathLike) -> int:
    """Total size in bytes of the regular files below a directory"""
    total = 0
    root = Path(dir_path)
    if not root.exists():
        return 0
    for current, _dirs, files in os.walk(root):
        for name in files:
            try:
                total += (Path(current) / name).stat().st_size
            except OSError as e:
                logger.warning(f"Could not stat {name} in {current}: {e}")
    return total


def format_file_size(num_bytes: int) -> str:
    """Human readable size, e.g. 1536 -> '1.5 KB'"""
    if num_bytes <= 0:
        return "0 B"
    units = ["B", "KB", "MB", "GB", "TB"]
    value = float(num_bytes)
    i = 0
    while value >= 1024 and i < len(units) - 1:
        value /= 1024
        i += 1
    text = ("%.2f" % value).rstrip("0").rstrip(".")
    return f"{text} {units[i]}"
