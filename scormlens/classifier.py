"""
classifier.py - Sort archive entries into content buckets

Every non-directory entry except the manifest lands in exactly one bucket.
Video and audio entries are read into MediaFile records; everything else
is listed by path.
"""

import logging
import mimetypes
from concurrent.futures import ThreadPoolExecutor
from typing import Any, Callable, Dict, Iterable, List, Optional, Tuple, TypeVar

from scormlens.archive import ENTRY_READ_ERRORS, ScormArchive, extension_of
from scormlens.config_utils import AnalyzerConfig
from scormlens.models import CATEGORY_KEYS, MEDIA_CATEGORIES, MediaFile

logger = logging.getLogger(__name__)

T = TypeVar("T")
R = TypeVar("R")


# Checked in CATEGORY_KEYS order; ".ogg" is claimed by videos before audio
CATEGORY_EXTENSIONS: Dict[str, Tuple[str, ...]] = {
    "html": (".html", ".htm"),
    "videos": (".mp4", ".webm", ".ogg", ".ogv", ".mov", ".avi", ".wmv", ".flv", ".m4v"),
    "audio": (".mp3", ".wav", ".ogg", ".m4a", ".aac", ".wma", ".flac"),
    "images": (".jpg", ".jpeg", ".png", ".gif", ".svg", ".webp", ".bmp", ".ico"),
    "javascript": (".js",),
    "css": (".css",),
}

MIME_TYPES = {
    ".mp4": "video/mp4",
    ".webm": "video/webm",
    ".ogg": "video/ogg",
    ".ogv": "video/ogg",
    ".mov": "video/quicktime",
    ".avi": "video/x-msvideo",
    ".wmv": "video/x-ms-wmv",
    ".flv": "video/x-flv",
    ".m4v": "video/x-m4v",
    ".mp3": "audio/mpeg",
    ".wav": "audio/wav",
    ".m4a": "audio/mp4",
    ".aac": "audio/aac",
    ".wma": "audio/x-ms-wma",
    ".flac": "audio/flac",
}


def run_ordered(func: Callable[[T], R], items: Iterable[T], max_workers: int) -> List[R]:
    """
    Apply func to every item, concurrently when max_workers > 1.

    Results come back in input order regardless of completion order.
    """
    items = list(items)
    if max_workers <= 1 or len(items) <= 1:
        return [func(item) for item in items]
    with ThreadPoolExecutor(max_workers=max_workers) as executor:
        return list(executor.map(func, items))


def category_for(name: str) -> str:
    ext = extension_of(name)
    for category in CATEGORY_KEYS:
        if ext in CATEGORY_EXTENSIONS.get(category, ()):
            return category
    return "other"


def mime_type_for(name: str) -> str:
    ext = extension_of(name)
    if ext in MIME_TYPES:
        return MIME_TYPES[ext]
    guessed, _ = mimetypes.guess_type(name)
    return guessed or "application/octet-stream"


def is_manifest(name: str, manifest_name: str) -> bool:
    return name.lower() == manifest_name.lower()


def categorize_files(
    archive: ScormArchive,
    config: Optional[AnalyzerConfig] = None,
    warnings: Optional[List[str]] = None,
) -> Dict[str, Tuple[Any, ...]]:
    """
    Partition archive entries by category.

    A media entry that cannot be read is kept with empty data and a
    message is appended to warnings (when given).

    Returns:
        Dict keyed by every CATEGORY_KEYS entry. Media buckets hold
        MediaFile records, the rest hold entry paths. Order follows the
        archive's enumeration order.
    """
    config = config or AnalyzerConfig()
    names = [n for n in archive.names if not is_manifest(n, config.manifest_name)]

    def classify(name: str):
        category = category_for(name)
        if category not in MEDIA_CATEGORIES:
            return category, name, None
        data, warning = b"", None
        if config.materialize_media:
            try:
                data = archive.read_bytes(name)
            except ENTRY_READ_ERRORS as e:
                # Listed without a payload; the rest of the package is still usable
                warning = f"Could not read media file {name}: {e}"
                logger.warning(warning)
        return category, MediaFile(
            path=name,
            size=archive.size_of(name),
            mime_type=mime_type_for(name),
            data=data,
        ), warning

    buckets: Dict[str, List[Any]] = {key: [] for key in CATEGORY_KEYS}
    for category, entry, warning in run_ordered(classify, names, config.max_workers):
        buckets[category].append(entry)
        if warning and warnings is not None:
            warnings.append(warning)

    logger.debug(
        "Classified %d entries: %s",
        len(names),
        ", ".join(f"{k}={len(v)}" for k, v in buckets.items() if v),
    )
    return {key: tuple(values) for key, values in buckets.items()}


def caption_files(archive: ScormArchive, config: Optional[AnalyzerConfig] = None) -> Tuple[str, ...]:
    """Entries that look like captions or transcripts."""
    config = config or AnalyzerConfig()
    extensions = {e.lower() for e in config.caption_extensions}
    return tuple(n for n in archive.names if extension_of(n) in extensions)
