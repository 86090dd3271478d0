"""
archive.py - Read-only view over a SCORM ZIP archive

ScormArchive wraps the caller's bytes and never mutates them. Repairs go
through ``working_copy()``, whose ``replace``/``rename`` calls are recorded
as overrides and only materialized by ``to_bytes()``.
"""

from __future__ import annotations

import io
import logging
import threading
import zipfile
import zlib
from pathlib import Path, PurePosixPath
from typing import Dict, List, Optional, Union
from urllib.parse import unquote

from scormlens.errors import archive_unreadable_error

logger = logging.getLogger(__name__)

# Raised by zipfile when a single entry cannot be read back (bad CRC,
# truncated deflate stream, encrypted member)
ENTRY_READ_ERRORS = (zipfile.BadZipFile, zlib.error, RuntimeError, OSError, EOFError)


def normalize_href(href: str) -> str:
    """Strip query/fragment and percent-encoding so an href can be looked up as an entry."""
    path = href.split("#", 1)[0].split("?", 1)[0].strip()
    path = unquote(path).replace("\\", "/")
    while path.startswith("./"):
        path = path[2:]
    return path.lstrip("/")


def extension_of(name: str) -> str:
    """Lowercased extension including the dot ('' if none)."""
    return PurePosixPath(name).suffix.lower()


class ScormArchive:
    """Named, lazily-read entries of a ZIP archive"""

    def __init__(self, data: bytes, source: str = "<bytes>"):
        self.source = source
        self._data = bytes(data)
        self._lock = threading.Lock()
        try:
            self._zip = zipfile.ZipFile(io.BytesIO(self._data))
            self._all_infos = self._zip.infolist()
            self._infos = [info for info in self._all_infos if not info.is_dir()]
        except (zipfile.BadZipFile, zipfile.LargeZipFile, OSError, ValueError) as e:
            raise archive_unreadable_error(source, cause=e)

        self._by_name: Dict[str, zipfile.ZipInfo] = {}
        for info in self._infos:
            # First occurrence wins for duplicated names
            self._by_name.setdefault(info.filename, info)

    @classmethod
    def from_path(cls, path: Union[str, Path]) -> ScormArchive:
        p = Path(path)
        try:
            data = p.read_bytes()
        except OSError as e:
            raise archive_unreadable_error(str(p), cause=e)
        return cls(data, source=str(p))

    # ------------------------------------------------------------------
    # Lookup
    # ------------------------------------------------------------------

    @property
    def names(self) -> List[str]:
        """Non-directory entry names in archive enumeration order."""
        return [info.filename for info in self._infos]

    @property
    def raw_bytes(self) -> bytes:
        return self._data

    def __contains__(self, name: str) -> bool:
        return name in self._by_name

    def __len__(self) -> int:
        return len(self._infos)

    def find(self, name: str) -> Optional[str]:
        """Exact-name lookup."""
        return name if name in self._by_name else None

    def find_case_insensitive(self, name: str) -> Optional[str]:
        """First entry whose name matches ignoring case."""
        wanted = name.lower()
        for entry in self.names:
            if entry.lower() == wanted:
                return entry
        return None

    def resolve_href(self, href: str) -> Optional[str]:
        """Entry name an href points at, or None."""
        if not href:
            return None
        if href in self._by_name:
            return href
        path = normalize_href(href)
        return path if path in self._by_name else None

    def size_of(self, name: str) -> int:
        return self._by_name[name].file_size

    # ------------------------------------------------------------------
    # Reading
    # ------------------------------------------------------------------

    def read_bytes(self, name: str) -> bytes:
        # One shared ZIP handle; concurrent readers take turns
        with self._lock:
            return self._zip.read(self._by_name[name])

    def unreadable_entries(self) -> List[str]:
        """Entries whose data cannot be read back (bad CRC, broken stream, encrypted)."""
        bad = []
        for name in self.names:
            try:
                self.read_bytes(name)
            except ENTRY_READ_ERRORS as e:
                logger.debug("Unreadable entry %s: %s", name, e)
                bad.append(name)
        return bad

    def read_text(self, name: str) -> str:
        return decode_text(self.read_bytes(name))

    def working_copy(self) -> WorkingCopy:
        return WorkingCopy(self)


def decode_text(data: bytes) -> str:
    """Decode entry bytes as UTF-8 (BOM tolerated), falling back to cp1252."""
    try:
        return data.decode("utf-8-sig")
    except UnicodeDecodeError:
        return data.decode("cp1252", errors="replace")


class WorkingCopy:
    """Copy-on-write overlay used by the repairer"""

    def __init__(self, original: ScormArchive):
        self.original = original
        self._overrides: Dict[str, bytes] = {}
        self._removed: set = set()

    @property
    def dirty(self) -> bool:
        return bool(self._overrides or self._removed)

    def replace(self, name: str, data: Union[str, bytes]):
        if isinstance(data, str):
            data = data.encode("utf-8")
        self._overrides[name] = data
        self._removed.discard(name)

    def rename(self, old: str, new: str):
        data = self._overrides.pop(old, None)
        if data is None:
            data = self.original.read_bytes(old)
        self._removed.add(old)
        self._overrides[new] = data

    def to_bytes(self) -> bytes:
        """Rebuild the archive; untouched entries are copied as-is, in order."""
        buffer = io.BytesIO()
        written = set()
        with zipfile.ZipFile(buffer, "w", zipfile.ZIP_DEFLATED) as zf:
            for name in self._overrides:
                if name not in self.original:
                    zf.writestr(name, self._overrides[name])
                    written.add(name)
            for info in self.original._all_infos:
                name = info.filename
                if name in self._removed or name in written:
                    continue
                if info.is_dir():
                    zf.writestr(_clone_info(info), b"")
                elif name in self._overrides:
                    zf.writestr(name, self._overrides[name])
                else:
                    zf.writestr(_clone_info(info), self.original.read_bytes(name))
                written.add(name)
        logger.debug("Rebuilt archive with %d entries", len(written))
        return buffer.getvalue()


def _clone_info(info: zipfile.ZipInfo) -> zipfile.ZipInfo:
    # writestr() updates offsets on the ZipInfo it is given; keep the original's intact
    clone = zipfile.ZipInfo(info.filename, date_time=info.date_time)
    clone.compress_type = info.compress_type
    clone.external_attr = info.external_attr
    clone.comment = info.comment
    return clone
