"""
DocxCleaner Part Store Module

Wraps the OOXML zip archive as a mutable collection of named parts.

zipfile cannot delete or rewrite an entry in place, so changes are staged
against the open archive and flushed in one go by save(). Reads always go
back to the archive (or the staged bytes) - nothing read through get() is
kept around between calls.
"""

import os
import tempfile
import zipfile
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Optional

from errors import ArchiveOpenError, ArchivePersistError

XML_SUFFIXES = (".xml", ".rels", ".vml")


class PartKind(Enum):
    XML = "xml"
    BINARY = "binary"


@dataclass(frozen=True)
class Part:
    """One entry of the package."""
    path: str
    data: bytes

    @property
    def kind(self) -> PartKind:
        if self.path.lower().endswith(XML_SUFFIXES):
            return PartKind.XML
        return PartKind.BINARY

    @property
    def name(self) -> str:
        """Base file name, e.g. 'image1.png' for 'word/media/image1.png'."""
        return self.path.rsplit("/", 1)[-1]

    @property
    def size(self) -> int:
        return len(self.data)


class PartStore:
    """
    Single open handle on a package file.

    Usage:
        with PartStore.open(path) as store:
            part = store.get("word/document.xml")
            store.replace("word/settings.xml", new_bytes)

    Leaving the with-block persists staged changes back to the same file
    and closes the archive, on every exit path.
    """

    def __init__(self, path: Path, archive: zipfile.ZipFile):
        self.path = Path(path)
        self._zip = archive
        self._load_index()

    @classmethod
    def open(cls, path: Path) -> "PartStore":
        path = Path(path)
        if not path.exists():
            raise ArchiveOpenError(path, "file not found")
        try:
            archive = zipfile.ZipFile(path, "r")
        except (zipfile.BadZipFile, OSError) as e:
            raise ArchiveOpenError(path, f"not a valid zip archive ({e})") from e
        return cls(path, archive)

    def _load_index(self):
        self._infos: dict[str, zipfile.ZipInfo] = {}
        self._order: list[str] = []
        for info in self._zip.infolist():
            if info.is_dir():
                continue
            if info.filename not in self._infos:
                self._order.append(info.filename)
            self._infos[info.filename] = info
        self._staged: dict[str, bytes] = {}
        self._deleted: set[str] = set()

    def __enter__(self) -> "PartStore":
        return self

    def __exit__(self, exc_type, exc, tb):
        try:
            self.save()
        finally:
            self.close()
        return False

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    @property
    def dirty(self) -> bool:
        return bool(self._staged or self._deleted)

    def names(self) -> list[str]:
        """Live part paths in archive order."""
        return [n for n in self._order if n not in self._deleted]

    def exists(self, path: str) -> bool:
        return path not in self._deleted and (path in self._staged or path in self._infos)

    def get(self, path: str) -> Optional[Part]:
        if path in self._deleted:
            return None
        if path in self._staged:
            return Part(path, self._staged[path])
        info = self._infos.get(path)
        if info is None:
            return None
        return Part(path, self._zip.read(info))

    def list_by_prefix(self, prefix: str) -> list[Part]:
        """All parts under a folder-style prefix such as 'word/media/'."""
        return self.list_by_pattern(prefix, "")

    def list_by_pattern(self, starts_with: str, ends_with: str) -> list[Part]:
        """Numbered families, e.g. ('word/header', '.xml') for header1.xml, header2.xml..."""
        parts = []
        for name in self.names():
            if name.startswith(starts_with) and name.endswith(ends_with):
                part = self.get(name)
                if part is not None:
                    parts.append(part)
        return parts

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def replace(self, path: str, data: bytes):
        """Drop any existing entry at path and write a new one (adds if absent)."""
        if path not in self._order:
            self._order.append(path)
        self._deleted.discard(path)
        self._staged[path] = bytes(data)

    def delete(self, path: str) -> bool:
        """Remove an entry. Returns False when there was nothing to remove."""
        if not self.exists(path):
            return False
        self._staged.pop(path, None)
        self._deleted.add(path)
        return True

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    def save(self):
        """Flush staged changes back to the package file."""
        if self._zip is None or not self.dirty:
            return

        fd, tmp_name = tempfile.mkstemp(prefix=".docxcleaner_", suffix=".tmp", dir=self.path.parent)
        os.close(fd)
        tmp_path = Path(tmp_name)

        try:
            with zipfile.ZipFile(tmp_path, "w", zipfile.ZIP_DEFLATED) as out:
                for name in self.names():
                    if name in self._staged:
                        out.writestr(name, self._staged[name], compress_type=zipfile.ZIP_DEFLATED)
                    else:
                        info = self._infos[name]
                        out.writestr(info, self._zip.read(info))

            self._zip.close()
            os.replace(tmp_path, self.path)
        except (OSError, zipfile.BadZipFile, zipfile.LargeZipFile) as e:
            tmp_path.unlink(missing_ok=True)
            raise ArchivePersistError(self.path, str(e)) from e

        try:
            self._zip = zipfile.ZipFile(self.path, "r")
        except (zipfile.BadZipFile, OSError) as e:
            self._zip = None
            raise ArchivePersistError(self.path, f"cannot reopen after save ({e})") from e
        self._load_index()

    def close(self):
        if self._zip is not None:
            self._zip.close()
            self._zip = None
