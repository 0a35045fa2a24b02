#!/usr/bin/env python3
"""
Filesystem entity - a metadata snapshot of a single path.

An entity is taken once, at construction, from a stat of the path. Its
type, mode and timestamps are never refreshed; moving or copying the
underlying path leaves the entity stale. The MIME type is the only
derived property computed later, on first access, and then cached.
"""

import os
import stat
import logging
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from . import mime as mime_module
from .errors import NotFound, os_errors
from .window import head_bytes, tail_bytes

logger = logging.getLogger(__name__)


class EntityType(str, Enum):
    """Kinds of filesystem objects, in classification priority order."""
    FILE = 'file'
    FOLDER = 'folder'
    BLOCK_DEVICE = 'block_device'
    CHARACTER_DEVICE = 'character_device'
    LINK = 'link'
    SOCKET = 'socket'
    FIFO = 'fifo'


# Evaluated top to bottom; first match wins.
_TYPE_CASCADE = (
    (stat.S_ISREG, EntityType.FILE),
    (stat.S_ISDIR, EntityType.FOLDER),
    (stat.S_ISBLK, EntityType.BLOCK_DEVICE),
    (stat.S_ISCHR, EntityType.CHARACTER_DEVICE),
    (stat.S_ISLNK, EntityType.LINK),
    (stat.S_ISSOCK, EntityType.SOCKET),
    (stat.S_ISFIFO, EntityType.FIFO),
)


def classify_mode(st_mode: int) -> Optional[EntityType]:
    """Pick the entity type for a stat mode."""
    for predicate, entity_type in _TYPE_CASCADE:
        if predicate(st_mode):
            return entity_type
    return None


def readable_bytes(value: int) -> str:
    """Human-readable size, e.g. ``'512 b'``, ``'9.77 kB'``, ``'1.5 GB'``."""
    if value <= 1e4:
        return f"{value} b"
    if value <= 1e7:
        return f"{round(value / 1024, 2)} kB"
    if value <= 1e10:
        return f"{round(value / 1024 ** 2, 2)} MB"
    if value <= 1e13:
        return f"{round(value / 1024 ** 3, 2)} GB"
    return f"{round(value / 1024 ** 4, 2)} TB"


@dataclass
class FileEntity:
    """Snapshot of one path, optionally owning its listed children."""
    path: str
    name: str
    directory: str
    type: Optional[EntityType]
    mode: str
    created: datetime
    modified: datetime
    size: Optional[int] = None
    size_h: str = ''
    contents: Optional[List['FileEntity']] = None
    classifier: Optional[mime_module.Classifier] = field(default=None, repr=False, compare=False)
    _mime: Optional[str] = field(default=None, repr=False, compare=False)

    @classmethod
    def from_path(cls, path: str, follow_symlinks: bool = True,
                  classifier: Optional[mime_module.Classifier] = None) -> 'FileEntity':
        """Take a metadata snapshot of ``path``.

        Raises:
            NotFound: the path does not exist
            PermissionDenied: the path cannot be stat'ed
        """
        path = os.fspath(path)
        with os_errors('path', path):
            st = os.stat(path, follow_symlinks=follow_symlinks)

        entity = cls(
            path=path,
            name=os.path.basename(path),
            directory=os.path.dirname(path),
            type=classify_mode(st.st_mode),
            mode=format(stat.S_IMODE(st.st_mode) & 0o777, 'o'),
            created=datetime.fromtimestamp(st.st_ctime),
            modified=datetime.fromtimestamp(st.st_mtime),
            classifier=classifier,
        )
        if entity.type is EntityType.FILE:
            entity.set_size(st.st_size)
        return entity

    def set_size(self, size: int) -> None:
        self.size = size
        self.size_h = readable_bytes(size)

    @property
    def is_file(self) -> bool:
        return self.type is EntityType.FILE

    @property
    def is_folder(self) -> bool:
        return self.type is EntityType.FOLDER

    def _readable(self, operation: str) -> bool:
        """Regular files only; re-checks that the path still exists."""
        if not self.is_file:
            return False
        if not os.path.exists(self.path):
            raise NotFound("File doesn't exist anymore", operation, (self.path,))
        return True

    def read_all(self) -> Optional[bytes]:
        """Entire file content, or None for anything but a regular file."""
        if not self._readable('cat'):
            return None
        with os_errors('cat', self.path):
            with open(self.path, 'rb') as handle:
                return handle.read()

    def head(self, n: int = 1) -> Optional[bytes]:
        if not self._readable('head'):
            return None
        return head_bytes(self.path, n)

    def tail(self, n: int = 1) -> Optional[bytes]:
        if not self._readable('tail'):
            return None
        return tail_bytes(self.path, n)

    @property
    def mime(self) -> Optional[str]:
        """MIME type, computed on first access and cached.

        Non-file entities report their type name without consulting the
        classifier.
        """
        if self._mime is None:
            if self.is_file:
                self._mime = mime_module.classify(self.path, self.classifier)
                logger.debug("mime %s: %s", self.path, self._mime)
            elif self.type is not None:
                self._mime = self.type.value
        return self._mime

    @property
    def mime_computed(self) -> bool:
        return self._mime is not None

    def to_record(self) -> Dict[str, Any]:
        """Plain key/value projection; includes ``mime`` only if already known."""
        record: Dict[str, Any] = {
            'path': self.path,
            'name': self.name,
            'directory': self.directory,
            'type': self.type.value if self.type else None,
            'mode': self.mode,
            'size': self.size,
            'size_h': self.size_h,
            'created': self.created.isoformat(),
            'modified': self.modified.isoformat(),
        }
        if self.contents is not None:
            record['contents'] = [child.to_record() for child in self.contents]
        if self._mime is not None:
            record['mime'] = self._mime
        return record

    def __str__(self) -> str:
        return self.path


def mime_type(filepath: str, filecheck: bool = True,
              classifier: Optional[mime_module.Classifier] = None) -> str:
    """MIME type of a path.

    With ``filecheck`` the path is stat'ed first and anything other than a
    regular file reports its type name. Without it the path is assumed to
    be a file and goes straight to the classifier.
    """
    filepath = os.fspath(filepath)
    if filecheck:
        with os_errors('mime', filepath):
            entity_type = classify_mode(os.stat(filepath).st_mode)
        if entity_type is not EntityType.FILE and entity_type is not None:
            return entity_type.value
    return mime_module.classify(filepath, classifier)


def path(filepath: str, follow_symlinks: bool = True,
         classifier: Optional[mime_module.Classifier] = None) -> FileEntity:
    """Select a path for further chaining."""
    return FileEntity.from_path(filepath, follow_symlinks=follow_symlinks,
                                classifier=classifier)
