#!/usr/bin/env python3
"""
Path mutators: move, copy and save.

These act on raw paths, never on FileEntity objects; an entity taken
before a move or copy is stale afterwards.
"""

import errno
import json
import os
import shutil
import logging
from typing import Any, Union

from .errors import AlreadyExists, CrossDeviceUnsupported, os_errors

logger = logging.getLogger(__name__)


def _check_destination(operation: str, oldname: str, newname: str, overwrite: bool) -> None:
    if not overwrite and os.path.exists(newname):
        raise AlreadyExists('Destination already exists', operation, (oldname, newname))


def _make_parents(operation: str, oldname: str, newname: str) -> None:
    parent = os.path.dirname(newname)
    if parent:
        with os_errors(operation, oldname, newname):
            os.makedirs(parent, exist_ok=True)


def _rename(oldname: str, newname: str) -> None:
    """Atomic rename; a cross-device rename surfaces as CrossDeviceUnsupported."""
    try:
        os.replace(oldname, newname)
    except OSError as exc:
        if exc.errno == errno.EXDEV:
            raise CrossDeviceUnsupported('Cannot rename across devices',
                                         'mv', (oldname, newname)) from exc
        raise


def mv(oldname: str, newname: str, overwrite: bool = False) -> bool:
    """Move ``oldname`` to ``newname``, creating parent directories.

    Across storage devices the file or folder tree is copied and the
    source removed.

    Raises:
        AlreadyExists: ``newname`` exists and ``overwrite`` is false
        NotFound: ``oldname`` does not exist
        PermissionDenied: either path is not accessible
    """
    oldname, newname = os.fspath(oldname), os.fspath(newname)
    _check_destination('mv', oldname, newname, overwrite)
    _make_parents('mv', oldname, newname)

    try:
        with os_errors('mv', oldname, newname):
            _rename(oldname, newname)
    except CrossDeviceUnsupported:
        logger.info("mv %s -> %s crosses devices, copying instead", oldname, newname)
        with os_errors('mv', oldname, newname):
            if os.path.isdir(oldname) and not os.path.islink(oldname):
                shutil.copytree(oldname, newname, symlinks=True, dirs_exist_ok=overwrite)
                shutil.rmtree(oldname)
            else:
                shutil.copyfile(oldname, newname, follow_symlinks=False)
                os.unlink(oldname)

    return True


def cp(oldname: str, newname: str, overwrite: bool = False) -> bool:
    """Copy the content of ``oldname`` to ``newname``, creating parent directories.

    Raises:
        AlreadyExists: ``newname`` exists and ``overwrite`` is false
        NotFound: ``oldname`` does not exist
        PermissionDenied: either path is not accessible
    """
    oldname, newname = os.fspath(oldname), os.fspath(newname)
    _check_destination('cp', oldname, newname, overwrite)
    _make_parents('cp', oldname, newname)

    with os_errors('cp', oldname, newname):
        shutil.copyfile(oldname, newname)

    return True


def _serialize(content: Any) -> Union[str, bytes]:
    if isinstance(content, (str, bytes)):
        return content
    if hasattr(content, 'to_record'):
        content = content.to_record()
    elif isinstance(content, (list, tuple)):
        content = [item.to_record() if hasattr(item, 'to_record') else item
                   for item in content]
    return json.dumps(content, default=str)


def save(path: str, content: Any = '', append: bool = False,
         force_rewrite: bool = True, encoding: str = 'utf-8') -> None:
    """Write ``content`` to ``path``.

    Text is encoded with ``encoding``, bytes are written as-is, and
    anything else is serialized as JSON.

    Raises:
        ValueError: ``path`` is empty
        AlreadyExists: neither ``append`` nor ``force_rewrite`` and the file exists
    """
    if not path:
        raise ValueError('Path not specified for save()')
    path = os.fspath(path)

    if not append and not force_rewrite and os.path.exists(path):
        raise AlreadyExists("'append' and 'force_rewrite' are both false but file exists",
                            'save', (path,))

    data = _serialize(content)
    if isinstance(data, str):
        data = data.encode(encoding)

    with os_errors('save', path):
        with open(path, 'ab' if append else 'wb') as handle:
            handle.write(data)
