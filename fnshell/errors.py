#!/usr/bin/env python3
"""
Error taxonomy for fnshell.

Every failure raised by the core carries the operation that was attempted
and the path(s) it was attempted on, so the shell can report something
more useful than a bare errno.
"""

import contextlib
from typing import Iterator, Tuple


class FnshError(Exception):
    """Base class for all fnshell failures."""

    def __init__(self, message: str, operation: str = '', paths: Tuple[str, ...] = ()):
        super().__init__(message)
        self.message = message
        self.operation = operation
        self.paths = tuple(str(p) for p in paths)

    def __str__(self) -> str:
        if not self.operation:
            return self.message
        joined = ', '.join(f'"{p}"' for p in self.paths)
        return f"{self.message}: {self.operation}({joined})"


class NotFound(FnshError):
    """A path did not exist when the operation needed it."""


class AlreadyExists(FnshError):
    """Destination exists and overwriting was not requested."""


class PermissionDenied(FnshError):
    """The OS refused access to a path."""


class CrossDeviceUnsupported(FnshError):
    """Rename across storage devices; recovered by mv's copy fallback."""


class ClassifierUnavailable(FnshError):
    """The magic-byte classifier cannot be used; mime degrades to sniffing text."""


class FilesystemError(FnshError):
    """Any other OS-level failure."""


@contextlib.contextmanager
def os_errors(operation: str, *paths) -> Iterator[None]:
    """Translate OSError raised inside the block into the fnshell taxonomy."""
    try:
        yield
    except (FileNotFoundError, NotADirectoryError) as exc:
        raise NotFound(exc.strerror or 'No such file or directory',
                       operation, paths) from exc
    except FileExistsError as exc:
        raise AlreadyExists(exc.strerror or 'File exists', operation, paths) from exc
    except PermissionError as exc:
        raise PermissionDenied(exc.strerror or 'Permission denied',
                               operation, paths) from exc
    except OSError as exc:
        raise FilesystemError(exc.strerror or str(exc), operation, paths) from exc
