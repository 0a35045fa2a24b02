#!/usr/bin/env python3
"""
Byte-window reader.

Returns the first or last ``n`` newline-delimited lines of a file of any
size while holding a single fixed-size chunk in memory. Only ``\\n``
(0x0A) delimits lines; files are treated byte-wise.
"""

import logging
import os
from typing import List

from .errors import os_errors

logger = logging.getLogger(__name__)

CHUNK_SIZE = 10000
NEWLINE = b'\n'


def head_bytes(path: str, n: int, chunksize: int = CHUNK_SIZE) -> bytes:
    """Read forward chunk by chunk until ``n`` newlines have been seen."""
    if n <= 0:
        return b''

    parts: List[bytes] = []
    count = 0
    with os_errors('head', path):
        with open(path, 'rb') as handle:
            while True:
                chunk = handle.read(chunksize)
                if not chunk:
                    break
                logger.debug("head %s: read %d bytes", path, len(chunk))

                start = 0
                while True:
                    idx = chunk.find(NEWLINE, start)
                    if idx < 0:
                        break
                    count += 1
                    if count == n:
                        parts.append(chunk[:idx + 1])
                        return b''.join(parts)
                    start = idx + 1

                parts.append(chunk)

    # fewer than n lines: the whole file
    return b''.join(parts)


def tail_bytes(path: str, n: int, chunksize: int = CHUNK_SIZE) -> bytes:
    """Read backward chunk by chunk until ``n`` lines have been seen.

    A newline that is the very last byte of the file terminates the final
    line rather than separating it from an empty one, so for a file of
    ``total`` lines ``head_bytes(p, k) + tail_bytes(p, total - k)`` is the
    whole file.
    """
    if n <= 0:
        return b''

    parts: List[bytes] = []
    count = 0
    with os_errors('tail', path):
        with open(path, 'rb') as handle:
            end = os.fstat(handle.fileno()).st_size
            offset = end - chunksize
            at_eof = True

            while True:
                start = max(0, offset)
                handle.seek(start)
                chunk = handle.read(end - start)
                logger.debug("tail %s: read %d bytes at %d", path, len(chunk), start)

                stop = len(chunk)
                if at_eof and chunk.endswith(NEWLINE):
                    stop -= 1
                at_eof = False

                while True:
                    idx = chunk.rfind(NEWLINE, 0, stop)
                    if idx < 0:
                        break
                    count += 1
                    if count == n:
                        parts.append(chunk[idx + 1:])
                        return b''.join(reversed(parts))
                    stop = idx

                parts.append(chunk)
                if offset <= 0:
                    break
                end = start
                offset -= chunksize

    return b''.join(reversed(parts))
