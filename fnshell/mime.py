#!/usr/bin/env python3
"""
MIME classification for files.

Magic-byte detection is delegated to the ``filetype`` library. When it
has no answer (plain text, unknown formats, empty files) the first
kilobyte is sniffed: printable text maps to ``text/plain``, anything else
to ``application/octet-stream``.
"""

import codecs
import logging
import re
from typing import Callable, Optional

import filetype

from .errors import ClassifierUnavailable, os_errors

logger = logging.getLogger(__name__)

TEXT_PLAIN = 'text/plain'
OCTET_STREAM = 'application/octet-stream'
SNIFF_SIZE = 1000

Classifier = Callable[[str], Optional[str]]

_BOMS = (codecs.BOM_UTF8, codecs.BOM_UTF16_LE, codecs.BOM_UTF16_BE)
_PRINTABLE = re.compile('[ -\U0010ffff\r\n]*')


def guess_with_filetype(path: str) -> Optional[str]:
    """Magic-byte classifier backed by ``filetype``."""
    return filetype.guess_mime(path)


def disabled_classifier(path: str) -> Optional[str]:
    """Stand-in used when magic sniffing is switched off in the shell config."""
    raise ClassifierUnavailable('magic-byte classification is disabled', 'mime', (path,))


def is_text(content: bytes) -> bool:
    """True if every character is printable, CR or LF. Empty content is text."""
    if not content:
        return True
    for bom in _BOMS:
        if content.startswith(bom):
            content = content[len(bom):]
            break
    decoded = content.decode('utf-8', errors='replace')
    return _PRINTABLE.fullmatch(decoded) is not None


def sniff(path: str) -> str:
    """Classify by looking at the first ``SNIFF_SIZE`` bytes."""
    with os_errors('mime', path):
        with open(path, 'rb') as handle:
            content = handle.read(SNIFF_SIZE)
    return TEXT_PLAIN if is_text(content) else OCTET_STREAM


def classify(path: str, classifier: Optional[Classifier] = None) -> str:
    """Return the MIME type of a regular file."""
    classifier = classifier or guess_with_filetype
    try:
        with os_errors('mime', path):
            mime_type = classifier(path)
    except ClassifierUnavailable as exc:
        logger.debug("classifier unavailable for %s: %s", path, exc)
        mime_type = None

    if mime_type:
        return mime_type
    return sniff(path)
