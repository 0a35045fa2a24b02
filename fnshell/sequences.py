#!/usr/bin/env python3
"""
head/tail/uniq over the kinds of values the shell passes around.

Which slice applies depends on the argument: a FileEntity is read through
the byte-window reader, bytes are sliced byte-wise, text line-wise and
any other sequence element-wise.
"""

from typing import Any, List, Optional, Sequence

from .entity import FileEntity


def head(seq: Any, n: int = 1) -> Any:
    """First ``n`` items (lines for text, bytes for bytes)."""
    n = max(0, n)
    if isinstance(seq, FileEntity):
        return seq.head(n)
    if isinstance(seq, str):
        return '\n'.join(seq.split('\n')[:n])
    return seq[:n]


def tail(seq: Any, n: int = 1) -> Any:
    """Last ``n`` items (lines for text, bytes for bytes)."""
    n = max(0, n)
    if isinstance(seq, FileEntity):
        return seq.tail(n)
    if isinstance(seq, str):
        lines = seq.split('\n')
        return '\n'.join(lines[max(0, len(lines) - n):]) if n else ''
    return seq[max(0, len(seq) - n):] if n else seq[:0]


def uniq(seq: Sequence[Any], key: Optional[str] = None) -> List[Any]:
    """Drop repeated items, keeping first occurrences in order.

    With ``key``, items are compared by that field (of a record or an
    entity) instead of by value.
    """
    result = []
    seen: List[Any] = []
    for item in seq:
        marker = item if key is None else _field(item, key)
        if marker in seen:
            continue
        seen.append(marker)
        result.append(item)
    return result


def _field(item: Any, key: str) -> Any:
    if isinstance(item, dict):
        return item.get(key)
    return getattr(item, key, None)
