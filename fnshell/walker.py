#!/usr/bin/env python3
"""
Directory walker.

Lists a directory as FileEntity snapshots, optionally recursing
depth-first. A nested walk attaches each folder's children as its
``contents`` and sizes the folder bottom-up; a flattened walk splices
all descendants into one sequence, each still reporting its own
``directory``.
"""

import os
import logging
from dataclasses import dataclass, replace
from typing import Callable, List, Optional, Union

from . import mime as mime_module
from .entity import EntityType, FileEntity
from .errors import os_errors

logger = logging.getLogger(__name__)

Predicate = Callable[[FileEntity], bool]


@dataclass(frozen=True)
class ListOptions:
    """How ``ls`` should walk."""
    recurse: bool = False
    flatten: bool = False
    mime: bool = False
    include_self: bool = False
    follow_symlinks: bool = True
    classifier: Optional[mime_module.Classifier] = None


def _size_of(entries: List[FileEntity], flat: bool) -> int:
    """Aggregate size of a listing.

    A flat listing already contains every descendant, so only files are
    counted; a nested one carries folder totals on its top level. Entries
    without a size count as zero.
    """
    if flat:
        return sum(e.size or 0 for e in entries if e.type is EntityType.FILE)
    return sum(e.size or 0 for e in entries)


def _list(directory: str, options: ListOptions) -> List[FileEntity]:
    parent = os.path.abspath(directory)
    with os_errors('ls', directory):
        names = os.listdir(parent)

    results: List[FileEntity] = []
    for filename in names:
        entity = FileEntity.from_path(os.path.join(parent, filename),
                                      follow_symlinks=options.follow_symlinks,
                                      classifier=options.classifier)
        if options.mime:
            entity.mime

        results.append(entity)

        if options.recurse and entity.type is EntityType.FOLDER:
            logger.debug("descending into %s", entity.path)
            children = _list(entity.path, options)
            entity.set_size(_size_of(children, options.flatten))
            if options.flatten:
                results.extend(children)
            else:
                entity.contents = children

    return results


def ls(directory: str = '.', options: Optional[ListOptions] = None,
       **kwargs) -> Union[List[FileEntity], FileEntity]:
    """List a directory.

    Options may be given as a ``ListOptions`` or as keywords
    (``recurse``, ``flatten``, ``mime``, ``include_self``, ``follow_symlinks``).
    With ``include_self`` a single entity for ``directory`` is returned, holding
    the listing as its ``contents``.

    Raises:
        NotFound: ``directory`` does not exist or is not a directory
        PermissionDenied: a directory in the walk cannot be read
    """
    options = replace(options or ListOptions(), **kwargs)
    directory = os.fspath(directory)
    results = _list(directory, options)

    if not options.include_self:
        return results

    wrapper = FileEntity.from_path(os.path.abspath(directory),
                                   follow_symlinks=options.follow_symlinks,
                                   classifier=options.classifier)
    if options.recurse and wrapper.type is EntityType.FOLDER:
        wrapper.set_size(_size_of(results, options.flatten))
    wrapper.contents = results
    return wrapper


def find(directory: str = '.', predicate: Optional[Predicate] = None,
         **kwargs) -> List[FileEntity]:
    """Recursive flattened listing, optionally filtered by ``predicate``."""
    options = replace(ListOptions(**kwargs), recurse=True, flatten=True)
    results = ls(directory, options)
    if predicate is None:
        return results
    return [entity for entity in results if predicate(entity)]
