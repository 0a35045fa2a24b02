#!/usr/bin/env python3
"""
Synchronous external command runner.

A non-zero exit status is an ordinary result, not an error.
"""

import logging
import subprocess
from dataclasses import dataclass, asdict
from typing import Any, Dict, Optional, Sequence

from .errors import os_errors

logger = logging.getLogger(__name__)


@dataclass
class CommandOutput:
    """Captured result of one process run."""
    stdout: str = ''
    stderr: str = ''
    status: Optional[int] = None  # None when killed by a signal

    def to_record(self) -> Dict[str, Any]:
        return asdict(self)

    @property
    def ok(self) -> bool:
        return self.status == 0


def sh(command: Sequence[str], **options) -> CommandOutput:
    """Run ``command[0]`` with ``command[1:]`` as arguments and wait for it.

    Extra keyword options (``cwd``, ``env``, ``input``, ...) go straight
    to ``subprocess.run``. Both streams are decoded as UTF-8; invalid
    bytes become U+FFFD.

    Raises:
        ValueError: ``command`` is empty
        NotFound: the executable does not exist
        PermissionDenied: the executable cannot be run
    """
    argv = [str(token) for token in command]
    if not argv:
        raise ValueError('sh() needs at least one token')

    logger.debug("running %s", argv)
    with os_errors('sh', argv[0]):
        run = subprocess.run(argv, capture_output=True, encoding='utf-8',
                             errors='replace', **options)

    status = run.returncode if run.returncode >= 0 else None
    return CommandOutput(stdout=run.stdout or '', stderr=run.stderr or '', status=status)
