"""
fnshell - a scripting shell that returns structured filesystem results

Expressions are evaluated against the local filesystem and native
processes; listings come back as FileEntity snapshots, command runs as
stdout/stderr/status records, rather than as raw text streams.
"""

__version__ = "0.1.0"

from .errors import (
    FnshError,
    NotFound,
    AlreadyExists,
    PermissionDenied,
    CrossDeviceUnsupported,
    ClassifierUnavailable,
    FilesystemError,
)

from .entity import (
    EntityType,
    FileEntity,
    mime_type,
    path,
    readable_bytes,
)

from .window import (
    CHUNK_SIZE,
    head_bytes,
    tail_bytes,
)

from .walker import (
    ListOptions,
    ls,
    find,
)

from .mutators import (
    mv,
    cp,
    save,
)

from .runner import (
    CommandOutput,
    sh,
)

from .sequences import (
    head,
    tail,
    uniq,
)

from .scheme_interpreter import (
    Interpreter,
    Environment,
    Procedure,
    Symbol,
    ShellExit,
)

from .terminal import (
    ShellConfig,
    ShellSession,
    CommandHistory,
)

__all__ = [
    # Errors
    "FnshError",
    "NotFound",
    "AlreadyExists",
    "PermissionDenied",
    "CrossDeviceUnsupported",
    "ClassifierUnavailable",
    "FilesystemError",

    # Entities
    "EntityType",
    "FileEntity",
    "mime_type",
    "path",
    "readable_bytes",

    # Byte-window reader
    "CHUNK_SIZE",
    "head_bytes",
    "tail_bytes",

    # Walker
    "ListOptions",
    "ls",
    "find",

    # Mutators
    "mv",
    "cp",
    "save",

    # Commands
    "CommandOutput",
    "sh",

    # Sequences
    "head",
    "tail",
    "uniq",

    # Evaluator
    "Interpreter",
    "Environment",
    "Procedure",
    "Symbol",
    "ShellExit",

    # Terminal
    "ShellConfig",
    "ShellSession",
    "CommandHistory",

    "__version__",
]
