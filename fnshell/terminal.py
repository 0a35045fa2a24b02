#!/usr/bin/env python3
"""
Terminal front end for fnshell.

Runs expressions either one-shot (``fnsh '(ls ".")'``, or ``fnsh -i
script.scm``) or in an interactive loop, printing each result as text
or JSON. Every evaluated line is appended to a history file, which is
cut back to its last lines when it grows too large.
"""

import argparse
import logging
import os
import sys
from dataclasses import dataclass
from typing import List, Optional, TextIO

from . import mime as mime_module
from .errors import FnshError, os_errors
from .scheme_interpreter import Interpreter, ShellExit, render
from .window import tail_bytes

logger = logging.getLogger(__name__)


@dataclass
class ShellConfig:
    """Configuration for a shell session."""
    prompt: str = '> '
    history_path: str = './fnsh.history'
    history_enabled: bool = True
    history_trim_threshold: int = 1000  # bytes
    history_keep_lines: int = 100
    json_indent: int = 2
    use_classifier: bool = True


class CommandHistory:
    """Append-only history file, trimmed from the front at startup."""

    def __init__(self, path: str, trim_threshold: int = 1000, keep_lines: int = 100):
        self.path = path
        self.trim_threshold = trim_threshold
        self.keep_lines = keep_lines

    def trim(self) -> bool:
        """Keep only the last ``keep_lines`` lines once the file is over the threshold."""
        if not os.path.exists(self.path):
            return False
        if os.path.getsize(self.path) <= self.trim_threshold:
            return False
        kept = tail_bytes(self.path, self.keep_lines)
        with open(self.path, 'wb') as handle:
            handle.write(kept)
        logger.info("trimmed history %s to %d lines", self.path, self.keep_lines)
        return True

    def add(self, line: str) -> None:
        if not line.strip():
            return
        with open(self.path, 'a', encoding='utf-8') as handle:
            handle.write(line.replace('\n', ' ') + '\n')

    def entries(self) -> List[str]:
        if not os.path.exists(self.path):
            return []
        with open(self.path, encoding='utf-8', errors='replace') as handle:
            return [line.rstrip('\n') for line in handle if line.strip()]


class ShellSession:
    """
    One shell session: an interpreter plus history.

    Errors raised while evaluating a line are reported on the output
    stream as ``Name: message`` and do not end the session.
    """

    def __init__(self, config: Optional[ShellConfig] = None,
                 output: Optional[TextIO] = None):
        self.config = config or ShellConfig()
        self.output = output or sys.stdout
        classifier = None if self.config.use_classifier else mime_module.disabled_classifier
        self.interpreter = Interpreter(output=self.output, classifier=classifier,
                                       indent=self.config.json_indent)
        self.history: Optional[CommandHistory] = None
        if self.config.history_enabled:
            self.history = CommandHistory(self.config.history_path,
                                          self.config.history_trim_threshold,
                                          self.config.history_keep_lines)
            self.history.trim()
        self.last_error: Optional[BaseException] = None

    def execute_command(self, code: str) -> Optional[str]:
        """Evaluate ``code`` and return the text to print.

        Returns None when there is nothing to print. ``ShellExit``
        propagates to the caller.
        """
        self.last_error = None
        if not code.strip():
            return None
        if self.history is not None:
            self.history.add(code)

        try:
            result = self.interpreter.eval_string(code)
        except ShellExit:
            raise
        except Exception as e:
            self.last_error = e
            logger.debug("evaluation failed", exc_info=True)
            return f"{type(e).__name__}: {e}"

        if result is None:
            return None
        return render(result, self.config.json_indent)

    def run_command(self, code: str) -> int:
        """Run one piece of code and return a process exit status."""
        try:
            output = self.execute_command(code)
        except ShellExit as e:
            return e.code
        if output is not None:
            print(output, file=self.output)
        return 1 if self.last_error is not None else 0

    def run_script(self, script_path: str) -> int:
        """Run a script file; an unreadable script is reported like any other error."""
        try:
            with os_errors('script', script_path):
                with open(script_path, encoding='utf-8', errors='replace') as handle:
                    code = handle.read()
        except FnshError as e:
            self.last_error = e
            print(f"{type(e).__name__}: {e}", file=self.output)
            return 1
        return self.run_command(code)

    def run_interactive(self) -> int:
        """Read-eval-print until EOF or ``(exit)``."""
        import readline

        if self.history is not None:
            for entry in self.history.entries():
                readline.add_history(entry)

        print("fnsh - type (help) for commands, (exit) to quit", file=self.output)
        while True:
            try:
                line = input(self.config.prompt)
            except KeyboardInterrupt:
                print("^C", file=self.output)
                continue
            except EOFError:
                print(file=self.output)
                return 0

            try:
                output = self.execute_command(line)
            except ShellExit as e:
                return e.code
            if output is not None:
                print(output, file=self.output)


def main(argv: Optional[List[str]] = None) -> int:
    """Entry point for the ``fnsh`` command."""
    parser = argparse.ArgumentParser(prog='fnsh', description='Filesystem scripting shell')
    parser.add_argument('command', nargs='?', help='Expression to evaluate, then exit')
    parser.add_argument('-i', '--input', action='store_true',
                        help='Treat COMMAND as the path of a script file')
    parser.add_argument('--history', default=ShellConfig.history_path,
                        help='History file path')
    parser.add_argument('--no-history', action='store_true', help='Do not record history')
    parser.add_argument('--no-magic', action='store_true',
                        help='Skip magic-byte MIME detection')
    parser.add_argument('-v', '--verbose', action='store_true', help='Debug logging')
    args = parser.parse_args(argv)

    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.WARNING,
                        format="[%(asctime)s] %(levelname)s: %(message)s")

    config = ShellConfig(history_path=args.history,
                         history_enabled=not args.no_history,
                         use_classifier=not args.no_magic)
    session = ShellSession(config=config)

    if args.command is None:
        return session.run_interactive()
    if args.input:
        return session.run_script(args.command)
    return session.run_command(args.command)


if __name__ == '__main__':
    sys.exit(main())
