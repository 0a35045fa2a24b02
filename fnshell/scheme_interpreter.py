#!/usr/bin/env python3
"""
Scheme-like expression language for fnshell.

User expressions are evaluated in an environment built only from an
explicit capability table: filesystem listing and selection, move/copy,
saving, running native commands, and a handful of list and string
helpers. Evaluated code has no route to Python builtins, modules or
object attributes other than through those capabilities.
"""

import json
import re
import sys
import operator
from dataclasses import dataclass
from functools import reduce
from typing import Any, Callable, Dict, List, Optional, TextIO, Tuple

from . import entity as entity_module
from . import mime as mime_module
from . import mutators, runner, sequences, walker
from .entity import FileEntity
from .runner import CommandOutput


@dataclass(frozen=True)
class Symbol:
    """A Scheme symbol."""
    name: str

    def __repr__(self):
        return self.name


@dataclass
class Procedure:
    """A user-defined procedure (closure over its defining environment)."""
    params: List[Symbol]
    body: Any
    env: 'Environment'

    def __call__(self, *args):
        if len(args) != len(self.params):
            raise TypeError(f"Procedure expects {len(self.params)} arguments, got {len(args)}")
        local_env = Environment(parent=self.env)
        for param, arg in zip(self.params, args):
            local_env.define(param.name, arg)
        return evaluate(self.body, local_env)


class Environment:
    """Lexical environment for variable bindings."""

    def __init__(self, parent: Optional['Environment'] = None,
                 bindings: Optional[Dict[str, Any]] = None):
        self.bindings: Dict[str, Any] = dict(bindings or {})
        self.parent = parent

    def define(self, name: str, value: Any):
        self.bindings[name] = value

    def _owner(self, name: str) -> 'Environment':
        env: Optional[Environment] = self
        while env is not None:
            if name in env.bindings:
                return env
            env = env.parent
        raise NameError(f"Undefined variable: {name}")

    def set(self, name: str, value: Any):
        self._owner(name).bindings[name] = value

    def get(self, name: str) -> Any:
        return self._owner(name).bindings[name]


# Reader

_TOKEN = re.compile(r'''
    \s*(?:
        (?P<comment>;[^\n]*)
      | (?P<string>"(?:\\.|[^"\\])*")
      | (?P<paren>[()'])
      | (?P<atom>[^\s()'";]+)
    )''', re.VERBOSE)
_ESCAPES = {'n': '\n', 't': '\t', 'r': '\r', '"': '"', '\\': '\\'}


def tokenize(text: str) -> List[str]:
    """Split source text into tokens, dropping ``;`` comments."""
    tokens = []
    pos = 0
    while pos < len(text):
        match = _TOKEN.match(text, pos)
        if match is None or match.end() == pos:
            if text[pos:].strip():
                raise SyntaxError(f"Unterminated string or bad token at {pos}")
            break
        pos = match.end()
        kind = match.lastgroup
        if kind is None or kind == 'comment':
            continue
        tokens.append(match.group(kind))
    return tokens


def parse_atom(token: str) -> Any:
    if token.startswith('"'):
        return re.sub(r'\\(.)', lambda m: _ESCAPES.get(m.group(1), m.group(1)), token[1:-1])
    if token == '#t':
        return True
    if token == '#f':
        return False
    try:
        return int(token)
    except ValueError:
        pass
    if any(c.isdigit() for c in token):
        try:
            return float(token)
        except ValueError:
            pass
    return Symbol(token)


def _read(tokens: List[str], idx: int) -> Tuple[Any, int]:
    """Read one expression starting at ``idx``; return it and the next index."""
    if idx >= len(tokens):
        raise SyntaxError("Unexpected EOF")
    token = tokens[idx]
    if token == '(':
        lst = []
        idx += 1
        while idx < len(tokens) and tokens[idx] != ')':
            expr, idx = _read(tokens, idx)
            lst.append(expr)
        if idx >= len(tokens):
            raise SyntaxError("Missing closing parenthesis")
        return lst, idx + 1
    if token == ')':
        raise SyntaxError("Unexpected closing parenthesis")
    if token == "'":
        expr, idx = _read(tokens, idx + 1)
        return [Symbol('quote'), expr], idx
    return parse_atom(token), idx + 1


def parse(tokens: List[str]) -> Any:
    """Parse exactly one expression."""
    expr, idx = _read(tokens, 0)
    if idx < len(tokens):
        raise SyntaxError("Unexpected closing parenthesis" if tokens[idx] == ')'
                          else "Unexpected trailing input")
    return expr


def parse_all(tokens: List[str]) -> List[Any]:
    """Parse every expression in a token stream."""
    exprs = []
    idx = 0
    while idx < len(tokens):
        expr, idx = _read(tokens, idx)
        exprs.append(expr)
    return exprs


# Evaluator

def _body(exprs: List[Any], env: Environment) -> Any:
    result = None
    for expr in exprs:
        result = evaluate(expr, env)
    return result


def _symbol(expr: Any, form: str) -> Symbol:
    if not isinstance(expr, Symbol):
        raise SyntaxError(f"{form}: expected a symbol, got {expr!r}")
    return expr


def _form_quote(expr, env):
    return expr[1] if len(expr) > 1 else None


def _form_define(expr, env):
    if len(expr) < 3:
        raise SyntaxError("define requires a name and a value")
    target = expr[1]
    if isinstance(target, list):
        # (define (name args...) body...)
        if not target:
            raise SyntaxError("define: empty procedure header")
        name = _symbol(target[0], 'define')
        params = [_symbol(p, 'define') for p in target[1:]]
        value = Procedure(params, _wrap_body(expr[2:]), env)
    else:
        if len(expr) != 3:
            raise SyntaxError("define requires exactly 2 arguments")
        name = _symbol(target, 'define')
        value = evaluate(expr[2], env)
    env.define(name.name, value)
    return value


def _form_set(expr, env):
    if len(expr) != 3:
        raise SyntaxError("set! requires exactly 2 arguments")
    value = evaluate(expr[2], env)
    env.set(_symbol(expr[1], 'set!').name, value)
    return value


def _wrap_body(exprs: List[Any]) -> Any:
    return exprs[0] if len(exprs) == 1 else [Symbol('begin')] + list(exprs)


def _form_lambda(expr, env):
    if len(expr) < 3:
        raise SyntaxError("lambda requires parameters and body")
    if not isinstance(expr[1], list):
        raise SyntaxError("Lambda parameters must be a list")
    params = [_symbol(p, 'lambda') for p in expr[1]]
    return Procedure(params, _wrap_body(expr[2:]), env)


def _form_if(expr, env):
    if len(expr) not in (3, 4):
        raise SyntaxError("if requires 2 or 3 arguments")
    if evaluate(expr[1], env):
        return evaluate(expr[2], env)
    if len(expr) == 4:
        return evaluate(expr[3], env)
    return None


def _form_begin(expr, env):
    return _body(expr[1:], env)


def _form_let(expr, env):
    if len(expr) < 3 or not isinstance(expr[1], list):
        raise SyntaxError("let requires a binding list and a body")
    local_env = Environment(parent=env)
    for binding in expr[1]:
        if not isinstance(binding, list) or len(binding) != 2:
            raise SyntaxError("Each let binding must be a list of 2 elements")
        local_env.define(_symbol(binding[0], 'let').name, evaluate(binding[1], env))
    return _body(expr[2:], local_env)


def _form_cond(expr, env):
    for clause in expr[1:]:
        if not isinstance(clause, list) or len(clause) < 2:
            raise SyntaxError("Each cond clause must be a list of at least 2 elements")
        test = clause[0]
        if (isinstance(test, Symbol) and test.name == 'else') or evaluate(test, env):
            return _body(clause[1:], env)
    return None


# Only #f is false for and/or.
def _form_and(expr, env):
    result = True
    for arg in expr[1:]:
        result = evaluate(arg, env)
        if result is False:
            return False
    return result


def _form_or(expr, env):
    for arg in expr[1:]:
        result = evaluate(arg, env)
        if result is not False:
            return result
    return False


def _form_try(expr, env):
    """(try expr (catch handler...)) binds the message to ``error``."""
    if len(expr) < 2:
        raise SyntaxError("try requires an expression")
    try:
        return evaluate(expr[1], env)
    except ShellExit:
        raise
    except Exception as e:
        if len(expr) >= 3 and isinstance(expr[2], list) and expr[2] \
                and expr[2][0] == Symbol('catch'):
            catch_env = Environment(parent=env)
            catch_env.define('error', str(e))
            return _body(expr[2][1:], catch_env)
        return False


SPECIAL_FORMS: Dict[str, Callable[[list, Environment], Any]] = {
    'quote': _form_quote,
    'define': _form_define,
    'set!': _form_set,
    'lambda': _form_lambda,
    'if': _form_if,
    'begin': _form_begin,
    'let': _form_let,
    'cond': _form_cond,
    'and': _form_and,
    'or': _form_or,
    'try': _form_try,
}


def evaluate(expr: Any, env: Environment) -> Any:
    """Evaluate an expression in an environment."""
    if isinstance(expr, Symbol):
        return env.get(expr.name)
    if not isinstance(expr, list):
        return expr
    if not expr:
        return []

    op = expr[0]
    if isinstance(op, Symbol) and op.name in SPECIAL_FORMS:
        return SPECIAL_FORMS[op.name](expr, env)

    func = evaluate(op, env)
    args = [evaluate(arg, env) for arg in expr[1:]]
    if not callable(func):
        raise TypeError(f"Cannot call non-function: {func!r}")
    return func(*args)


# Rendering values for output

def to_plain(value: Any) -> Any:
    """Project a value onto JSON-compatible types."""
    if isinstance(value, (FileEntity, CommandOutput)):
        return value.to_record()
    if isinstance(value, Symbol):
        return value.name
    if isinstance(value, bytes):
        return value.decode('utf-8', errors='replace')
    if isinstance(value, (list, tuple)):
        return [to_plain(item) for item in value]
    if isinstance(value, dict):
        return {str(k): to_plain(v) for k, v in value.items()}
    if isinstance(value, Procedure):
        return '#<procedure>'
    if callable(value):
        return '#<built-in>'
    return value


def render(value: Any, indent: int = 2) -> str:
    """Text for a value: strings and numbers raw, structures as JSON."""
    if value is None:
        return 'null'
    if isinstance(value, bool):
        return 'true' if value else 'false'
    if isinstance(value, (str, int, float)):
        return str(value)
    if isinstance(value, bytes):
        return value.decode('utf-8', errors='replace')
    return json.dumps(to_plain(value), indent=indent, default=str)


# Capability table

_ENTITY_FIELDS = ('path', 'name', 'directory', 'type', 'mode', 'size', 'size_h',
                  'created', 'modified', 'contents', 'mime')
_LS_FLAGS = {'recurse': 'recurse', 'flatten': 'flatten', 'mime': 'mime',
             'self': 'include_self', 'nofollow': 'follow_symlinks'}
_SH_OPTIONS = ('cwd', 'env', 'input', 'timeout')

HELP_TEXT = """\
Commands:

  (ls dir 'recurse 'flatten 'mime 'self)  list directory -> entities
  (find dir predicate)                    recursive flat listing, filtered
  (path filepath)                         select one path -> entity
  (cat path-or-entity)                    file contents as text
  (head x n) / (tail x n)                 first/last n lines, bytes or items
  (uniq lst key)                          drop repeated items
  (mime path)                             MIME type of a path
  (mv old new overwrite) / (cp old new overwrite)
  (save path content 'append 'keep)       write text, bytes or JSON
  (sh (list "cmd" "arg" ...) options)     run a program -> stdout/stderr/status
                                          options: (dict "cwd" dir "env" env "input" text "timeout" secs)
  (get x "field")                         entity field or record key
  (dict "k" v ...) (echo value) (json value) (help) (exit code)

Entity fields: path name directory type mode size size_h created modified contents mime
"""


def _flags(args, allowed: Dict[str, str], command: str) -> Dict[str, Any]:
    options: Dict[str, Any] = {}
    for arg in args:
        flag = arg.name if isinstance(arg, Symbol) else str(arg)
        if flag not in allowed:
            raise ValueError(f"{command}: unknown option '{flag}'")
        field_name = allowed[flag]
        options[field_name] = field_name != 'follow_symlinks'
    return options


def _get(obj: Any, key: Any) -> Any:
    key = key.name if isinstance(key, Symbol) else key
    if isinstance(obj, FileEntity):
        if key not in _ENTITY_FIELDS:
            raise KeyError(f"Entity has no field '{key}'")
        value = getattr(obj, key)
        return value.value if isinstance(value, entity_module.EntityType) else value
    if isinstance(obj, CommandOutput):
        obj = obj.to_record()
    if isinstance(obj, dict):
        return obj.get(key)
    if isinstance(obj, (list, str, bytes)) and isinstance(key, int):
        return obj[key]
    raise TypeError(f"Cannot get '{key}' from {type(obj).__name__}")


def _dict(*pairs) -> Dict[str, Any]:
    """(dict "k1" v1 "k2" v2 ...) -> {"k1": v1, "k2": v2}"""
    if len(pairs) % 2:
        raise ValueError("dict: expects key/value pairs")
    return {(k.name if isinstance(k, Symbol) else str(k)): v
            for k, v in zip(pairs[::2], pairs[1::2])}


class ShellExit(Exception):
    """Raised by the ``exit`` capability; carries the exit code."""

    def __init__(self, code: int = 0):
        super().__init__(code)
        self.code = code


def _exit(code: int = 0):
    raise ShellExit(code)


def create_capabilities(output: Optional[TextIO] = None,
                        classifier: Optional[mime_module.Classifier] = None,
                        indent: int = 2) -> Dict[str, Any]:
    """Build the name -> callable table exposed to user expressions."""
    out = output or sys.stdout

    def _entity(target) -> FileEntity:
        if isinstance(target, FileEntity):
            return target
        return entity_module.path(target, classifier=classifier)

    def echo(value=None):
        out.write(render(value, indent) + '\n')
        return None

    def cat(target):
        content = _entity(target).read_all()
        return content.decode('utf-8', errors='replace') if content is not None else None

    def ls(directory='.', *flags):
        return walker.ls(directory, walker.ListOptions(classifier=classifier),
                         **_flags(flags, _LS_FLAGS, 'ls'))

    def find(directory='.', predicate=None):
        return walker.find(directory, predicate, classifier=classifier)

    def mime(target, filecheck=True):
        target = target.path if isinstance(target, FileEntity) else target
        return entity_module.mime_type(target, filecheck=filecheck, classifier=classifier)

    def save(target, content='', *flags):
        options = _flags(flags, {'append': 'append', 'keep': 'keep'}, 'save')
        mutators.save(target, content, append=options.get('append', False),
                      force_rewrite=not options.get('keep', False))
        return None

    def sh(command, *args):
        options = {}
        if args and isinstance(args[-1], dict):
            options = dict(args[-1])
            args = args[:-1]
        unknown = set(options) - set(_SH_OPTIONS)
        if unknown:
            raise ValueError(f"sh: unknown option(s) {', '.join(sorted(unknown))}")
        if isinstance(command, str):
            command = [command, *args]
        elif args:
            raise TypeError("sh: extra arguments after an argument list")
        return runner.sh(command, **options)

    def as_text(value):
        return value.decode('utf-8', errors='replace') if isinstance(value, bytes) else value

    return {
        # shell
        'echo': echo,
        'path': lambda filepath: _entity(filepath),
        'sh': sh,
        'cat': cat,
        'ls': ls,
        'find': find,
        'mv': mutators.mv,
        'cp': mutators.cp,
        'save': save,
        'mime': mime,
        'head': lambda seq, n=1: as_text(sequences.head(seq, n)),
        'tail': lambda seq, n=1: as_text(sequences.tail(seq, n)),
        'uniq': lambda seq, key=None: sequences.uniq(seq, key),
        'get': _get,
        'json': lambda value: json.dumps(to_plain(value), default=str),
        'dict': _dict,
        'help': lambda: echo(HELP_TEXT),
        'exit': _exit,

        # arithmetic and comparison
        '+': lambda *args: sum(args),
        '-': lambda x, y=None: -x if y is None else x - y,
        '*': lambda *args: reduce(operator.mul, args, 1),
        '/': lambda x, y: x / y,
        'mod': lambda x, y: x % y,
        '=': lambda x, y: x == y,
        '<': lambda x, y: x < y,
        '>': lambda x, y: x > y,
        '<=': lambda x, y: x <= y,
        '>=': lambda x, y: x >= y,
        'not': lambda x: x is False or x is None,

        # lists
        'list': lambda *args: list(args),
        'car': lambda lst: lst[0] if lst else None,
        'cdr': lambda lst: lst[1:] if lst else [],
        'cons': lambda x, lst: [x] + list(lst or []),
        'null?': lambda lst: lst is None or len(lst) == 0,
        'length': lambda lst: len(lst),
        'append': lambda *lists: [item for lst in lists for item in lst],
        'reverse': lambda lst: list(reversed(lst)),
        'map': lambda f, lst: [f(x) for x in lst],
        'filter': lambda f, lst: [x for x in lst if f(x)],
        'reduce': lambda f, lst, init=0: reduce(f, lst, init),
        'sort-by': lambda f, lst: sorted(lst, key=f),

        # strings
        'string-append': lambda *args: ''.join(str(a) for a in args),
        'string-length': lambda s: len(s),
        'string-split': lambda s, sep='\n': s.split(sep),
        'string-join': lambda lst, sep='\n': sep.join(str(x) for x in lst),
        'string-contains?': lambda s, sub: sub in s,
        'string-prefix?': lambda s, prefix: s.startswith(prefix),
        'string-suffix?': lambda s, suffix: s.endswith(suffix),
        'regex-match?': lambda pattern, s: re.search(pattern, s) is not None,

        'nil': None,
    }


def create_global_env(output: Optional[TextIO] = None,
                      classifier: Optional[mime_module.Classifier] = None,
                      indent: int = 2) -> Environment:
    """Global environment holding exactly the capability table."""
    return Environment(bindings=create_capabilities(output, classifier, indent))


class Interpreter:
    """Evaluates source text in a persistent, capability-only environment."""

    def __init__(self, output: Optional[TextIO] = None,
                 classifier: Optional[mime_module.Classifier] = None,
                 indent: int = 2):
        self.env = create_global_env(output, classifier, indent)

    def eval_string(self, code: str) -> Any:
        """Evaluate every expression in ``code``; return the last result."""
        result = None
        for expr in parse_all(tokenize(code)):
            result = evaluate(expr, self.env)
        return result
