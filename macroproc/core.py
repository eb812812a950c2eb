import collections
import enum
import logging
import os.path

from .exceptions import ParseError
from .expansion import MacroExpander
from .expression import evaluate_expression
from .filesystem import HeaderHandler
from .symbols import SymbolTable
from .tokens import (DEFAULT_LINE_ENDING, DIRECTIVE_DELIMITERS, WHITESPACE,
                     next_token, read_logical_lines)

logger = logging.getLogger(__name__)

MAX_INCLUDE_DEPTH = 100


def is_directive(line):
    return line.lstrip(WHITESPACE).startswith("#")


def split_directive(line):
    """Split ``#name args`` into ``(name, args)``, args stripped."""
    body = line.strip(WHITESPACE)[1:].lstrip(WHITESPACE)
    name, _, pos = next_token(body, 0, WHITESPACE)
    if pos is None:
        return name, ""
    return name, body[pos:].strip(WHITESPACE)


def split_definition(definition):
    """
    Split ``NAME=VALUE`` or ``NAME VALUE`` into ``(name, value)``.

    The name ends at the first whitespace or ``=``; the value is what
    follows that run of separators, stripped. A missing value is "".
    """
    definition = definition.strip(WHITESPACE)
    name, _, pos = next_token(definition, 0, DIRECTIVE_DELIMITERS)
    if pos is None:
        return name, ""
    value = definition[pos:].lstrip(DIRECTIVE_DELIMITERS)
    return name, value.strip(WHITESPACE)


class MacroEngine:
    """
    Applies #define and #undef and expands active text lines.

    Predefined macros may be given as a mapping in defines; they go
    through the same path as #define.
    """

    def __init__(self, defines=None, symbols=None):
        self.symbols = symbols if symbols is not None else SymbolTable()
        self.expander = MacroExpander(self.symbols)
        if defines:
            for name, value in defines.items():
                self.define(name, value)

    def define(self, name, value=""):
        if not name:
            raise ParseError("Macro definition without a name")
        if "\0" in name or "\0" in value:
            raise ParseError(f"NUL character in definition of {name!r}")
        logger.debug("Defining %s as %r", name, value)
        self.symbols.put(name, value)

    def define_from_string(self, definition):
        self.define(*split_definition(definition))

    def undef(self, name):
        removed = self.symbols.remove(name)
        if removed:
            logger.debug("Undefined %s", name)
        return removed

    def expand(self, name):
        return self.expander.expand(name)

    def process_directive(self, line):
        directive, args = split_directive(line)
        if directive == "define":
            try:
                self.define_from_string(args)
            except ParseError as e:
                raise ParseError(
                    f"Malformed #define: {line.strip()!r}"
                ) from e
        elif directive == "undef":
            name, _, _ = next_token(args, 0, WHITESPACE)
            if not name:
                logger.warning("Ignoring #undef without a macro name")
                return
            self.undef(name)
        else:
            raise ParseError(f"Unsupported directive #{directive}")

    def process_line(self, line, is_directive=False, active=True):
        """
        Handle one logical line and return the text to emit.

        Directive lines and inactive lines emit nothing.
        """
        if not active:
            return ""
        if is_directive:
            self.process_directive(line)
            return ""
        return self.expander.expand_text(line)


class Tag(enum.Enum):
    IFDEF = "#ifdef"
    IFNDEF = "#ifndef"
    IF = "#if"
    ELIF = "#elif"
    ELSE = "#else"


class Condition:
    __slots__ = ["tag", "line_no", "enclosing", "active", "taken"]

    def __init__(self, tag, line_no, enclosing, taken):
        self.tag = tag
        self.line_no = line_no
        self.enclosing = enclosing
        self.active = enclosing and taken
        self.taken = taken

    def __repr__(self):
        return f"Condition({self.tag.value}, line {self.line_no})"


class Directive(collections.namedtuple(
        "Directive",
        ["line", "args", "file_name", "line_no", "depth", "base"])):
    __slots__ = ()

    @property
    def current_dir(self):
        return os.path.dirname(self.file_name)

    def __str__(self):
        return f"{self.file_name}:{self.line_no}"


class Preprocessor:
    def __init__(self, line_ending=DEFAULT_LINE_ENDING, include_paths=(),
                 header_handler=None, defines=None, ignore_headers=(),
                 engine=None):
        self.line_ending = line_ending
        self.engine = engine if engine is not None else MacroEngine()
        if defines:
            for name, value in defines.items():
                self.engine.define(name, value)
        if header_handler is None:
            header_handler = HeaderHandler(include_paths)
        else:
            header_handler.add_include_paths(include_paths)
        self.header_handler = header_handler
        self.ignore_headers = set(ignore_headers)
        self.constraints = []
        self.handlers = {
            "define": self.process_definition,
            "undef": self.process_definition,
            "include": self.process_include,
            "ifdef": self.process_ifdef,
            "ifndef": self.process_ifndef,
            "if": self.process_if,
            "elif": self.process_elif,
            "else": self.process_else,
            "endif": self.process_endif,
            "pragma": self.process_pragma,
        }

    @property
    def defines(self):
        return self.engine.symbols

    @property
    def active(self):
        return not self.constraints or self.constraints[-1].active

    def preprocess(self, f_object):
        """Yield the output of f_object, an iterable of lines with a name."""
        self.constraints = []
        return self._preprocess_file(f_object, 0)

    def _preprocess_file(self, f_object, depth):
        file_name = getattr(f_object, "name", "<input>")
        # Blocks below this depth belong to the including file.
        opened = len(self.constraints)
        for line_no, line in read_logical_lines(f_object, self.line_ending):
            if is_directive(line):
                name, args = split_directive(line)
                directive = Directive(line, args, file_name, line_no, depth,
                                      opened)
                chunks = self.process_directive(name, directive)
                if chunks is not None:
                    yield from chunks
            elif self.active:
                output = self.engine.process_line(line)
                if output:
                    yield output
        if len(self.constraints) > opened:
            condition = self.constraints[-1]
            raise ParseError(
                f"{condition.tag.value} from line {condition.line_no} "
                f"left open in {file_name}"
            )

    def process_directive(self, name, directive):
        if not name:
            return None
        method = self.handlers.get(name)
        if method is None:
            if not self.active:
                return None
            raise ParseError(f"Unsupported directive #{name} at {directive}")
        return method(directive)

    def process_definition(self, directive):
        if self.active:
            try:
                self.engine.process_line(directive.line, is_directive=True)
            except ParseError as e:
                raise ParseError(f"{e} at {directive}") from e

    def _push(self, tag, directive, taken):
        self.constraints.append(
            Condition(tag, directive.line_no, self.active, taken)
        )

    def _top(self, name, directive):
        if len(self.constraints) <= directive.base:
            raise ParseError(f"Unexpected {name} at {directive}")
        return self.constraints[-1]

    def _macro_name(self, name, directive):
        macro, _, _ = next_token(directive.args, 0, WHITESPACE)
        if not macro:
            raise ParseError(f"{name} without a macro name at {directive}")
        return macro

    def _evaluate(self, name, directive):
        try:
            return bool(
                evaluate_expression(directive.args, self.engine.expander)
            )
        except (SyntaxError, ZeroDivisionError) as e:
            raise ParseError(
                f"Error evaluating {name} {directive.args!r} at {directive}: "
                f"{e}"
            ) from e

    def process_ifdef(self, directive):
        taken = False
        if self.active:
            taken = self._macro_name("#ifdef", directive) in self.defines
        self._push(Tag.IFDEF, directive, taken)

    def process_ifndef(self, directive):
        taken = False
        if self.active:
            taken = self._macro_name("#ifndef", directive) not in self.defines
        self._push(Tag.IFNDEF, directive, taken)

    def process_if(self, directive):
        taken = self.active and self._evaluate("#if", directive)
        self._push(Tag.IF, directive, taken)

    def process_elif(self, directive):
        condition = self._top("#elif", directive)
        if condition.tag is Tag.ELSE:
            raise ParseError(f"#elif after #else at {directive}")
        condition.tag = Tag.ELIF
        if condition.taken or not condition.enclosing:
            condition.active = False
            return
        condition.taken = condition.active = self._evaluate("#elif", directive)

    def process_else(self, directive):
        condition = self._top("#else", directive)
        if condition.tag is Tag.ELSE:
            raise ParseError(f"#else after #else at {directive}")
        condition.tag = Tag.ELSE
        condition.active = condition.enclosing and not condition.taken
        condition.taken = True

    def process_endif(self, directive):
        self._top("#endif", directive)
        self.constraints.pop()

    def process_pragma(self, directive):
        if self.active:
            return iter([directive.line])
        return None

    def process_include(self, directive):
        if not self.active:
            return None
        header, local = self._parse_include(directive)
        if header in self.ignore_headers:
            logger.debug("Skipping ignored header %s", header)
            return None
        if directive.depth >= MAX_INCLUDE_DEPTH:
            raise ParseError(f"#include nested too deeply at {directive}")
        f_object = self.header_handler.open_header(
            header, directive.current_dir, local
        )
        if f_object is None:
            raise ParseError(f"Could not find header {header} at {directive}")
        logger.debug("Including %s from %s", header, directive)
        return self._include(f_object, directive.depth + 1)

    def _include(self, f_object, depth):
        with f_object:
            yield from self._preprocess_file(f_object, depth)

    def _parse_include(self, directive):
        args = directive.args
        if not args:
            raise ParseError(
                f"Invalid include, empty include name at {directive}"
            )
        opening = args[0]
        if opening == '"':
            closing = '"'
        elif opening == "<":
            closing = ">"
        else:
            raise ParseError(f"Invalid include {args!r} at {directive}")
        end = args.find(closing, 1)
        if end < 0:
            raise ParseError(
                f"Invalid include, missing '{closing}' at {directive}"
            )
        header = args[1:end]
        if not header:
            raise ParseError(
                f"Invalid include, empty include name at {directive}"
            )
        return header, opening == '"'
