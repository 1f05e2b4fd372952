"""
C to USDB Algo Translator
=========================

A heuristic, line-oriented translator from a small C subset to Algo text.
It is not a C parser: it recognises the shapes beginner programs use and
degrades gracefully on everything else.

Pipeline
--------
1. Include expansion (usdb_algo.includes): local headers and their
   companion .c files are inlined from the workspace map.
2. Fragment splitting: comments are removed and each line is cut at
   top-level ';', '{' and '}' so that `int f() { return 1; }` becomes
   `int f() {`, `return 1;`, `}`. Every fragment keeps the index of the
   top-level C line it came from.
3. Translation: fragments are consumed in order. At file scope they
   produce CONST, TYPE, VAR and routine headers; inside a routine they
   produce statements, with a stack of open blocks tracking braces.
4. Assembly: sections are written in Algo order and the source map is
   built alongside.

Supported Subset
----------------
| C                                  | Algo                              |
|------------------------------------|-----------------------------------|
| #define N 10                       | CONST N = 10                      |
| const int N = 10;                  | CONST N = 10                      |
| struct / typedef struct { ... }    | Name = STRUCTURE BEGIN ... END    |
| enum / typedef enum { A, B }       | Name = (A, B)                     |
| int a, b[5]; char s[20];           | a : INTEGER, b : ARRAY[5] ..., s : STRING |
| int f(int a, int *b) { ... }       | FUNCTION f(a : INTEGER, VAR b : INTEGER) : INTEGER |
| *b = *b + 1; b->f; f(1, &v);       | b <- b + 1  b.f  f(1, v)          |
| void p(...) { ... }                | PROCEDURE p(...)                  |
| printf("x=%d\\n", x); puts("hi");  | PRINT("x=", x)  PRINT("hi")       |
| scanf("%d", &x);                   | SCAN(x)                           |
| if / else if / else                | IF (c) THEN ... ELSE ...          |
| while (c)                          | WHILE (c) DO                      |
| do { ... } while (c);              | DO ... WHILE (c)                  |
| for (i = a; i < b; i++)            | FOR i <- a TO b - 1 DO            |
| for (i = a; i >= b; i -= 2)        | FOR i <- a TO b STEP -2 DO        |
| switch / case / default / break    | SWITCH x BEGIN CASE v : ... END   |
| x += e; x++;                       | x <- x + e  x <- x + 1            |
| == != && \\|\\| ! % pow(a, b)        | = <> AND OR NOT MOD (a ^ b)       |

Every brace block becomes BEGIN ... END so the output always parses.
Lines outside the subset are kept as `// <original>` comments and
reported as warnings. `source_map[i]` is the 0-based C line behind Algo
line i, or -1 for lines the translator synthesised.
"""

from dataclasses import dataclass, field
from typing import Mapping, Optional
import logging
import re

from usdb_algo.config import UsdbConfig
from usdb_algo.includes import ExpandedLine, expand_includes
from usdb_algo.lexer import KEYWORDS

logger = logging.getLogger(__name__)


# =============================================================================
# Tables and Patterns
# =============================================================================

C_BASE_TYPES = {
    "int": "INTEGER",
    "long": "INTEGER",
    "short": "INTEGER",
    "float": "REAL",
    "double": "REAL",
    "char": "CHAR",
    "bool": "BOOLEAN",
    "_Bool": "BOOLEAN",
    "void": "VOID",
}

# Words that may precede or replace a base type
C_QUALIFIERS = frozenset({
    "const", "static", "volatile", "extern", "register", "inline",
    "unsigned", "signed", "long", "short",
})

INTEGER_MODIFIERS = frozenset({"unsigned", "signed", "long", "short"})

# Words the rewriter maps onto Algo keywords instead of renaming them
C_BOOLEAN_WORDS = {"true": "TRUE", "false": "FALSE"}

EMPTY_STRING = '""'

WORD = re.compile(r"[A-Za-z_]\w*")
LEADING_WORD = re.compile(r"\s*([A-Za-z_]\w*)")
CAST = re.compile(r"\(\s*(?:unsigned\s+|signed\s+|long\s+|short\s+)*(?:int|float|double|char|bool|long)\s*\)\s*")
FLOAT_SUFFIX = re.compile(r"\b(\d+\.\d+)[fF]\b")
TRAILING_DOT = re.compile(r"\b(\d+)\.(?!\d)")
POW_CALL = re.compile(r"pow\s*\(")
UNSUPPORTED_OPERATOR = re.compile(r"\?|->|<<|>>|\^|~|(?<!&)&(?!&)|(?<!\|)\|(?!\|)|\+\+|--|\bsizeof\b")

CASE_LABEL = re.compile(r"^case\s+('(?:\\.|[^'])'|[^:]+?)\s*:(?!:)\s*(.*)$", re.DOTALL)
DEFAULT_LABEL = re.compile(r"^default\s*:\s*(.*)$", re.DOTALL)
DEFINE = re.compile(r"^#\s*define\s+(\w+)(\([^)]*\))?\s*(.*)$")
DECLARATOR = re.compile(r"^(\**)\s*([A-Za-z_]\w*)\s*((?:\[[^\]]*\]\s*)*)(?:=\s*(.+))?$", re.DOTALL)
ROUTINE_HEADER = re.compile(r"^(\**)\s*([A-Za-z_]\w*)\s*\((.*)\)\s*(\{|;)?$", re.DOTALL)
INCREMENT = re.compile(r"^(?:(\+\+|--)\s*(.+)|(.+?)\s*(\+\+|--))$")
LVALUE = r"[A-Za-z_]\w*(?:\s*\[[^\]]*\])*(?:\s*\.\s*[A-Za-z_]\w*(?:\s*\[[^\]]*\])*)*"
ASSIGNMENT = re.compile(rf"^({LVALUE})\s*([-+*/%]?=)(?!=)\s*(.+)$", re.DOTALL)
CALL = re.compile(r"^([A-Za-z_]\w*)\s*\((.*)\)$", re.DOTALL)
CALL_START = re.compile(r"\b([A-Za-z_]\w*)\s*\(")
PARAMETER = re.compile(r"^(\**)\s*([A-Za-z_]\w*)\s*((?:\[[^\]]*\]\s*)*)$")
SIMPLE_OPERAND = re.compile(r"^[\w.\[\]]+$")
CONVERSION_PATTERN = re.compile(r"%[-+ #0]*(?:\d+|\*)?(?:\.(?:\d+|\*))?(?:hh|h|ll|l|L|z|j|t)?([diouxXeEfFgGcsp])")

INTEGER_LITERAL = re.compile(r"^-?\d+$")
HEX_LITERAL = re.compile(r"^-?0[xX][0-9a-fA-F]+$")
REAL_LITERAL = re.compile(r"^-?\d+\.\d+[fF]?$")
STRING_LITERAL = re.compile(r'^"(?:\\.|[^"\\])*"$')
CHAR_LITERAL = re.compile(r"^'(?:\\.|[^'\\])'$")


# =============================================================================
# Text Helpers
# =============================================================================

def _literal_end(text: str, start: int) -> int:
    """Index just past the string or char literal opening at start."""
    quote = text[start]
    i = start + 1
    while i < len(text):
        if text[i] == "\\":
            i += 2
            continue
        if text[i] == quote:
            return i + 1
        i += 1
    return len(text)


def _segments(text: str) -> list[tuple[bool, str]]:
    """Split text into (is_literal, segment) runs."""
    segments = []
    i = 0
    start = 0
    while i < len(text):
        if text[i] in "\"'":
            if i > start:
                segments.append((False, text[start:i]))
            end = _literal_end(text, i)
            segments.append((True, text[i:end]))
            i = start = end
        else:
            i += 1
    if start < len(text):
        segments.append((False, text[start:]))
    return segments


def _code_only(text: str) -> str:
    """text with every literal blanked out."""
    return "".join('""' if literal else code for literal, code in _segments(text))


def _matching_paren(text: str, open_index: int) -> int:
    """Index of the bracket closing the one at open_index, or -1."""
    pairs = {"(": ")", "[": "]", "{": "}"}
    closer = pairs[text[open_index]]
    opener = text[open_index]
    depth = 0
    i = open_index
    while i < len(text):
        char = text[i]
        if char in "\"'":
            i = _literal_end(text, i)
            continue
        if char == opener:
            depth += 1
        elif char == closer:
            depth -= 1
            if depth == 0:
                return i
        i += 1
    return -1


def split_top_level(text: str, separator: str = ",") -> list[str]:
    """Split on separator outside literals and brackets."""
    parts = []
    depth = 0
    current = []
    i = 0
    while i < len(text):
        char = text[i]
        if char in "\"'":
            end = _literal_end(text, i)
            current.append(text[i:end])
            i = end
            continue
        if char in "([{":
            depth += 1
        elif char in ")]}":
            depth -= 1
        if char == separator and depth == 0:
            parts.append("".join(current))
            current = []
        else:
            current.append(char)
        i += 1
    parts.append("".join(current))
    return parts


def _in_literal(text: str) -> list[bool]:
    """Per character of text, True when it sits inside a literal."""
    flags: list[bool] = []
    for is_literal, segment in _segments(text):
        flags.extend([is_literal] * len(segment))
    return flags


def _is_prefix_position(text: str, index: int) -> bool:
    """True when an operator at index has no left operand, so it is unary."""
    before = text[:index].rstrip()
    if not before or before[-1] in "([{,=+-*/%<>!&|?:;~":
        return True
    return re.search(r"\breturn$", before) is not None


def has_dereference(code: str) -> bool:
    """True when code applies unary '*' anywhere."""
    return any(_is_prefix_position(code, m.start()) for m in re.finditer(r"\*", code))


def strip_dereferences(text: str, names: set[str]) -> str:
    """
    Drop the unary '*' in front of each of names, outside literals.

    `(*x)` becomes `x` where the parentheses only group, `*x` becomes `x`
    and `x->f` becomes `x.f`. Multiplication is left alone.
    """
    if not names:
        return text
    alternatives = "|".join(re.escape(n) for n in sorted(names))
    rewrites = (
        (rf"\(\s*\*\s*({alternatives})\s*\)", r"\1", True),
        (rf"\*\s*({alternatives})\b", r"\1", True),
        (rf"\b({alternatives})\s*->\s*", r"\1.", False),
    )
    for pattern, replacement, unary in rewrites:
        literal = _in_literal(text)
        pieces = []
        last = 0
        for match in re.finditer(pattern, text):
            if literal[match.start()] or (unary and not _is_prefix_position(text, match.start())):
                continue
            pieces.append(text[last:match.start()])
            pieces.append(match.expand(replacement))
            last = match.end()
        pieces.append(text[last:])
        text = "".join(pieces)
    return text


def strip_address_of(text: str, by_pointer: Mapping[str, list[bool]]) -> str:
    """
    Drop '&' from call arguments that the callee takes through a pointer.

    by_pointer maps a C routine name to one flag per parameter.
    """
    literal = _in_literal(text)
    calls = [
        m for m in CALL_START.finditer(text)
        if m.group(1) in by_pointer and not literal[m.start()]
    ]
    for match in reversed(calls):
        open_index = match.end() - 1
        close = _matching_paren(text, open_index)
        if close == -1:
            continue
        flags = by_pointer[match.group(1)]
        args = split_top_level(text[open_index + 1:close])
        changed = False
        for index, arg in enumerate(args):
            stripped = arg.strip()
            if index < len(flags) and flags[index] and stripped.startswith("&") \
                    and not stripped.startswith("&&"):
                args[index] = stripped[1:].strip()
                changed = True
        if changed:
            text = text[:open_index + 1] + ", ".join(a.strip() for a in args) + text[close:]
    return text


def _split_header(text: str, keyword: str) -> Optional[tuple[str, str]]:
    """For `keyword (inner) rest`, return (inner, rest)."""
    open_index = text.find("(", len(keyword))
    if open_index == -1 or text[len(keyword):open_index].strip():
        return None
    close = _matching_paren(text, open_index)
    if close == -1:
        return None
    return text[open_index + 1:close].strip(), text[close + 1:].strip()


def algo_name(name: str) -> str:
    """A C identifier that is an Algo keyword gets a trailing underscore."""
    if name.lower() in KEYWORDS:
        return f"{name}_"
    return name


def c_literal(text: str) -> Optional[str]:
    """Algo spelling of a C literal, or None when text is not a literal."""
    text = text.strip()
    if INTEGER_LITERAL.match(text):
        return str(int(text))
    if HEX_LITERAL.match(text):
        return str(int(text, 16))
    if REAL_LITERAL.match(text):
        return text.rstrip("fF")
    if STRING_LITERAL.match(text) or CHAR_LITERAL.match(text):
        return text
    if text in C_BOOLEAN_WORDS:
        return C_BOOLEAN_WORDS[text]
    return None


# =============================================================================
# Fragment Splitting
# =============================================================================

@dataclass(frozen=True)
class Fragment:
    """A statement-sized piece of C and its top-level line index."""
    text: str
    origin: int


def _strip_line_comment(text: str) -> str:
    """text without a trailing // comment that sits outside literals."""
    kept = []
    for is_literal, segment in _segments(text):
        if not is_literal and "//" in segment:
            kept.append(segment[:segment.index("//")])
            break
        kept.append(segment)
    return "".join(kept).strip()


def split_fragments(lines: list[ExpandedLine]) -> list[Fragment]:
    """
    Cut expanded lines into fragments at top-level ';', '{' and '}'.

    Comments are dropped. A statement whose parentheses are still open at
    the end of a line continues on the next one. `= { ... }` initialisers
    stay attached to their declaration. Preprocessor lines are kept whole.
    """
    fragments: list[Fragment] = []
    buffer: list[str] = []
    buffer_origin = 0
    paren_depth = 0
    in_comment = False

    def push(piece: str, origin: int) -> None:
        nonlocal buffer_origin
        if piece.strip() and not "".join(buffer).strip():
            buffer_origin = origin
        buffer.append(piece)

    def flush() -> None:
        text = "".join(buffer).strip()
        buffer.clear()
        if text:
            fragments.append(Fragment(text, buffer_origin))

    for line in lines:
        text = line.text
        i = 0

        if in_comment:
            end = text.find("*/")
            if end == -1:
                continue
            i = end + 2
            in_comment = False

        if not "".join(buffer).strip() and text.strip().startswith("#"):
            directive = _strip_line_comment(text)
            if directive:
                fragments.append(Fragment(directive, line.origin))
            continue

        while i < len(text):
            char = text[i]

            if char in "\"'":
                end = _literal_end(text, i)
                push(text[i:end], line.origin)
                i = end
                continue
            if text.startswith("//", i):
                break
            if text.startswith("/*", i):
                end = text.find("*/", i + 2)
                if end == -1:
                    in_comment = True
                    break
                push(" ", line.origin)
                i = end + 2
                continue

            if char == "(":
                paren_depth += 1
            elif char == ")":
                paren_depth = max(paren_depth - 1, 0)

            if paren_depth == 0 and char in ";{}":
                if char == "{" and "".join(buffer).rstrip().endswith("="):
                    close = _matching_paren(text, i)
                    if close != -1:
                        push(text[i:close + 1], line.origin)
                        i = close + 1
                        continue
                if char == "}":
                    flush()
                    fragments.append(Fragment("}", line.origin))
                else:
                    push(char, line.origin)
                    flush()
                i += 1
                continue

            push(char, line.origin)
            i += 1

        if paren_depth == 0:
            flush()
        else:
            buffer.append(" ")

    flush()
    return fragments


# =============================================================================
# Translation State
# =============================================================================

@dataclass
class TranslationResult:
    """
    Output of translate_c_to_algo().

    Attributes:
        success: False only for empty input or an internal failure
        algo_code: The Algo program, one trailing newline
        warnings: Constructs that were skipped or kept as comments
        errors: Reasons translation failed
        source_map: C line (0-based) per Algo line, -1 for synthetic lines
    """
    success: bool = True
    algo_code: str = ""
    warnings: list[str] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)
    source_map: list[int] = field(default_factory=list)


@dataclass
class _Variable:
    name: str
    type: str
    dimensions: list[str] = field(default_factory=list)


@dataclass
class _Line:
    text: str
    depth: int
    origin: int


@dataclass
class _Routine:
    """A function, procedure or the main body being collected."""
    name: str
    origin: int
    return_type: Optional[str] = None
    params: list[str] = field(default_factory=list)
    constants: list[tuple[str, str]] = field(default_factory=list)
    variables: list[_Variable] = field(default_factory=list)
    body: list[_Line] = field(default_factory=list)
    end_origin: int = -1
    is_main: bool = False
    pointer_params: set[str] = field(default_factory=set)


@dataclass
class _Block:
    """
    An open block inside a routine body.

    Attributes:
        kind: routine, if, else, while, for, do, switch or plain
        braced: True once the block's '{' has been seen
        awaiting: True while a header waits for either '{' or its statement
        trailer: Lines emitted just before the closing END
        case_open: A CASE/DEFAULT body is open (switch only)
        case_line: Index of the open CASE line in the body (switch only)
        case_has_body: The open CASE already holds a statement
    """
    kind: str
    braced: bool = False
    awaiting: bool = False
    trailer: list[str] = field(default_factory=list)
    case_open: bool = False
    case_line: int = -1
    case_has_body: bool = False


# =============================================================================
# Translator
# =============================================================================

class CToAlgoTranslator:
    """
    Heuristic C to Algo translator.

    Usage:
        translator = CToAlgoTranslator()
        result = translator.translate(c_source, {"utils.h": "..."})
        print(result.algo_code)
    """

    def __init__(self, config: Optional[UsdbConfig] = None):
        self.config = config or UsdbConfig()

    def translate(
        self, c_code: str, workspace_files: Optional[Mapping[str, str]] = None
    ) -> TranslationResult:
        if not c_code or not c_code.strip():
            return TranslationResult(success=False, errors=["Empty C source"])

        self._reset()
        try:
            expansion = expand_includes(c_code, workspace_files)
            self.warnings.extend(expansion.warnings)
            self._fragments = split_fragments(expansion.lines)
            self._translate_fragments()
            lines = self._assemble()
        except Exception as e:
            logger.exception("C to Algo translation failed")
            return TranslationResult(
                success=False,
                warnings=list(self.warnings),
                errors=[f"Internal translator error: {e}"],
            )

        logger.debug(
            "Translated %d fragments into %d Algo lines, %d warnings",
            len(self._fragments), len(lines), len(self.warnings),
        )
        return TranslationResult(
            success=True,
            algo_code="\n".join(text for text, _ in lines) + "\n",
            warnings=list(self.warnings),
            errors=[],
            source_map=[origin for _, origin in lines],
        )

    # =========================================================================
    # State
    # =========================================================================

    def _reset(self) -> None:
        self.warnings: list[str] = []
        self._fragments: list[Fragment] = []
        self._index = 0
        self._constants: list[tuple[str, str]] = []
        self._types: list[list[str]] = []
        self._type_names: dict[str, str] = {}
        self._variables: list[_Variable] = []
        self._global_inits: list[_Line] = []
        self._routines: list[_Routine] = []
        self._by_pointer: dict[str, list[bool]] = {}
        self._main: Optional[_Routine] = None
        self._current: Optional[_Routine] = None
        self._blocks: list[_Block] = []
        self._depth = 0
        self._pending_do = False

    def _warn(self, message: str) -> None:
        logger.warning(message)
        self.warnings.append(message)

    def _upcoming(self) -> str:
        if self._index + 1 < len(self._fragments):
            return self._fragments[self._index + 1].text
        return ""

    # =========================================================================
    # Driver
    # =========================================================================

    def _translate_fragments(self) -> None:
        self._index = 0
        while self._index < len(self._fragments):
            fragment = self._fragments[self._index]
            if self._current is None:
                self._file_scope(fragment)
            else:
                self._body_fragment(fragment.text, fragment.origin)
            self._index += 1

        if self._current is not None:
            self._warn(f"Missing '}}' at end of '{self._current.name}'")
            while len(self._blocks) > 1:
                self._close_block(self._blocks.pop(), -1)
            self._finish_routine(-1)

    # =========================================================================
    # File Scope
    # =========================================================================

    def _file_scope(self, fragment: Fragment) -> None:
        text = fragment.text

        if text.startswith("#"):
            match = DEFINE.match(text)
            if match:
                self._define(match)
            return

        if text in (";", "}"):
            return

        if re.match(r"^(typedef\s+)?(struct|union|enum)\b", text) and self._starts_aggregate(text):
            self._aggregate(text)
            return

        if text.startswith("typedef"):
            self._typedef(text)
            return

        parsed = self._match_type(text)
        if parsed is None:
            self._warn(f"Unsupported top-level line skipped: {text}")
            return

        algo_type, rest, is_const = parsed
        header = ROUTINE_HEADER.match(rest)
        if header:
            stars, name, params, terminator = header.groups()
            if name != "main":
                self._by_pointer[name] = [p is not None for p in self._pointer_parameters(params)]
            if terminator == ";":
                logger.debug("Skipping prototype of %s", name)
                return
            if stars and algo_type == "CHAR":
                algo_type = "STRING"
            self._open_routine(name, algo_type, params, fragment.origin, opened=terminator == "{")
            return

        self._declaration(algo_type, rest.rstrip(";"), is_const, fragment.origin, global_scope=True)

    def _define(self, match: re.Match) -> None:
        name, params, value = match.groups()
        if not value and not params:
            logger.debug("Ignoring valueless macro %s", name)
            return
        literal = c_literal(value) if not params else None
        if literal is None:
            self._warn(f"Macro '{name}' is not a simple constant, skipped")
            return
        self._constants.append((algo_name(name), literal))

    def _typedef(self, text: str) -> None:
        """typedef <type> Name; (struct aliases register the name only)."""
        parsed = self._match_type(text[len("typedef"):])
        match = re.match(r"^([A-Za-z_]\w*)\s*;?$", parsed[1]) if parsed else None
        if not match:
            self._warn(f"Unsupported typedef skipped: {text}")
            return
        name = match.group(1)
        algo_type = parsed[0]
        if algo_type in ("INTEGER", "REAL", "CHAR", "BOOLEAN", "STRING"):
            self._types.append([f"{algo_name(name)} = {algo_type}"])
            self._type_names[name] = algo_name(name)
        else:
            self._type_names[name] = algo_type

    def _starts_aggregate(self, text: str) -> bool:
        if "(" in text:
            return False
        if text.endswith("{"):
            return True
        return self._upcoming() == "{" and not text.endswith(";")

    def _aggregate(self, header: str) -> None:
        """Collect a struct/union/enum block and emit its TYPE entry."""
        members: list[str] = []
        depth = 1 if header.endswith("{") else 0
        if depth == 0:
            self._index += 1
            depth = 1

        while depth > 0 and self._index + 1 < len(self._fragments):
            self._index += 1
            text = self._fragments[self._index].text
            if text == "}":
                depth -= 1
            elif text.endswith("{"):
                depth += 1
            elif depth == 1:
                members.append(text)

        name = None
        tag = re.match(r"^(?:typedef\s+)?(?:struct|union|enum)\s+([A-Za-z_]\w*)", header)
        trailer = self._upcoming()
        trailer_match = re.match(r"^([A-Za-z_]\w*)?\s*;$", trailer)
        if trailer_match:
            self._index += 1
            name = trailer_match.group(1)
        if name is None and tag:
            name = tag.group(1)
        if name is None:
            return

        is_enum = re.match(r"^(?:typedef\s+)?enum\b", header) is not None
        if is_enum:
            entry = self._enum_entry(name, members)
        else:
            entry = self._struct_entry(name, members)
        if entry is None:
            return

        self._types.append(entry)
        self._type_names[name] = algo_name(name)
        if tag:
            self._type_names[tag.group(1)] = algo_name(name)

    def _enum_entry(self, name: str, members: list[str]) -> Optional[list[str]]:
        values = []
        for member in members:
            for item in split_top_level(member):
                value = item.split("=")[0].strip()
                if WORD.fullmatch(value):
                    values.append(algo_name(value))
        if not values:
            return None
        return [f"{algo_name(name)} = ({', '.join(values)})"]

    def _struct_entry(self, name: str, members: list[str]) -> Optional[list[str]]:
        fields = []
        for member in members:
            parsed = self._match_type(member)
            if parsed is None:
                continue
            for variable in self._declarators(parsed[0], parsed[1].rstrip(";")):
                fields.append(f"{self.config.indent}{variable.name} : {self._type_text(variable)}")
        if not fields:
            return None
        return [f"{algo_name(name)} = STRUCTURE", "BEGIN", *fields, "END"]

    # =========================================================================
    # Types and Declarations
    # =========================================================================

    def _match_type(self, text: str) -> Optional[tuple[str, str, bool]]:
        """
        Recognise a leading C type.

        Returns:
            (algo_type, rest_of_text, is_const) or None when text does not
            start with a type. algo_type is VOID for void.
        """
        pos = 0
        is_const = False
        modifiers = False
        while True:
            match = LEADING_WORD.match(text, pos)
            if not match:
                return None
            word = match.group(1)

            if word in ("struct", "union", "enum"):
                tag = LEADING_WORD.match(text, match.end())
                if not tag:
                    return None
                resolved = self._type_names.get(tag.group(1), algo_name(tag.group(1)))
                return resolved, text[tag.end():].strip(), is_const

            if word in C_BASE_TYPES and word not in ("long", "short"):
                return C_BASE_TYPES[word], text[match.end():].strip(), is_const

            if word in C_QUALIFIERS:
                is_const = is_const or word == "const"
                modifiers = modifiers or word in INTEGER_MODIFIERS
                pos = match.end()
                continue

            if word in self._type_names:
                return self._type_names[word], text[match.end():].strip(), is_const

            if modifiers:
                return "INTEGER", text[match.start(1):].strip(), is_const
            return None

    def _declarators(self, algo_type: str, text: str, origin: int = -1,
                     inits: Optional[list[_Line]] = None) -> list[_Variable]:
        """
        Parse `a, b[5], *p, s[20] = "x"` into variables.

        Initialisers are translated into assignment lines appended to inits.
        """
        variables = []
        for item in split_top_level(text):
            match = DECLARATOR.match(item.strip())
            if not match:
                if item.strip():
                    self._warn(f"Unsupported declarator skipped: {item.strip()}")
                continue

            stars, name, dims_text, init = match.groups()
            name = algo_name(name)
            dimensions = [d.strip() for d in re.findall(r"\[([^\]]*)\]", dims_text or "")]
            var_type = algo_type

            if stars:
                if algo_type == "CHAR" and len(stars) == 1 and not dimensions:
                    var_type = "STRING"
                else:
                    self._warn(f"Pointer '{name}' not supported, skipped")
                    continue
            elif algo_type == "CHAR" and len(dimensions) == 1:
                var_type = "STRING"
                dimensions = []

            if dimensions and not dimensions[0] and init and init.strip().startswith("{"):
                dimensions[0] = str(len(split_top_level(init.strip()[1:-1])))
            if any(not d for d in dimensions):
                self._warn(f"Array '{name}' without a size not supported, skipped")
                continue

            variables.append(_Variable(
                name, var_type, [self.translate_expression(d) for d in dimensions]
            ))
            if init is not None and inits is not None:
                inits.extend(self._initialiser(name, dimensions, init.strip(), origin))
        return variables

    def _initialiser(self, name: str, dimensions: list[str], init: str, origin: int) -> list[_Line]:
        if init.startswith("{"):
            if len(dimensions) != 1:
                self._warn(f"Initialiser of '{name}' not supported, skipped")
                return []
            elements = [e.strip() for e in split_top_level(init[1:-1]) if e.strip()]
            return [
                _Line(f"{name}[{index}] <- {self.translate_expression(e)}", 0, origin)
                for index, e in enumerate(elements)
            ]
        if not self._supported(init):
            self._warn(f"Initialiser of '{name}' not supported, skipped")
            return []
        return [_Line(f"{name} <- {self.translate_expression(init)}", 0, origin)]

    def _declaration(self, algo_type: str, rest: str, is_const: bool, origin: int,
                     global_scope: bool = False) -> list[_Line]:
        """Register declared variables; return initialiser assignments."""
        if algo_type == "VOID":
            self._warn(f"Unsupported declaration skipped: void {rest}")
            return []

        if is_const:
            match = re.match(r"^([A-Za-z_]\w*)\s*=\s*(.+)$", rest, re.DOTALL)
            literal = c_literal(match.group(2)) if match else None
            if literal is not None:
                entry = (algo_name(match.group(1)), literal)
                if global_scope or self._current is None or self._current.is_main:
                    self._constants.append(entry)
                else:
                    self._current.constants.append(entry)
                return []

        inits: list[_Line] = []
        variables = self._declarators(algo_type, rest, origin, inits)

        if global_scope or self._current is None or self._current.is_main:
            scope = self._variables
        else:
            scope = self._current.variables
        known = {v.name.lower() for v in scope}
        for variable in variables:
            if variable.name.lower() not in known:
                scope.append(variable)
                known.add(variable.name.lower())

        if global_scope:
            self._global_inits.extend(inits)
            return []
        return inits

    def _type_text(self, variable: _Variable) -> str:
        if variable.dimensions:
            dims = "".join(f"[{d}]" for d in variable.dimensions)
            return f"ARRAY{dims} OF {variable.type}"
        return variable.type

    # =========================================================================
    # Routines
    # =========================================================================

    def _open_routine(self, name: str, return_type: str, params: str, origin: int, opened: bool) -> None:
        if name == "main":
            routine = _Routine(name="main", origin=origin, is_main=True)
            self._main = routine
        else:
            routine = _Routine(
                name=algo_name(name),
                origin=origin,
                return_type=None if return_type == "VOID" else return_type,
                params=self._parameters(params),
                pointer_params={p for p in self._pointer_parameters(params) if p is not None},
            )
            self._routines.append(routine)

        logger.debug("Entering routine %s", name)
        self._current = routine
        self._depth = 0
        self._blocks = [_Block("routine", braced=opened, awaiting=not opened)]

    def _parameters(self, text: str) -> list[str]:
        text = text.strip()
        if not text or text == "void":
            return []

        params = []
        for item in split_top_level(text):
            parsed = self._match_type(item.strip())
            match = PARAMETER.match(parsed[1]) if parsed else None
            if not match:
                self._warn(f"Unsupported parameter skipped: {item.strip()}")
                continue

            algo_type = parsed[0]
            stars, name, dims_text = match.groups()
            name = algo_name(name)
            dimensions = [d.strip() for d in re.findall(r"\[([^\]]*)\]", dims_text)]

            if algo_type == "CHAR" and (len(stars) == 1 or len(dimensions) == 1):
                params.append(f"{name} : STRING")
            elif dimensions:
                if any(not d for d in dimensions):
                    self._warn(f"Array parameter '{name}' without a size not supported, skipped")
                    continue
                dims = "".join(f"[{self.translate_expression(d)}]" for d in dimensions)
                params.append(f"VAR {name} : ARRAY{dims} OF {algo_type}")
            elif stars:
                params.append(f"VAR {name} : {algo_type}")
            else:
                params.append(f"{name} : {algo_type}")
        return params

    def _pointer_parameters(self, text: str) -> list[Optional[str]]:
        """
        Per C parameter, its name when it is a plain pointer (which becomes
        a VAR parameter), else None.
        """
        text = text.strip()
        if not text or text == "void":
            return []
        names: list[Optional[str]] = []
        for item in split_top_level(text):
            parsed = self._match_type(item.strip())
            match = PARAMETER.match(parsed[1]) if parsed else None
            if match and match.group(1) and not match.group(3) and parsed[0] != "CHAR":
                names.append(match.group(2))
            else:
                names.append(None)
        return names

    def _finish_routine(self, origin: int) -> None:
        logger.debug("Leaving routine %s", self._current.name)
        self._current.end_origin = origin
        self._current = None
        self._blocks = []
        self._depth = 0
        self._pending_do = False

    # =========================================================================
    # Routine Bodies
    # =========================================================================

    def _emit(self, text: str, origin: int) -> None:
        self._current.body.append(_Line(text, self._depth, origin))

    def _emit_statement(self, lines: list[str], origin: int) -> None:
        """Emit statement lines, marking an open CASE as non-empty."""
        if self._blocks and self._blocks[-1].kind == "switch" and lines:
            self._blocks[-1].case_has_body = True
        for text in lines:
            self._emit(text, origin)

    def _comment(self, text: str, origin: int, reason: str = "Unsupported C construct kept as comment") -> None:
        self._warn(f"{reason}: {text}")
        self._emit_statement([f"// {text}"], origin)

    def _body_fragment(self, text: str, origin: int) -> None:
        text = strip_address_of(text, self._by_pointer)
        text = strip_dereferences(text, self._current.pointer_params)
        top = self._blocks[-1] if self._blocks else None

        if text == "{":
            if top is not None and top.awaiting:
                top.awaiting = False
                top.braced = True
            else:
                self._open_block("plain", [], "{", origin)
            return

        if text == "}":
            self._close_brace(origin)
            return

        if top is not None and top.awaiting:
            if top.kind == "routine":
                self._comment(text, origin)
                return
            top.awaiting = False

        if self._pending_do:
            self._pending_do = False
            header = _split_header(text, "while") if re.match(r"^while\b", text) else None
            if header is not None:
                self._emit(f"WHILE ({self.translate_expression(header[0])})", origin)
            else:
                self._warn("DO block without a closing while condition")
                self._emit("WHILE (FALSE)", -1)
                self._body_fragment(text, origin)
                return
            self._after_statement()
            return

        if self._control_header(text, origin):
            return

        lines = self._statement(text.rstrip(";").strip(), origin)
        if lines is None:
            self._comment(text, origin)
        else:
            self._emit_statement(lines, origin)
        self._after_statement()

    def _control_header(self, text: str, origin: int) -> bool:
        """Handle if/else/while/for/do/switch/case/default; False otherwise."""
        if match := CASE_LABEL.match(text):
            self._case_label(f"CASE {self.translate_expression(match.group(1))} :", match.group(1), origin)
            if match.group(2).strip():
                self._body_fragment(match.group(2).strip(), origin)
            return True

        if match := DEFAULT_LABEL.match(text):
            self._case_label("DEFAULT :", None, origin)
            if match.group(1).strip():
                self._body_fragment(match.group(1).strip(), origin)
            return True

        if re.match(r"^if\s*\(", text):
            header = _split_header(text, "if")
            if header is None or not self._supported(header[0]):
                return False
            self._open_block("if", [f"IF ({self.translate_expression(header[0])}) THEN"], header[1], origin)
            return True

        if re.match(r"^else\b", text):
            rest = text[len("else"):].strip()
            self._emit_statement(["ELSE"], origin)
            if re.match(r"^if\s*\(", rest):
                self._body_fragment(rest, origin)
            else:
                self._open_block("else", [], rest, origin)
            return True

        if re.match(r"^while\s*\(", text):
            header = _split_header(text, "while")
            if header is None or not self._supported(header[0]):
                return False
            self._open_block("while", [f"WHILE ({self.translate_expression(header[0])}) DO"], header[1], origin)
            return True

        if re.match(r"^for\s*\(", text):
            header = _split_header(text, "for")
            if header is None:
                return False
            return self._for_header(header[0], header[1], origin)

        if re.match(r"^do\b", text):
            self._open_block("do", ["DO"], text[len("do"):].strip(), origin)
            return True

        if re.match(r"^switch\s*\(", text):
            header = _split_header(text, "switch")
            if header is None or not self._supported(header[0]):
                return False
            self._emit_statement([f"SWITCH {self.translate_expression(header[0])} BEGIN"], origin)
            self._depth += 1
            block = _Block("switch", braced=header[1] == "{", awaiting=header[1] != "{")
            self._blocks.append(block)
            return True

        return False

    def _open_block(self, kind: str, header: list[str], rest: str, origin: int,
                    trailer: Optional[list[str]] = None) -> None:
        """
        Emit a block header and BEGIN, then handle what follows it.

        rest is "{" for a braced block, "" when the body starts on a later
        fragment, ";" for an empty body, or an inline statement.
        """
        self._emit_statement(header, origin)
        self._emit("BEGIN", -1)
        self._depth += 1
        block = _Block(kind, trailer=trailer or [])

        if rest == "{":
            block.braced = True
            self._blocks.append(block)
        elif rest == "":
            block.awaiting = True
            self._blocks.append(block)
        elif rest == ";":
            self._close_block(block, origin)
            self._after_closed(block)
        else:
            self._blocks.append(block)
            self._body_fragment(rest, origin)

    def _close_block(self, block: _Block, origin: int) -> None:
        if block.kind == "switch":
            if block.case_open:
                self._depth -= 1
                self._emit("END", -1)
            self._depth -= 1
            self._emit("END", origin)
            return
        for text in block.trailer:
            self._emit(text, -1)
        self._depth -= 1
        self._emit("END", origin)

    def _after_closed(self, block: _Block) -> None:
        """Continue after a block ends: DO waits for WHILE, IF for ELSE."""
        if block.kind == "do":
            self._pending_do = True
            return
        if block.kind == "if" and re.match(r"^else\b", self._upcoming()):
            return
        self._after_statement()

    def _after_statement(self) -> None:
        """A statement finished: close single-statement blocks around it."""
        while self._blocks and not self._blocks[-1].braced and not self._blocks[-1].awaiting \
                and self._blocks[-1].kind != "routine":
            block = self._blocks.pop()
            self._close_block(block, -1)
            if block.kind == "do":
                self._pending_do = True
                return
            if block.kind == "if" and re.match(r"^else\b", self._upcoming()):
                return

    def _close_brace(self, origin: int) -> None:
        while self._blocks and not self._blocks[-1].braced and self._blocks[-1].kind != "routine":
            self._close_block(self._blocks.pop(), -1)
        if not self._blocks:
            return
        block = self._blocks.pop()
        if block.kind == "routine":
            self._finish_routine(origin)
            return
        self._close_block(block, origin)
        self._after_closed(block)

    def _case_label(self, label: str, value: Optional[str], origin: int) -> None:
        switch = self._blocks[-1] if self._blocks else None
        if switch is None or switch.kind != "switch":
            self._comment(label, origin, "Case label outside a switch kept as comment")
            return

        if value is not None and switch.case_open and not switch.case_has_body and switch.case_line >= 0:
            line = self._current.body[switch.case_line]
            if line.text.startswith("CASE "):
                line.text = f"{line.text[:-2]}, {self.translate_expression(value)} :"
                return

        if switch.case_open:
            self._depth -= 1
            self._emit("END", -1)

        self._emit(label, origin)
        switch.case_line = len(self._current.body) - 1
        self._emit("BEGIN", -1)
        self._depth += 1
        switch.case_open = True
        switch.case_has_body = False

    def _for_header(self, inner: str, rest: str, origin: int) -> bool:
        parts = split_top_level(inner, ";")
        if len(parts) != 3:
            return False
        init, condition, update = (p.strip() for p in parts)

        header = self._counted_for(init, condition, update, origin)
        if header is not None:
            self._open_block("for", [header], rest, origin)
            return True

        # Anything else runs as: init; WHILE (cond) DO BEGIN body update END
        lines: list[str] = []
        if init:
            init_lines = self._statement(init, origin)
            if init_lines is None:
                return False
            lines.extend(init_lines)
        trailer = self._statement(update, origin) if update else []
        if trailer is None or (condition and not self._supported(condition)):
            return False
        self._emit_statement(lines, origin)
        cond = self.translate_expression(condition) if condition else "TRUE"
        self._open_block("for", [f"WHILE ({cond}) DO"], rest, origin, trailer=trailer)
        return True

    def _counted_for(self, init: str, condition: str, update: str, origin: int) -> Optional[str]:
        """FOR header for `i = a; i < b; i++` style loops, else None."""
        parsed = self._match_type(init)
        if parsed is not None:
            self._declaration(parsed[0], re.sub(r"=.*$", "", parsed[1]).strip(), False, origin)
            init = parsed[1]

        init_match = re.match(r"^([A-Za-z_]\w*)\s*=\s*(.+)$", init)
        cond_match = re.match(r"^([A-Za-z_]\w*)\s*(<=|<|>=|>)\s*(.+)$", condition)
        if not init_match or not cond_match or init_match.group(1) != cond_match.group(1):
            return None

        var = init_match.group(1)
        step = self._step(var, update)
        if step is None:
            return None

        operator = cond_match.group(2)
        if (step > 0) != (operator in ("<", "<=")):
            return None
        if not (self._supported(init_match.group(2)) and self._supported(cond_match.group(3))):
            return None

        start = self.translate_expression(init_match.group(2))
        end = self.translate_expression(cond_match.group(3))
        if operator in ("<", ">"):
            delta = -1 if operator == "<" else 1
            if INTEGER_LITERAL.match(end):
                end = str(int(end) + delta)
            else:
                end = f"{end} - 1" if delta < 0 else f"{end} + 1"

        header = f"FOR {algo_name(var)} <- {start} TO {end}"
        if step != 1:
            header += f" STEP {step}"
        return header + " DO"

    @staticmethod
    def _step(var: str, update: str) -> Optional[int]:
        """Signed integer step of `i++`, `i--`, `i += 2`, `i = i - 2`, else None."""
        update = update.replace(" ", "")
        if update in (f"{var}++", f"++{var}"):
            return 1
        if update in (f"{var}--", f"--{var}"):
            return -1
        match = re.match(rf"^{re.escape(var)}(\+|-)=(\d+)$", update) or \
            re.match(rf"^{re.escape(var)}={re.escape(var)}(\+|-)(\d+)$", update)
        if match:
            value = int(match.group(2))
            if value == 0:
                return None
            return value if match.group(1) == "+" else -value
        return None

    # =========================================================================
    # Simple Statements
    # =========================================================================

    def _statement(self, text: str, origin: int) -> Optional[list[str]]:
        """
        Translate one simple statement (no trailing ';').

        Returns:
            Algo lines (possibly none), or None when unsupported
        """
        if not text:
            return []

        if text == "return" or text.startswith("return ") or text.startswith("return("):
            value = text[len("return"):].strip()
            if not value or self._current.is_main:
                return [] if len(self._blocks) == 1 else None
            if not self._supported(value):
                return None
            return [f"RETURN({self.translate_expression(value)})"]

        if text in ("break", "continue"):
            loop = next(
                (b for b in reversed(self._blocks) if b.kind in ("switch", "while", "for", "do")),
                None,
            )
            if text == "break" and loop is not None and loop.kind == "switch":
                loop.case_has_body = True
                return []
            return None

        parsed = self._match_type(text)
        if parsed is not None:
            algo_type, rest, is_const = parsed
            return [line.text for line in self._declaration(algo_type, rest, is_const, origin)]

        if match := CALL.match(text):
            name, args = match.groups()
            if name in ("printf", "puts", "putchar", "scanf") and _matching_paren(text, text.index("(")) == len(text) - 1:
                return self._io_call(name, args)

        if match := INCREMENT.match(text):
            target = match.group(2) or match.group(3)
            operator = (match.group(1) or match.group(4))[0]
            if re.fullmatch(LVALUE, target.strip()):
                target = self.translate_expression(target)
                return [f"{target} <- {target} {operator} 1"]
            return None

        if match := ASSIGNMENT.match(text):
            target, operator, value = match.groups()
            if not self._supported(value) or not self._supported(target):
                return None
            target = self.translate_expression(target)
            value = self.translate_expression(value)
            if operator == "=":
                return [f"{target} <- {value}"]
            if not SIMPLE_OPERAND.match(value.replace(" ", "")):
                value = f"({value})"
            algo_operator = "MOD" if operator[0] == "%" else operator[0]
            return [f"{target} <- {target} {algo_operator} {value}"]

        if match := CALL.match(text):
            name, args = match.groups()
            if _matching_paren(text, text.index("(")) != len(text) - 1 or not self._supported(args):
                return None
            return [f"{algo_name(name)}({self.translate_expression(args)})"]

        return None

    def _io_call(self, name: str, args: str) -> Optional[list[str]]:
        arguments = [a.strip() for a in split_top_level(args) if a.strip()]

        if name == "scanf":
            targets = [a.lstrip("&").strip() for a in arguments[1:]]
            if not targets or not all(self._supported(t) for t in targets):
                return None
            return [f"SCAN({', '.join(self.translate_expression(t) for t in targets)})"]

        if name in ("puts", "putchar"):
            if len(arguments) != 1 or not self._supported(arguments[0]):
                return None
            return [f"PRINT({self.translate_expression(arguments[0])})"]

        if not arguments:
            return None
        if not all(self._supported(a) for a in arguments[1:]):
            return None

        if not STRING_LITERAL.match(arguments[0]):
            return [f"PRINT({', '.join(self.translate_expression(a) for a in arguments)})"]

        items = self._format_items(arguments[0][1:-1], arguments[1:])
        if items is None:
            return None
        return [f"PRINT({', '.join(items or [EMPTY_STRING])})"]

    def _format_items(self, fmt: str, args: list[str]) -> Optional[list[str]]:
        """Interleave the text of a printf format with its arguments."""
        if fmt.endswith("\\n"):
            fmt = fmt[:-2]

        items = []
        remaining = list(args)
        text = []
        i = 0
        while i < len(fmt):
            if fmt.startswith("%%", i):
                text.append("%")
                i += 2
                continue
            match = CONVERSION_PATTERN.match(fmt, i) if fmt[i] == "%" else None
            if match:
                if text:
                    items.append(f'"{"".join(text)}"')
                    text = []
                if not remaining:
                    return None
                items.append(self.translate_expression(remaining.pop(0)))
                i = match.end()
                continue
            if fmt[i] == "\\" and i + 1 < len(fmt):
                text.append(fmt[i:i + 2])
                i += 2
                continue
            text.append(fmt[i])
            i += 1

        if text:
            items.append(f'"{"".join(text)}"')
        items.extend(self.translate_expression(a) for a in remaining)
        return items

    # =========================================================================
    # Expressions
    # =========================================================================

    def _supported(self, expr: str) -> bool:
        code = _code_only(expr)
        return UNSUPPORTED_OPERATOR.search(code) is None and not has_dereference(code)

    def translate_expression(self, expr: str) -> str:
        """Rewrite a C expression into Algo, leaving literals untouched."""
        expr = _rewrite_pow(expr.strip())
        parts = []
        for is_literal, segment in _segments(expr):
            parts.append(segment if is_literal else _rewrite_code(segment))
        return "".join(parts).strip()

    # =========================================================================
    # Assembly
    # =========================================================================

    def _assemble(self) -> list[tuple[str, int]]:
        indent = self.config.indent
        lines: list[tuple[str, int]] = [(f"ALGORITHM {self.config.program_name}", -1)]

        if self._constants:
            lines += [("", -1), ("CONST", -1)]
            lines += [(f"{indent}{name} = {value}", -1) for name, value in self._constants]

        if self._types:
            lines += [("", -1), ("TYPE", -1)]
            for entry in self._types:
                lines += [(f"{indent}{text}", -1) for text in entry]

        if self._variables:
            lines += [("", -1), ("VAR", -1)]
            lines += [(text, -1) for text in self._variable_lines(self._variables, indent)]

        for routine in self._routines:
            lines.append(("", -1))
            params = ", ".join(routine.params)
            if routine.return_type is None:
                lines.append((f"PROCEDURE {routine.name}({params})", routine.origin))
            else:
                lines.append((f"FUNCTION {routine.name}({params}) : {routine.return_type}", routine.origin))
            if routine.constants:
                lines.append(("CONST", -1))
                lines += [(f"{indent}{name} = {value}", -1) for name, value in routine.constants]
            if routine.variables:
                lines.append(("VAR", -1))
                lines += [(text, -1) for text in self._variable_lines(routine.variables, indent)]
            lines.append(("BEGIN", -1))
            lines += [(f"{indent * (1 + line.depth)}{line.text}", line.origin) for line in routine.body]
            lines.append(("END", routine.end_origin))

        lines += [("", -1), ("BEGIN", -1)]
        lines += [(f"{indent}{line.text}", line.origin) for line in self._global_inits]
        if self._main is not None:
            lines += [(f"{indent * (1 + line.depth)}{line.text}", line.origin) for line in self._main.body]
        lines.append(("END.", self._main.end_origin if self._main else -1))
        return lines

    def _variable_lines(self, variables: list[_Variable], indent: str) -> list[str]:
        """Group scalars by type on one line; one line per array."""
        grouped: dict[str, list[_Variable]] = {}
        for variable in variables:
            grouped.setdefault(variable.type, []).append(variable)

        lines = []
        for var_type, group in grouped.items():
            scalars = [v.name for v in group if not v.dimensions]
            if scalars:
                lines.append(f"{indent}{', '.join(scalars)} : {var_type}")
            for array in (v for v in group if v.dimensions):
                lines.append(f"{indent}{array.name} : {self._type_text(array)}")
        return lines


# =============================================================================
# Expression Rewriting
# =============================================================================

def _rename_word(match: re.Match) -> str:
    word = match.group(0)
    if word in C_BOOLEAN_WORDS:
        return C_BOOLEAN_WORDS[word]
    return algo_name(word)


def _rewrite_code(code: str) -> str:
    """Rewrite one literal-free run of C expression text."""
    code = CAST.sub("", code)
    code = FLOAT_SUFFIX.sub(r"\1", code)
    code = TRAILING_DOT.sub(r"\1.0", code)
    code = WORD.sub(_rename_word, code)
    code = code.replace("==", " = ").replace("!=", " <> ")
    code = code.replace("&&", " AND ").replace("||", " OR ")
    code = code.replace("!", " NOT ")
    code = code.replace("%", " MOD ")
    code = re.sub(r"\s+", " ", code)
    return re.sub(r"\(\s+", "(", re.sub(r"\s+\)", ")", code))


def _rewrite_pow(expr: str) -> str:
    """pow(a, b) -> (a ^ b), recursively, outside literals."""
    result = []
    i = 0
    while i < len(expr):
        char = expr[i]
        if char in "\"'":
            end = _literal_end(expr, i)
            result.append(expr[i:end])
            i = end
            continue
        match = POW_CALL.match(expr, i)
        if match and (i == 0 or not (expr[i - 1].isalnum() or expr[i - 1] == "_")):
            close = _matching_paren(expr, match.end() - 1)
            args = split_top_level(expr[match.end():close]) if close != -1 else []
            if len(args) == 2:
                left = _rewrite_pow(args[0].strip())
                right = _rewrite_pow(args[1].strip())
                result.append(f"({left} ^ {right})")
                i = close + 1
                continue
        result.append(char)
        i += 1
    return "".join(result)


def translate_c_to_algo(
    c_code: str,
    workspace_files: Optional[Mapping[str, str]] = None,
    config: Optional[UsdbConfig] = None,
) -> TranslationResult:
    """
    Translate C source to Algo.

    Args:
        c_code: The top-level C file
        workspace_files: File name -> contents used to expand local includes
        config: Program name and indentation of the output

    Returns:
        TranslationResult with the Algo text and a line-level source map
    """
    return CToAlgoTranslator(config).translate(c_code, workspace_files)
