"""
USDB Algo Lexer (Tokenizer)
===========================

This module implements the lexer for the USDB Algorithmic Language.
It converts source text into a list of tokens for the parser.

Token Categories
----------------
- Keywords: ALGORITHM, BEGIN, END, IF, WHILE, FOR, ... (case-insensitive)
- Identifiers: letter followed by letters, digits or '_'
- Numbers: integers (42) and reals (3.14; a trailing dot is not consumed)
- Strings: "double quoted"
- Characters: 'c' (exactly one logical character)
- Operators: <- <= >= <> != < > = + - * / ^ (↑ is an alias for ^)
- Delimiters: ; , : . ( ) [ ]

Comments
--------
- Single-line: // comment
- Block: { comment } and /* comment */

Escape Sequences
----------------
\\n (newline), \\t (tab), \\r (return), \\\\ (backslash),
\\" (double quote), \\' (quote). Any other escaped character stands for
itself.

Error Policy
------------
The lexer never stops early. An invalid character is recorded as a
LexerError and skipped, so one pass reports every lexical problem.
The token list always ends with an EOF token.

Example Usage
-------------
>>> from usdb_algo.lexer import tokenize
>>> result = tokenize("x <- 42")
>>> for token in result.tokens:
...     print(token)
Token(IDENTIFIER, 'x', 1:1)
Token(ASSIGN, '<-', 1:3)
Token(INTEGER_LITERAL, '42', 1:6)
Token(EOF, '', 1:8)
"""

from dataclasses import dataclass, field
from enum import Enum, auto
from typing import Optional
import logging
import string

from usdb_algo.errors import LexerError, SourceLocation

logger = logging.getLogger(__name__)


# =============================================================================
# Token Type Enumeration
# =============================================================================

class TokenType(Enum):
    """
    Token types for the USDB Algo language.

    Keywords are distinguished from identifiers to simplify parsing.
    """

    # === Structural Tokens ===
    EOF = auto()

    # === Identifiers and Literals ===
    IDENTIFIER = auto()
    INTEGER_LITERAL = auto()
    REAL_LITERAL = auto()
    STRING_LITERAL = auto()
    CHAR_LITERAL = auto()

    # === Keywords - Program Structure ===
    ALGORITHM = auto()
    BEGIN = auto()
    END = auto()
    CONST = auto()
    VAR = auto()
    TYPE = auto()
    FUNCTION = auto()
    PROCEDURE = auto()
    RETURN = auto()

    # === Keywords - Types ===
    INTEGER = auto()
    REAL = auto()
    BOOLEAN = auto()
    CHAR = auto()
    STRING = auto()
    ARRAY = auto()
    OF = auto()
    STRUCTURE = auto()

    # === Keywords - Control Flow ===
    IF = auto()
    THEN = auto()
    ELSE = auto()
    SWITCH = auto()
    CASE = auto()
    DEFAULT = auto()
    FOR = auto()
    TO = auto()
    STEP = auto()
    DO = auto()
    WHILE = auto()

    # === Keywords - Operators and I/O ===
    OR = auto()
    AND = auto()
    NOT = auto()
    DIV = auto()
    MOD = auto()
    SCAN = auto()
    PRINT = auto()
    TRUE = auto()
    FALSE = auto()

    # === Operators ===
    ASSIGN = auto()         # <-
    PLUS = auto()           # +
    MINUS = auto()          # -
    MULTIPLY = auto()       # *
    DIVIDE = auto()         # /
    POWER = auto()          # ^ or ↑
    EQUAL = auto()          # =
    NOT_EQUAL = auto()      # <> or !=
    LESS = auto()           # <
    GREATER = auto()        # >
    LESS_EQUAL = auto()     # <=
    GREATER_EQUAL = auto()  # >=

    # === Delimiters ===
    SEMICOLON = auto()      # ;
    COMMA = auto()          # ,
    COLON = auto()          # :
    DOT = auto()            # .
    LPAREN = auto()         # (
    RPAREN = auto()         # )
    LBRACKET = auto()       # [
    RBRACKET = auto()       # ]


# =============================================================================
# Keyword and Operator Tables
# =============================================================================

# Lowercased keyword spelling -> token type
KEYWORDS: dict[str, TokenType] = {
    "algorithm": TokenType.ALGORITHM,
    "begin": TokenType.BEGIN,
    "end": TokenType.END,
    "const": TokenType.CONST,
    "var": TokenType.VAR,
    "type": TokenType.TYPE,
    "integer": TokenType.INTEGER,
    "real": TokenType.REAL,
    "boolean": TokenType.BOOLEAN,
    "char": TokenType.CHAR,
    "string": TokenType.STRING,
    "array": TokenType.ARRAY,
    "of": TokenType.OF,
    "structure": TokenType.STRUCTURE,
    "if": TokenType.IF,
    "then": TokenType.THEN,
    "else": TokenType.ELSE,
    "switch": TokenType.SWITCH,
    "case": TokenType.CASE,
    "default": TokenType.DEFAULT,
    "for": TokenType.FOR,
    "to": TokenType.TO,
    "step": TokenType.STEP,
    "do": TokenType.DO,
    "while": TokenType.WHILE,
    "function": TokenType.FUNCTION,
    "procedure": TokenType.PROCEDURE,
    "return": TokenType.RETURN,
    "or": TokenType.OR,
    "and": TokenType.AND,
    "not": TokenType.NOT,
    "div": TokenType.DIV,
    "mod": TokenType.MOD,
    "scan": TokenType.SCAN,
    "print": TokenType.PRINT,
    "true": TokenType.TRUE,
    "false": TokenType.FALSE,
}

# Single-character operators and delimiters that never start a longer token
SINGLE_CHAR_TOKENS: dict[str, TokenType] = {
    "+": TokenType.PLUS,
    "-": TokenType.MINUS,
    "*": TokenType.MULTIPLY,
    "/": TokenType.DIVIDE,
    "^": TokenType.POWER,
    "↑": TokenType.POWER,
    "=": TokenType.EQUAL,
    ";": TokenType.SEMICOLON,
    ",": TokenType.COMMA,
    ":": TokenType.COLON,
    ".": TokenType.DOT,
    "(": TokenType.LPAREN,
    ")": TokenType.RPAREN,
    "[": TokenType.LBRACKET,
    "]": TokenType.RBRACKET,
}

ESCAPE_SEQUENCES: dict[str, str] = {
    "n": "\n",
    "t": "\t",
    "r": "\r",
    "\\": "\\",
    '"': '"',
    "'": "'",
}

DIGITS = frozenset(string.digits)
LETTERS = frozenset(string.ascii_letters)


def _is_digit(char: str) -> bool:
    return char in DIGITS


def _is_ident_char(char: str) -> bool:
    return char in LETTERS or char in DIGITS or char == "_"


# =============================================================================
# Token Data Class
# =============================================================================

@dataclass(frozen=True)
class Token:
    """
    A single token from Algo source code.

    Attributes:
        type: The TokenType classification
        value: The token text (unescaped contents for string/char literals,
               original spelling for keywords, "" for EOF)
        line: Line number (1-indexed)
        column: Column number (1-indexed)
        offset: Character offset of the first character (0-indexed)
        length: Number of source characters the token spans
        filename: Name of the source (for error reporting)
    """
    type: TokenType
    value: str
    line: int
    column: int
    offset: int = 0
    length: int = 0
    filename: str = "<input>"

    def __repr__(self) -> str:
        return f"Token({self.type.name}, {self.value!r}, {self.line}:{self.column})"

    @property
    def location(self) -> SourceLocation:
        """Location of the first character of the token."""
        return SourceLocation(self.line, self.column, self.offset, self.filename)

    @property
    def end_location(self) -> SourceLocation:
        """Location just past the last character (tokens never span lines)."""
        return SourceLocation(
            self.line, self.column + self.length, self.offset + self.length, self.filename
        )

    def describe(self) -> str:
        """Text used in 'got ...' error messages."""
        return self.value if self.value else self.type.name


@dataclass
class TokenizeResult:
    """
    Output of a tokenize() call.

    Attributes:
        tokens: All tokens, ending with EOF
        errors: Every LexerError found, in source order
    """
    tokens: list[Token] = field(default_factory=list)
    errors: list[LexerError] = field(default_factory=list)


# =============================================================================
# Lexer Implementation
# =============================================================================

class AlgoLexer:
    """
    Tokenizes USDB Algo source code.

    Usage:
        lexer = AlgoLexer(source_text, filename)
        tokens = lexer.tokenize()
        if lexer.errors:
            ...

    Attributes:
        source: The source code being tokenized
        filename: Name of the source file (for error reporting)
        errors: LexerErrors collected during the last tokenize() call
    """

    def __init__(self, source: str, filename: str = "<input>"):
        self.source = source
        self.filename = filename
        self.errors: list[LexerError] = []

        self._pos = 0
        self._line = 1
        self._column = 1
        self._line_start_pos = 0

        # Start of the token currently being scanned
        self._start_pos = 0
        self._start_line = 1
        self._start_column = 1

    def tokenize(self) -> list[Token]:
        """
        Scan the whole source.

        Returns:
            The token list, always terminated by an EOF token
        """
        tokens: list[Token] = []
        self.errors = []

        while True:
            self._skip_whitespace_and_comments()
            if self._at_end():
                break

            self._mark_start()
            try:
                token = self._scan_token()
            except LexerError as e:
                self.errors.append(e)
                # Skip the offending character and keep going
                if self._pos == self._start_pos:
                    self._advance()
                continue
            tokens.append(token)

        self._mark_start()
        tokens.append(self._make_token(TokenType.EOF, ""))
        logger.debug(
            "Tokenized %s: %d tokens, %d errors",
            self.filename, len(tokens), len(self.errors),
        )
        return tokens

    # =========================================================================
    # Character Access Methods
    # =========================================================================

    def _at_end(self) -> bool:
        return self._pos >= len(self.source)

    def _peek(self, offset: int = 0) -> str:
        """Look ahead without consuming; empty string past the end."""
        pos = self._pos + offset
        if pos >= len(self.source):
            return ""
        return self.source[pos]

    def _advance(self) -> str:
        """Consume one character, keeping line/column tracking current."""
        if self._at_end():
            return ""

        char = self.source[self._pos]
        self._pos += 1

        if char == "\n":
            self._line += 1
            self._column = 1
            self._line_start_pos = self._pos
        else:
            self._column += 1

        return char

    def _match(self, expected: str) -> bool:
        """Consume the next character if it equals expected."""
        if self._peek() == expected:
            self._advance()
            return True
        return False

    # =========================================================================
    # Token Creation
    # =========================================================================

    def _mark_start(self) -> None:
        self._start_pos = self._pos
        self._start_line = self._line
        self._start_column = self._column

    def _make_token(self, token_type: TokenType, value: str) -> Token:
        """Create a token spanning from the marked start to the current position."""
        return Token(
            type=token_type,
            value=value,
            line=self._start_line,
            column=self._start_column,
            offset=self._start_pos,
            length=self._pos - self._start_pos,
            filename=self.filename,
        )

    def _error(self, message: str, hint: Optional[str] = None) -> LexerError:
        """Create a LexerError located at the start of the current token."""
        location = SourceLocation(
            self._start_line, self._start_column, self._start_pos, self.filename
        )

        line_start = self.source.rfind("\n", 0, self._start_pos) + 1
        line_end = self.source.find("\n", self._start_pos)
        if line_end == -1:
            line_end = len(self.source)
        source_line = self.source[line_start:line_end]

        return LexerError(message, location, hint=hint, source_line=source_line)

    # =========================================================================
    # Whitespace and Comment Handling
    # =========================================================================

    def _skip_whitespace_and_comments(self) -> None:
        while not self._at_end():
            char = self._peek()

            if char in " \t\n\r":
                self._advance()
                continue

            if char == "/" and self._peek(1) == "/":
                while not self._at_end() and self._peek() != "\n":
                    self._advance()
                continue

            if char == "/" and self._peek(1) == "*":
                self._advance()
                self._advance()
                while not self._at_end() and not (self._peek() == "*" and self._peek(1) == "/"):
                    self._advance()
                self._advance()
                self._advance()
                continue

            if char == "{":
                while not self._at_end() and self._peek() != "}":
                    self._advance()
                self._advance()
                continue

            break

    # =========================================================================
    # Token Scanning
    # =========================================================================

    def _scan_token(self) -> Token:
        """Scan one token starting at the current position."""
        char = self._advance()

        if char == "<":
            if self._match("-"):
                return self._make_token(TokenType.ASSIGN, "<-")
            if self._match("="):
                return self._make_token(TokenType.LESS_EQUAL, "<=")
            if self._match(">"):
                return self._make_token(TokenType.NOT_EQUAL, "<>")
            return self._make_token(TokenType.LESS, "<")

        if char == ">":
            if self._match("="):
                return self._make_token(TokenType.GREATER_EQUAL, ">=")
            return self._make_token(TokenType.GREATER, ">")

        if char == "!":
            if self._match("="):
                return self._make_token(TokenType.NOT_EQUAL, "!=")
            raise self._error("Unexpected character '!'", hint="use NOT for negation or <> for inequality")

        if char in SINGLE_CHAR_TOKENS:
            return self._make_token(SINGLE_CHAR_TOKENS[char], char)

        if char == '"':
            return self._scan_string()

        if char == "'":
            return self._scan_char()

        if char in DIGITS:
            return self._scan_number()

        if char in LETTERS:
            return self._scan_identifier()

        raise self._error(f"Unexpected character '{char}'")

    def _scan_escape(self) -> str:
        """Consume the character after a backslash and return its meaning."""
        char = self._advance()
        return ESCAPE_SEQUENCES.get(char, char)

    def _scan_string(self) -> Token:
        """Scan a string literal; the opening quote is already consumed."""
        chars = []

        while not self._at_end() and self._peek() != '"':
            if self._peek() == "\n":
                raise self._error("Unterminated string literal", hint="add a closing '\"'")
            if self._peek() == "\\":
                self._advance()
                chars.append(self._scan_escape())
            else:
                chars.append(self._advance())

        if self._at_end():
            raise self._error("Unterminated string literal", hint="add a closing '\"'")

        self._advance()  # closing quote
        return self._make_token(TokenType.STRING_LITERAL, "".join(chars))

    def _scan_char(self) -> Token:
        """Scan a character literal; the opening quote is already consumed."""
        if self._peek() == "'":
            self._advance()
            raise self._error("Empty character literal")

        if self._peek() == "\\":
            self._advance()
            value = self._scan_escape()
        else:
            value = self._advance()

        if not self._match("'"):
            raise self._error("Character literal too long or missing closing quote")

        return self._make_token(TokenType.CHAR_LITERAL, value)

    def _scan_number(self) -> Token:
        """Scan an integer, or a real when a dot is followed by a digit."""
        while _is_digit(self._peek()):
            self._advance()

        if self._peek() == "." and _is_digit(self._peek(1)):
            self._advance()
            while _is_digit(self._peek()):
                self._advance()
            return self._make_token(TokenType.REAL_LITERAL, self.source[self._start_pos:self._pos])

        return self._make_token(TokenType.INTEGER_LITERAL, self.source[self._start_pos:self._pos])

    def _scan_identifier(self) -> Token:
        """Scan an identifier or keyword, keeping the original spelling."""
        while _is_ident_char(self._peek()):
            self._advance()

        text = self.source[self._start_pos:self._pos]
        token_type = KEYWORDS.get(text.lower(), TokenType.IDENTIFIER)
        return self._make_token(token_type, text)


# =============================================================================
# Convenience Functions
# =============================================================================

def tokenize(source: str, filename: str = "<input>") -> TokenizeResult:
    """
    Tokenize Algo source code.

    Args:
        source: The Algo source text
        filename: Source name for error messages

    Returns:
        TokenizeResult with the token list and every LexerError found
    """
    lexer = AlgoLexer(source, filename)
    tokens = lexer.tokenize()
    return TokenizeResult(tokens=tokens, errors=list(lexer.errors))
