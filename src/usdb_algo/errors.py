"""
USDB Algo Error Hierarchy
=========================

This module defines the exception hierarchy and source-position types
shared by every stage of the USDB Algo toolchain.

Exception Hierarchy
-------------------
UsdbError (base for all toolchain errors)
└── CompilerError - diagnostic with location and severity
    ├── LexerError - invalid characters, unterminated literals
    ├── ParserError - unexpected or missing tokens
    ├── SemanticError - scope and type errors (error or warning)
    └── CodeGenError - generation-time failures

Diagnostics as Data
-------------------
The public entry points never let these exceptions escape. The lexer and
the semantic analyzer collect them; the parser raises one internally and
the parse() boundary turns it into a returned list. Callers render them
with display(), which produces the one-line form:

    [ERROR] Line 3, Column 2: Undefined variable 'y'

str(error) gives the longer report with the offending source line and a
caret under the column:

    [ERROR] Line 3, Column 2: Undefined variable 'y'
         y <- 5
         ^
    hint: declare 'y' in a VAR block
"""

from dataclasses import dataclass
from typing import List, Optional


# =============================================================================
# Base Exception
# =============================================================================

class UsdbError(Exception):
    """
    Base exception for all USDB Algo toolchain errors.

    Catching UsdbError catches every error raised by this package:

        try:
            result = AlgoCompiler().compile_file("main.algo")
        except UsdbError as e:
            print(f"Error: {e}")
    """
    pass


# =============================================================================
# Source Positions
# =============================================================================

@dataclass(frozen=True)
class SourceLocation:
    """
    A position in source text.

    Attributes:
        line: Line number (1-indexed)
        column: Column number (1-indexed)
        offset: Character offset from the start of the source (0-indexed)
        filename: Name of the source (display only, never compared)
    """
    line: int
    column: int
    offset: int = 0
    filename: str = "<input>"

    def __str__(self) -> str:
        """Format as 'filename:line:column'."""
        return f"{self.filename}:{self.line}:{self.column}"


@dataclass(frozen=True)
class SourceSpan:
    """
    A start/end pair of locations covering an AST or flowchart node.

    The end location points just past the last character of the node.
    """
    start: SourceLocation
    end: SourceLocation

    def contains_line(self, line: int) -> bool:
        """Return True if the given 1-based line falls inside this span."""
        return self.start.line <= line <= self.end.line


DEFAULT_LOCATION = SourceLocation(1, 1, 0)


# =============================================================================
# Compiler Diagnostics
# =============================================================================

class CompilerError(UsdbError):
    """
    A located diagnostic produced by one of the compiler phases.

    Attributes:
        message: The error description
        location: Where in the source the problem was found
        severity: "error" or "warning"
        hint: Optional suggestion for fixing the problem
        source_line: Optional text of the offending line
    """

    def __init__(
        self,
        message: str,
        location: Optional[SourceLocation] = None,
        severity: str = "error",
        hint: Optional[str] = None,
        source_line: Optional[str] = None,
    ):
        self.message = message
        self.location = location or DEFAULT_LOCATION
        self.severity = severity
        self.hint = hint
        self.source_line = source_line
        super().__init__(self._format_message())

    @property
    def is_warning(self) -> bool:
        """Return True for non-blocking diagnostics."""
        return self.severity == "warning"

    def display(self) -> str:
        """Return the one-line form '[SEVERITY] Line L, Column C: message'."""
        return (
            f"[{self.severity.upper()}] Line {self.location.line}, "
            f"Column {self.location.column}: {self.message}"
        )

    def _format_message(self) -> str:
        """
        Format the display line with source context and hint.

        Example:
            [ERROR] Line 2, Column 5: Expected 'THEN', got 'PRINT'
                IF (x > 0) PRINT(x)
                    ^
            hint: IF conditions are followed by THEN
        """
        parts = [self.display()]

        if self.source_line is not None and self.location.column > 0:
            parts.append(f"    {self.source_line}")
            padding = " " * (4 + self.location.column - 1)
            parts.append(f"{padding}^")

        if self.hint:
            parts.append(f"hint: {self.hint}")

        return "\n".join(parts)

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.display()!r})"


class LexerError(CompilerError):
    """
    Invalid lexical element in Algo source.

    Examples:
        - Unterminated string literal
        - Empty character literal
        - Unexpected character '!'
    """
    pass


class ParserError(CompilerError):
    """
    Syntax error found by the recursive-descent parser.

    The parser stops at the first one; lexer errors are also re-reported
    as ParserErrors when they abort a parse.
    """
    pass


class SemanticError(CompilerError):
    """
    Scope or type error found during semantic analysis.

    Carries a severity: "error" blocks code generation, "warning" does not.

    Examples:
        - Undefined identifier 'x'
        - Cannot assign to constant 'N'
        - Function 'f' has no RETURN statement (warning)
    """
    pass


class CodeGenError(CompilerError):
    """
    Error during C code generation.

    The documented lowering rules never produce one; it is reserved for
    AST nodes the generator does not know how to emit.
    """
    pass


# =============================================================================
# Error Collection
# =============================================================================

class DiagnosticCollector:
    """
    Collects errors and warnings for a phase that reports everything it finds.

    The semantic analyzer uses this instead of raising, so a single run
    reports every problem. The lexer keeps its own error list.

    Example:
        collector = DiagnosticCollector()
        collector.error("Undefined identifier 'x'", location, SemanticError)
        collector.warning("Function 'f' has no RETURN statement", location)
        if collector.has_errors():
            print(collector.report())
    """

    def __init__(self):
        self.errors: List[CompilerError] = []
        self.warnings: List[CompilerError] = []

    def add(self, diagnostic: CompilerError) -> None:
        """Add a diagnostic, sorting it by severity."""
        if diagnostic.is_warning:
            self.warnings.append(diagnostic)
        else:
            self.errors.append(diagnostic)

    def error(
        self,
        message: str,
        location: Optional[SourceLocation] = None,
        error_class: type = SemanticError,
        hint: Optional[str] = None,
    ) -> CompilerError:
        """Record an error-severity diagnostic of the given class."""
        diagnostic = error_class(message, location, "error", hint=hint)
        self.errors.append(diagnostic)
        return diagnostic

    def warning(
        self,
        message: str,
        location: Optional[SourceLocation] = None,
        error_class: type = SemanticError,
    ) -> CompilerError:
        """Record a warning-severity diagnostic of the given class."""
        diagnostic = error_class(message, location, "warning")
        self.warnings.append(diagnostic)
        return diagnostic

    def has_errors(self) -> bool:
        """Return True if any error-severity diagnostic was collected."""
        return len(self.errors) > 0

    def all(self) -> List[CompilerError]:
        """Return errors and warnings in source order."""
        return sorted(
            self.errors + self.warnings,
            key=lambda d: (d.location.line, d.location.column),
        )

    def report(self) -> str:
        """Format all diagnostics with a summary line."""
        lines = [d.display() for d in self.all()]
        error_word = "error" if len(self.errors) == 1 else "errors"
        warning_word = "warning" if len(self.warnings) == 1 else "warnings"
        lines.append(
            f"{len(self.errors)} {error_word}, {len(self.warnings)} {warning_word}"
        )
        return "\n".join(lines)

    def clear(self) -> None:
        """Forget everything collected so far."""
        self.errors.clear()
        self.warnings.clear()
