"""
USDB Algo Compiler Main Module
==============================

This module provides the main compiler interface. It runs the complete
pipeline in strict sequence:

    Source → Lex → Parse → Analyze → Generate → C99

Usage
-----
Command line:
    $ algoc hello.algo -o hello.c

Programmatic:
    >>> from usdb_algo import compile
    >>> result = compile('ALGORITHM T BEGIN PRINT("hi") END.')
    >>> print(result.c_code)

Error Policy
------------
Each phase either succeeds or stops the pipeline:

1. **Lexical analysis** collects every bad character or literal
2. **Parsing** stops at the first syntax error
3. **Semantic analysis** collects errors and warnings; only errors block
4. **Code generation** fails only on constructs it cannot express

The result carries the errors of the phase that stopped, never a mix of
phases. Semantic warnings are reported even when compilation succeeds.
Nothing here raises for bad source text; errors are returned as data.
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional, Union
import logging

from usdb_algo.ast import Program
from usdb_algo.codegen import CodeGenerator
from usdb_algo.config import UsdbConfig
from usdb_algo.errors import CompilerError, ParserError
from usdb_algo.lexer import AlgoLexer
from usdb_algo.parser import AlgoParser
from usdb_algo.semantic import SemanticAnalyzer

logger = logging.getLogger(__name__)


ALGO_EXTENSION = ".algo"


def is_algo_file(filename: Union[str, Path]) -> bool:
    """True when filename ends in .algo (any case)."""
    return str(filename).lower().endswith(ALGO_EXTENSION)


@dataclass
class CompilerOptions:
    """
    Compiler configuration options.

    Attributes:
        indent_width: Spaces per indentation level in the generated C
    """
    indent_width: int = 4

    @classmethod
    def from_config(cls, config: UsdbConfig) -> "CompilerOptions":
        return cls(indent_width=config.indent_width)


@dataclass
class CompilationResult:
    """
    Result of a compilation.

    Attributes:
        success: True if C code was generated
        c_code: Generated C99 source (empty on failure)
        errors: Errors of the phase that stopped the pipeline
        warnings: Semantic warnings
        filename: Source name used in diagnostics
        ast: The parsed program, when parsing succeeded
        token_count: Number of tokens lexed (EOF included)
    """
    success: bool = False
    c_code: str = ""
    errors: list[CompilerError] = field(default_factory=list)
    warnings: list[CompilerError] = field(default_factory=list)
    filename: str = "<input>"
    ast: Optional[Program] = None
    token_count: int = 0


class AlgoCompiler:
    """
    USDB Algo to C compiler.

    Example:
        compiler = AlgoCompiler()
        result = compiler.compile_file("hello.algo")
        if result.success:
            print(result.c_code)

    Attributes:
        options: Compiler configuration options
    """

    def __init__(self, options: Optional[CompilerOptions] = None):
        self.options = options or CompilerOptions()

    def compile_source(self, source: str, filename: str = "<input>") -> CompilationResult:
        """
        Compile Algo source code to C.

        Args:
            source: Algo source text
            filename: Source name for error messages

        Returns:
            CompilationResult with the C code or the blocking errors
        """
        result = CompilationResult(filename=filename)

        # Stage 1: Lexical analysis
        lexer = AlgoLexer(source, filename)
        tokens = lexer.tokenize()
        result.token_count = len(tokens)
        if lexer.errors:
            logger.debug("%s: %d lexer errors", filename, len(lexer.errors))
            result.errors = list(lexer.errors)
            return result

        # Stage 2: Parsing
        try:
            program = AlgoParser(tokens, source.splitlines()).parse()
        except ParserError as e:
            logger.debug("%s: %s", filename, e.display())
            result.errors = [e]
            return result
        result.ast = program

        # Stage 3: Semantic analysis
        analysis = SemanticAnalyzer().analyze(program)
        result.warnings = analysis.warnings
        if analysis.blocking:
            logger.debug("%s: %d semantic errors", filename, len(analysis.blocking))
            result.errors = analysis.blocking
            return result

        # Stage 4: Code generation
        generated = CodeGenerator(" " * self.options.indent_width).generate(program)
        if generated.errors:
            result.errors = list(generated.errors)
            return result

        result.c_code = generated.code
        result.success = True
        logger.debug(
            "%s: compiled %d tokens into %d lines of C, %d warnings",
            filename, result.token_count, generated.code.count("\n") + 1, len(result.warnings),
        )
        return result

    def compile_file(self, filepath: Union[str, Path]) -> CompilationResult:
        """
        Compile an Algo source file to C.

        Raises:
            FileNotFoundError: If the source file does not exist
        """
        path = Path(filepath)
        if not path.exists():
            raise FileNotFoundError(f"Source file not found: {filepath}")

        source = path.read_text(encoding="utf-8")
        return self.compile_source(source, str(path))


# =============================================================================
# Convenience Functions
# =============================================================================

def compile(source: str, options: Optional[CompilerOptions] = None) -> CompilationResult:
    """
    Compile Algo source to C.

    Example:
        >>> result = compile("ALGORITHM T VAR x : INTEGER BEGIN x <- 5 PRINT(x) END.")
        >>> "int x;" in result.c_code
        True
    """
    return AlgoCompiler(options).compile_source(source)
