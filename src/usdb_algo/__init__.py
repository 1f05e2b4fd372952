"""
USDB Algo Toolchain
===================

A small teaching-oriented compiler for USDB Algo, a Pascal/Algol-style
pseudocode language, which transpiles to C99. Two utilities share its
data model:

- A heuristic translator from a constrained C subset back to Algo text,
  with a line-level source map
- A flowchart generator that lowers the control structure of either
  language into node/edge graphs carrying source spans

Pipeline
--------
    Algo Source → Lexer → Parser → AST → Semantic Analyzer → Code Generator → C

Usage
-----
>>> from usdb_algo import compile, translate_c_to_algo, generate_all_flowcharts
>>> result = compile('ALGORITHM Hello BEGIN PRINT("Hello") END.')
>>> print(result.c_code)

Language Summary
----------------
    ALGORITHM Name
    CONST N = 10
    TYPE Point = STRUCTURE BEGIN x, y : REAL END
    VAR i : INTEGER
        t : ARRAY[N] OF INTEGER
    FUNCTION square(v : INTEGER) : INTEGER
    BEGIN
        RETURN(v * v)
    END
    BEGIN
        FOR i <- 1 TO N DO
            t[i - 1] <- square(i)
        PRINT("done")
    END.
"""

# =============================================================================
# Version Information
# =============================================================================

__version__ = "1.0.0"

# =============================================================================
# Public API Imports
# =============================================================================

from usdb_algo.errors import (
    UsdbError,
    CompilerError,
    LexerError,
    ParserError,
    SemanticError,
    CodeGenError,
    SourceLocation,
    SourceSpan,
    DiagnosticCollector,
)
from usdb_algo.config import UsdbConfig, LayoutConfig
from usdb_algo.lexer import AlgoLexer, Token, TokenType, tokenize
from usdb_algo.parser import AlgoParser, ParseResult, parse
from usdb_algo.semantic import SemanticAnalyzer, SymbolTable, AnalysisResult, analyze
from usdb_algo.codegen import CodeGenerator, CodeGenResult, generate
from usdb_algo.includes import IncludeExpander, expand_includes
from usdb_algo.c_to_algo import CToAlgoTranslator, TranslationResult, translate_c_to_algo
from usdb_algo.flowchart import (
    FlowchartBuilder,
    FlowchartNode,
    FlowchartEdge,
    FlowchartSet,
    FlowchartResult,
    NodeKind,
    EdgeKind,
    generate_all_flowcharts,
)
from usdb_algo.compiler import (
    ALGO_EXTENSION,
    AlgoCompiler,
    CompilerOptions,
    CompilationResult,
    compile,
    is_algo_file,
)

__all__ = [
    # Version
    "__version__",
    # Main API
    "compile",
    "translate_c_to_algo",
    "generate_all_flowcharts",
    "AlgoCompiler",
    "CompilerOptions",
    "CompilationResult",
    "ALGO_EXTENSION",
    "is_algo_file",
    # Errors
    "UsdbError",
    "CompilerError",
    "LexerError",
    "ParserError",
    "SemanticError",
    "CodeGenError",
    "SourceLocation",
    "SourceSpan",
    "DiagnosticCollector",
    # Configuration
    "UsdbConfig",
    "LayoutConfig",
    # Phases
    "AlgoLexer",
    "Token",
    "TokenType",
    "tokenize",
    "AlgoParser",
    "ParseResult",
    "parse",
    "SemanticAnalyzer",
    "SymbolTable",
    "AnalysisResult",
    "analyze",
    "CodeGenerator",
    "CodeGenResult",
    "generate",
    # Translator
    "IncludeExpander",
    "expand_includes",
    "CToAlgoTranslator",
    "TranslationResult",
    # Flowcharts
    "FlowchartBuilder",
    "FlowchartNode",
    "FlowchartEdge",
    "FlowchartSet",
    "FlowchartResult",
    "NodeKind",
    "EdgeKind",
]
