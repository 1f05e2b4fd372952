"""
USDB Algo Command-Line Interface
================================

This package provides command-line tools for the USDB Algo toolchain:

- **algoc**: Algo to C99 compiler
- **c2algo**: C to Algo translator
- **algoflow**: Flowchart generator (JSON output)

Each tool is implemented as a Click-based CLI application with
comprehensive help and error reporting.
"""

__all__ = ["algoc", "c2algo", "algoflow"]
