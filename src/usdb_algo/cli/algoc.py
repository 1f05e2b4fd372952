"""
algoc - USDB Algo Compiler Command-Line Interface
=================================================

This module implements the command-line interface for the Algo to C
compiler.

Usage Examples
--------------
Basic compilation:
    $ algoc hello.algo

With output file:
    $ algoc hello.algo -o hello.c

To standard output:
    $ algoc hello.algo -o -

Debugging the front end:
    $ algoc --tokens hello.algo
    $ algoc --ast hello.algo

Full pipeline to an executable:
    $ algoc hello.algo && cc -std=c99 hello.c -lm -o hello
"""

import logging
import sys
from pathlib import Path
from typing import Optional

import click

from usdb_algo import __version__
from usdb_algo.ast import ASTPrinter
from usdb_algo.cli.errors import ExitCode, handle_cli_exception, report_diagnostics, setup_logging
from usdb_algo.compiler import AlgoCompiler, CompilerOptions
from usdb_algo.lexer import tokenize
from usdb_algo.parser import parse

logger = logging.getLogger(__name__)


# =============================================================================
# CLI Definition
# =============================================================================

@click.command()
@click.argument(
    "input_file",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
)
@click.option(
    "-o", "--output",
    type=click.Path(dir_okay=False, allow_dash=True, path_type=Path),
    help="Output C file, '-' for stdout (default: input.c)",
)
@click.option(
    "--tokens",
    is_flag=True,
    help="Print the token stream and exit (for debugging)",
)
@click.option(
    "--ast",
    is_flag=True,
    help="Print AST and exit (for debugging)",
)
@click.option(
    "-W", "--no-warnings",
    is_flag=True,
    help="Do not print semantic warnings",
)
@click.option(
    "-v", "--verbose",
    is_flag=True,
    help="Verbose output",
)
@click.version_option(version=__version__, prog_name="algoc")
def main(
    input_file: Path,
    output: Optional[Path],
    tokens: bool,
    ast: bool,
    no_warnings: bool,
    verbose: bool,
) -> None:
    """
    Compile USDB Algo source code to C99.

    INPUT_FILE is the Algo source file (.algo) to compile.

    Errors are printed with their line and column; when any error is
    found no C file is written. Warnings never block compilation.

    \b
    Examples:
        algoc hello.algo             # Outputs hello.c
        algoc hello.algo -o out.c    # Specify output file
        algoc hello.algo -o -        # Print C to stdout
        algoc --ast hello.algo       # Dump the syntax tree
        algoc -v hello.algo          # Verbose output
    """
    config = setup_logging(verbose)

    if output is None:
        output = input_file.with_suffix(".c")

    try:
        if verbose:
            click.echo(f"Compiling {input_file}...", err=True)

        source = input_file.read_text(encoding="utf-8")

        # Token dump mode
        if tokens:
            lexed = tokenize(source, str(input_file))
            for token in lexed.tokens:
                click.echo(f"{token.line}:{token.column}\t{token.type.name}\t{token.value!r}")
            if lexed.errors:
                report_diagnostics(lexed.errors)
                sys.exit(ExitCode.BUILD_ERROR)
            return

        # AST dump mode
        if ast:
            parsed = parse(source, str(input_file))
            if not parsed.success:
                report_diagnostics(parsed.errors)
                sys.exit(ExitCode.BUILD_ERROR)
            click.echo(ASTPrinter().print(parsed.ast))
            return

        compiler = AlgoCompiler(CompilerOptions.from_config(config))
        result = compiler.compile_source(source, str(input_file))

        if not no_warnings:
            report_diagnostics(result.warnings)

        if not result.success:
            count = report_diagnostics(result.errors)
            click.echo(f"{input_file}: {count} error(s), no output written", err=True)
            sys.exit(ExitCode.BUILD_ERROR)

        # Write output
        if str(output) == "-":
            click.echo(result.c_code, nl=False)
            return

        output.write_text(result.c_code, encoding="utf-8")

        if verbose:
            click.echo(f"Wrote {len(result.c_code)} bytes to {output}", err=True)
            click.echo(f"Tokenized: {result.token_count} tokens", err=True)
            if result.ast:
                routines = len(result.ast.functions) + len(result.ast.procedures)
                click.echo(f"Parsed: {routines} routines", err=True)

        click.echo(f"Compiled {input_file} -> {output}")

    except Exception as e:
        logger.debug("algoc failed on %s", input_file, exc_info=True)
        handle_cli_exception(e, verbose)


if __name__ == "__main__":
    main()
