"""
algoflow - Flowchart Generator Command-Line Interface
=====================================================

Builds the flowcharts of an Algo or C program and writes them as JSON:
one set for the main program and one per function or procedure, with
node positions, edges and the source span of every node.

Usage Examples
--------------
Algo input:
    $ algoflow bubble.algo

C input (translated first), pretty-printed to stdout:
    $ algoflow bubble.c -o - --indent 2

Forcing the language:
    $ algoflow --lang c program.txt
"""

import json
import logging
import sys
from pathlib import Path
from typing import Optional

import click

from usdb_algo import __version__
from usdb_algo.cli.c2algo import load_workspace_files
from usdb_algo.cli.errors import ExitCode, handle_cli_exception, setup_logging
from usdb_algo.compiler import is_algo_file
from usdb_algo.flowchart import generate_all_flowcharts

logger = logging.getLogger(__name__)


def infer_language(input_file: Path) -> str:
    """'algo' for .algo files, 'c' for .c and .h files, else 'algo'."""
    if is_algo_file(input_file.name):
        return "algo"
    if input_file.suffix.lower() in (".c", ".h"):
        return "c"
    return "algo"


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
    help="Output JSON file, '-' for stdout (default: input.flow.json)",
)
@click.option(
    "-l", "--lang",
    type=click.Choice(["algo", "c"], case_sensitive=False),
    default=None,
    help="Source language (default: from the file extension)",
)
@click.option(
    "-I", "--include",
    multiple=True,
    type=click.Path(exists=True, file_okay=False, path_type=Path),
    help="Add include search path for C input (can be repeated)",
)
@click.option(
    "--indent",
    type=click.IntRange(min=0),
    default=None,
    help="Pretty-print the JSON with this indentation",
)
@click.option(
    "-v", "--verbose",
    is_flag=True,
    help="Verbose output",
)
@click.version_option(version=__version__, prog_name="algoflow")
def main(
    input_file: Path,
    output: Optional[Path],
    lang: Optional[str],
    include: tuple[Path, ...],
    indent: Optional[int],
    verbose: bool,
) -> None:
    """
    Generate flowcharts for an Algo or C program.

    INPUT_FILE is the program to chart (.algo or .c).

    \b
    Examples:
        algoflow bubble.algo             # Outputs bubble.flow.json
        algoflow bubble.c -o -           # Print JSON to stdout
        algoflow --lang c prog.txt       # Force C input
    """
    config = setup_logging(verbose)
    language = (lang or infer_language(input_file)).lower()

    if output is None:
        output = input_file.with_suffix(".flow.json")

    try:
        if verbose:
            click.echo(f"Charting {input_file} as {language}...", err=True)

        source = input_file.read_text(encoding="utf-8")
        workspace_files = load_workspace_files(input_file, include) if language == "c" else None

        result = generate_all_flowcharts(source, language, config, workspace_files)

        if not result.success:
            click.echo(f"Error: {result.error}", err=True)
            sys.exit(ExitCode.BUILD_ERROR)

        text = json.dumps(result.to_dict(), indent=indent, ensure_ascii=False)

        if str(output) == "-":
            click.echo(text)
            return

        output.write_text(text + "\n", encoding="utf-8")

        if verbose:
            for flowchart in result.all_sets():
                click.echo(
                    f"{flowchart.name}: {len(flowchart.nodes)} nodes, {len(flowchart.edges)} edges",
                    err=True,
                )

        click.echo(f"Charted {input_file} -> {output}")

    except Exception as e:
        logger.debug("algoflow failed on %s", input_file, exc_info=True)
        handle_cli_exception(e, verbose, "Flowchart")


if __name__ == "__main__":
    main()
