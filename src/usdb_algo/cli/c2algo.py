"""
c2algo - C to Algo Translator Command-Line Interface
====================================================

Translates a C file written in the teaching subset back into USDB Algo.
Local `#include "file"` directives are inlined from the input file's
directory and from any -I directory.

Usage Examples
--------------
Basic translation:
    $ c2algo sort.c

With output file and include path:
    $ c2algo -I lib/ sort.c -o sort.algo

Also write the line map (Algo line -> C line, JSON):
    $ c2algo sort.c --source-map sort.map.json
"""

import json
import logging
import sys
from pathlib import Path
from typing import Iterable, Optional

import click

from usdb_algo import __version__
from usdb_algo.c_to_algo import CToAlgoTranslator
from usdb_algo.config import is_valid_program_name
from usdb_algo.cli.errors import ExitCode, handle_cli_exception, report_diagnostics, setup_logging

logger = logging.getLogger(__name__)


C_SOURCE_SUFFIXES = (".c", ".h")


def load_workspace_files(input_file: Path, include_dirs: Iterable[Path] = ()) -> dict[str, str]:
    """
    Read the C sources an include directive may name.

    Files in the input's own directory are keyed by bare file name; files
    under an include directory are keyed by their path relative to it,
    so both "util.h" and "sub/util.h" resolve. The input file itself is
    left out. Earlier directories win on key clashes.
    """
    files: dict[str, str] = {}
    roots = [input_file.parent, *include_dirs]
    for root in roots:
        for path in sorted(root.rglob("*")):
            if not path.is_file() or path.suffix.lower() not in C_SOURCE_SUFFIXES:
                continue
            if path.resolve() == input_file.resolve():
                continue
            key = path.relative_to(root).as_posix()
            if key in files:
                continue
            try:
                files[key] = path.read_text(encoding="utf-8")
            except (OSError, UnicodeDecodeError) as e:
                logger.warning("Skipping unreadable workspace file %s: %s", path, e)
    logger.debug("Loaded %d workspace files", len(files))
    return files


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
    help="Output Algo file, '-' for stdout (default: input.algo)",
)
@click.option(
    "-I", "--include",
    multiple=True,
    type=click.Path(exists=True, file_okay=False, path_type=Path),
    help="Add include search path (can be repeated)",
)
@click.option(
    "-n", "--name",
    default=None,
    help="ALGORITHM name of the translated program",
)
@click.option(
    "--source-map",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Write the Algo line -> C line map as JSON",
)
@click.option(
    "-v", "--verbose",
    is_flag=True,
    help="Verbose output",
)
@click.version_option(version=__version__, prog_name="c2algo")
def main(
    input_file: Path,
    output: Optional[Path],
    include: tuple[Path, ...],
    name: Optional[str],
    source_map: Optional[Path],
    verbose: bool,
) -> None:
    """
    Translate C source code into USDB Algo.

    INPUT_FILE is the C source file (.c) to translate.

    Unsupported constructs are kept as // comments and reported as
    warnings; they never stop the translation.

    \b
    Examples:
        c2algo sort.c                    # Outputs sort.algo
        c2algo sort.c -o -               # Print Algo to stdout
        c2algo -I lib/ sort.c            # Add include path
        c2algo sort.c -n Sorting         # Name the algorithm
    """
    config = setup_logging(verbose)

    if output is None:
        output = input_file.with_suffix(".algo")

    if name is not None:
        if not is_valid_program_name(name):
            handle_cli_exception(click.BadParameter(f"'{name}' is not a valid algorithm name"))
        config.program_name = name

    try:
        if verbose:
            click.echo(f"Translating {input_file}...", err=True)

        source = input_file.read_text(encoding="utf-8")
        workspace_files = load_workspace_files(input_file, include)

        result = CToAlgoTranslator(config).translate(source, workspace_files)

        for warning in result.warnings:
            click.echo(f"warning: {warning}", err=True)

        if not result.success:
            report_diagnostics(f"error: {error}" for error in result.errors)
            sys.exit(ExitCode.BUILD_ERROR)

        if str(output) == "-":
            click.echo(result.algo_code, nl=False)
        else:
            output.write_text(result.algo_code, encoding="utf-8")
            click.echo(f"Translated {input_file} -> {output}")

        if source_map is not None:
            source_map.write_text(json.dumps(result.source_map), encoding="utf-8")
            if verbose:
                click.echo(f"Wrote source map to {source_map}", err=True)

    except Exception as e:
        logger.debug("c2algo failed on %s", input_file, exc_info=True)
        handle_cli_exception(e, verbose, "Translation")


if __name__ == "__main__":
    main()
