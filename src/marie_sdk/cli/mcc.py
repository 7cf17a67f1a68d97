"""
mcc - MARIE Macro Compiler Command-Line Interface
=================================================

Compiles macro source files into MARIE assembly.

Usage Examples
--------------
Print the program to stdout:
    $ mcc counter.mac

With output file and symbol listing:
    $ mcc counter.mac -o counter.mas -s counter.sym

Reject surplus add/subt operands:
    $ mcc --strict counter.mac

Plain output, no entry jump and no runtime helpers:
    $ mcc --no-entry --no-runtime counter.mac

Defaults can also come from MARIE_STRICT_OPERANDS, MARIE_ENTRY_LABEL and
MARIE_LINK_RUNTIME; command-line flags take precedence.

Copyright (c) 2025-2026 Hugo José Pinto & Contributors
"""

import logging
from pathlib import Path
from typing import Optional

import click

from marie_sdk import __version__
from marie_sdk.cli.errors import handle_cli_exception
from marie_sdk.compiler import CompilerOptions, MacroCompiler, format_symbol_table
from marie_sdk.compiler.source import is_label_name


LOG_LEVELS = ["DEBUG", "INFO", "WARNING", "ERROR"]


def setup_logging(verbose: bool, log_level: Optional[str]) -> None:
    """Send library log records to stderr when asked to."""
    if log_level is None and not verbose:
        return
    level = getattr(logging, log_level.upper()) if log_level else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(levelname)s: %(message)s" if verbose else "%(message)s",
    )


def build_options(
    strict: Optional[bool],
    entry: Optional[str],
    no_entry: bool,
    no_runtime: bool,
) -> CompilerOptions:
    """Start from the environment, then apply command-line overrides."""
    options = CompilerOptions.from_env()
    if strict is not None:
        options.strict_operands = strict
    if entry is not None:
        if not is_label_name(entry):
            raise click.BadParameter(f"'{entry}' is not a valid label", param_hint="--entry")
        options.entry_label = entry
    if no_entry:
        options.entry_label = None
    if no_runtime:
        options.link_runtime = False
    return options


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
    type=click.Path(dir_okay=False, path_type=Path),
    help="Output assembly file (default: stdout)",
)
@click.option(
    "-s", "--symbols",
    type=click.Path(dir_okay=False, path_type=Path),
    help="Write the variable table listing to this file",
)
@click.option(
    "--strict/--lenient",
    default=None,
    help="Reject (or ignore) add/subt operands beyond the third",
)
@click.option(
    "--entry",
    metavar="NAME",
    default=None,
    help="Entry label jumped to from address 0 (default: main)",
)
@click.option(
    "--no-entry",
    is_flag=True,
    help="Do not emit the entry jump (address 0 holds a hex 0 word instead)",
)
@click.option(
    "--no-runtime",
    is_flag=True,
    help="Do not append the indirect subtract helpers",
)
@click.option(
    "-v", "--verbose",
    is_flag=True,
    help="Verbose output",
)
@click.option(
    "--log-level",
    type=click.Choice(LOG_LEVELS, case_sensitive=False),
    default=None,
    help="Log level for compiler diagnostics on stderr",
)
@click.version_option(version=__version__, prog_name="mcc")
def main(
    input_file: Path,
    output: Optional[Path],
    symbols: Optional[Path],
    strict: Optional[bool],
    entry: Optional[str],
    no_entry: bool,
    no_runtime: bool,
    verbose: bool,
    log_level: Optional[str],
) -> None:
    """
    Compile a macro source file to MARIE assembly.

    INPUT_FILE is the macro source file to compile.

    \b
    Examples:
        mcc counter.mac                  # Print to stdout
        mcc counter.mac -o counter.mas   # Write to a file
        mcc -s counter.sym counter.mac   # Also write the symbol listing
        mcc --strict counter.mac         # Reject surplus operands
    """
    setup_logging(verbose, log_level)

    try:
        options = build_options(strict, entry, no_entry, no_runtime)

        if verbose:
            click.echo(f"Compiling {input_file}...", err=True)
            click.echo(
                f"Options: strict={options.strict_operands} "
                f"entry={options.entry_label} runtime={options.link_runtime}",
                err=True,
            )

        result = MacroCompiler(options).compile_file(input_file)

        if output is None:
            click.echo(result.output, nl=False)
        else:
            output.write_text(result.output, encoding="utf-8")

        if symbols is not None:
            symbols.write_text(format_symbol_table(result.table), encoding="utf-8")

        if verbose:
            click.echo(
                f"Compiled {result.line_count} lines: {len(result.table)} variables, "
                f"{len(result.program.instructions)} instructions",
                err=True,
            )
            if output is not None:
                click.echo(f"Wrote {output}", err=True)
            if symbols is not None:
                click.echo(f"Wrote symbols to {symbols}", err=True)

    except Exception as e:
        handle_cli_exception(e, verbose=verbose, error_type="Compilation")


if __name__ == "__main__":
    main()
