"""
Macro Compiler Main Module
==========================

Orchestrates the complete compilation:

    Source → Lines → Declaration Pass → Lowering → Emitter → MARIE text

Usage
-----
Command line:
    $ mcc program.mac -o program.mas

Programmatic:
    >>> from marie_sdk import compile_source
    >>> print(compile_source("let $x = $5\\nadd $x $x\\nhalt\\n"), end="")
    jump main
    x,	dec 5
    c_5,	dec 5
    main,	load x
    add x
    store x
    halt

Error Handling
--------------
Compilation stops at the first error. Every failure is a CompilerError
carrying the line number and the literal source line; no partial output
is produced.

Copyright (c) 2025-2026 Hugo José Pinto & Contributors
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable, Optional
import logging
import os

from marie_sdk.errors import LabelError
from marie_sdk.compiler.declarations import build_symbol_table
from marie_sdk.compiler.emitter import Emitter
from marie_sdk.compiler.instructions import Program
from marie_sdk.compiler.lowering import lower_program
from marie_sdk.compiler.runtime import RUNTIME_SYMBOLS
from marie_sdk.compiler.source import (
    SourceLine,
    is_label_name,
    read_source,
    read_source_file,
)
from marie_sdk.compiler.symbols import SymbolTable

logger = logging.getLogger(__name__)


DEFAULT_ENTRY_LABEL = "main"

_TRUE_VALUES = ("1", "true", "yes", "on")
_FALSE_VALUES = ("0", "false", "no", "off")


def _parse_flag(value: str) -> Optional[bool]:
    """Interpret an environment flag, None when unrecognised."""
    value = value.strip().lower()
    if value in _TRUE_VALUES:
        return True
    if value in _FALSE_VALUES:
        return False
    return None


@dataclass
class CompilerOptions:
    """
    Compiler configuration options.

    Attributes:
        strict_operands: Reject add/subt operands beyond the third instead
                         of ignoring them.
        entry_label: Label of the program entry. When set, the output
                     starts with `jump <entry_label>` at address 0 and the
                     first instruction carries the label unless the source
                     defines it. None omits the prologue.
        link_runtime: Append the indirect-subtract helper routines when
                      the program calls them. Disable when linking the
                      helpers from elsewhere.
    """
    strict_operands: bool = False
    entry_label: Optional[str] = DEFAULT_ENTRY_LABEL
    link_runtime: bool = True

    def __post_init__(self):
        if self.entry_label == "":
            self.entry_label = None
        if self.entry_label is not None and not is_label_name(self.entry_label):
            raise ValueError(f"invalid entry label: {self.entry_label!r}")

    @classmethod
    def from_env(cls) -> "CompilerOptions":
        """
        Create CompilerOptions from environment variables.

        Environment variables (all optional):
            MARIE_STRICT_OPERANDS: 1/0, true/false, yes/no, on/off
            MARIE_ENTRY_LABEL: Entry label (empty string disables the prologue)
            MARIE_LINK_RUNTIME: 1/0, true/false, yes/no, on/off

        Returns:
            CompilerOptions with values from environment variables
        """
        options = cls()

        if (strict := os.environ.get("MARIE_STRICT_OPERANDS")) is not None:
            if (flag := _parse_flag(strict)) is not None:
                options.strict_operands = flag

        if (entry := os.environ.get("MARIE_ENTRY_LABEL")) is not None:
            entry = entry.strip()
            if not entry:
                options.entry_label = None
            elif is_label_name(entry):
                options.entry_label = entry

        if (link := os.environ.get("MARIE_LINK_RUNTIME")) is not None:
            if (flag := _parse_flag(link)) is not None:
                options.link_runtime = flag

        return options


@dataclass
class CompilerResult:
    """
    Result of a compilation.

    Attributes:
        filename: Source filename
        table: Frozen symbol table
        program: Lowered instructions and labels
        output: Native program text
    """
    filename: str
    table: SymbolTable
    program: Program
    output: str = ""
    line_count: int = field(default=0)


class MacroCompiler:
    """
    Compiler from macro source to MARIE assembly.

    Example:
        compiler = MacroCompiler()
        result = compiler.compile_file("counter.mac")
        print(result.output)

    Attributes:
        options: Compiler configuration options
    """

    def __init__(self, options: Optional[CompilerOptions] = None):
        """
        Initialize the compiler.

        Args:
            options: Compiler configuration (uses defaults if None)
        """
        self.options = options or CompilerOptions()

    def compile_source(self, source: str, filename: str = "<input>") -> CompilerResult:
        """
        Compile macro source text.

        Args:
            source: Complete source text
            filename: Source filename for error messages

        Returns:
            CompilerResult with the table, program and output text

        Raises:
            CompilerError: If compilation fails
        """
        return self.compile_lines(read_source(source, filename), filename)

    def compile_file(self, filepath: str | Path) -> CompilerResult:
        """
        Compile a macro source file.

        Raises:
            CompilerError: If compilation fails
            FileNotFoundError: If source file not found
        """
        lines = read_source_file(filepath)
        return self.compile_lines(lines, str(filepath))

    def compile_lines(self, lines: Iterable[SourceLine], filename: str = "<input>") -> CompilerResult:
        """
        Run both passes and the emitter over prepared source lines.

        The declaration pass completes, and the table is frozen, before
        any line is lowered.
        """
        lines = list(lines)
        logger.info(f"Compiling {filename}: {len(lines)} source lines")

        table = build_symbol_table(lines)
        program = lower_program(
            lines,
            table,
            strict_operands=self.options.strict_operands,
            entry_label=self.options.entry_label,
        )
        self._check_entry_label(program)

        emitter = Emitter(
            entry_label=self.options.entry_label,
            link_runtime=self.options.link_runtime,
        )
        output = emitter.emit(program)

        return CompilerResult(
            filename=filename,
            table=table,
            program=program,
            output=output,
            line_count=len(lines),
        )

    def _check_entry_label(self, program: Program) -> None:
        """The generated entry label must not clash with emitted names."""
        entry = self.options.entry_label
        if entry is None or program.has_label(entry):
            return
        if program.table.lookup_native(entry) is not None:
            raise LabelError(
                entry,
                "collides with a variable of the same name",
                hint="rename the variable or choose another entry label with --entry",
            )
        if entry in RUNTIME_SYMBOLS:
            raise LabelError(entry, "is reserved for the runtime helpers")


# =============================================================================
# Convenience Functions
# =============================================================================

def compile_source(
    source: str,
    filename: str = "<input>",
    options: Optional[CompilerOptions] = None,
) -> str:
    """
    Compile macro source text to MARIE assembly.

    Args:
        source: Macro source code
        filename: Source filename for error messages
        options: Compiler configuration (uses defaults if None)

    Returns:
        Native program text

    Raises:
        CompilerError: If compilation fails
    """
    return MacroCompiler(options).compile_source(source, filename).output


def compile_file(
    filepath: str | Path,
    output_path: Optional[str | Path] = None,
    options: Optional[CompilerOptions] = None,
) -> str:
    """
    Compile a macro source file to MARIE assembly.

    Args:
        filepath: Path to the source file
        output_path: Optional path to write the output to
        options: Compiler configuration (uses defaults if None)

    Returns:
        Native program text

    Raises:
        CompilerError: If compilation fails
        FileNotFoundError: If source file not found

    Example:
        >>> text = compile_file("counter.mac", "counter.mas")
    """
    result = MacroCompiler(options).compile_file(filepath)

    if output_path:
        Path(output_path).write_text(result.output, encoding="utf-8")

    return result.output
