"""
MARIE SDK - Macro Compiler for the MARIE Teaching Machine
=========================================================

MARIE is a single-accumulator machine with 4K words of 16-bit memory,
used to teach computer architecture. Its assembly has no named data
model beyond labels, so every variable, constant and pointer access is
written out by hand.

This package compiles a small macro language on top of it: variables
are declared once with `let`, referenced with `$`, `@` and `&` sigils,
and multi-operand `add`/`subt` lines expand into the load/op/store
sequences MARIE needs.

Main Components
---------------
- **compiler**: declaration pass, instruction lowering and emitter
- **isa**: MARIE opcodes and skipcond condition codes
- **cli**: the `mcc` command

Quick Start
-----------
    >>> from marie_sdk import compile_source
    >>> text = compile_source("let $x = $5\\nadd $x\\nhalt\\n")

Or from the command line:
    $ mcc program.mac -o program.mas

Version History
---------------
1.0.0 - Initial release
"""

__version__ = "1.0.0"

# =============================================================================
# Public API Exports
# =============================================================================

from marie_sdk.compiler import (
    CompilerOptions,
    CompilerResult,
    MacroCompiler,
    compile_file,
    compile_source,
)
from marie_sdk.errors import (
    MarieError,
    CompilerError,
    SourceLocation,
    InvalidReferenceError,
    DuplicateDeclarationError,
    UndeclaredVariableError,
    ConstantConflictError,
    InvalidInstructionArityError,
    MalformedDeclarationError,
    UnknownInstructionError,
    LabelError,
)

__all__ = [
    "__version__",
    # Compiler
    "CompilerOptions",
    "CompilerResult",
    "MacroCompiler",
    "compile_file",
    "compile_source",
    # Errors
    "MarieError",
    "CompilerError",
    "SourceLocation",
    "InvalidReferenceError",
    "DuplicateDeclarationError",
    "UndeclaredVariableError",
    "ConstantConflictError",
    "InvalidInstructionArityError",
    "MalformedDeclarationError",
    "UnknownInstructionError",
    "LabelError",
]
