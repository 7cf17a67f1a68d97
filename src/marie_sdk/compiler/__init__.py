"""
MARIE Macro Compiler
====================

Lowers a line-oriented macro language with symbolic variable references
into MARIE assembly.

Pipeline
--------
    read_source()        → SourceLines (comments and blanks removed)
    build_symbol_table() → frozen SymbolTable
    lower_program()      → Program (native instructions + labels)
    emit_program()       → assembly text

Source Language
---------------
    let $count = $10          // variable with initial value
    let const $step = $1      // constant
    let $ptr = $0
    loop: subt $count $count $step
    load @ptr[$count]         // base pointer plus index
    add &count                // address of count
    skipcond gt
    jump loop
    halt

Usage
-----
    >>> from marie_sdk.compiler import MacroCompiler
    >>> result = MacroCompiler().compile_source("let $x\\nload $x\\nhalt\\n")
    >>> result.table["x"].address
    1
"""

from marie_sdk.compiler.compiler import (
    CompilerOptions,
    CompilerResult,
    MacroCompiler,
    compile_file,
    compile_source,
)
from marie_sdk.compiler.declarations import DeclarationPass, build_symbol_table
from marie_sdk.compiler.emitter import Emitter, emit_program, format_symbol_table
from marie_sdk.compiler.instructions import (
    AddressingMode,
    NativeInstruction,
    Program,
    Reference,
)
from marie_sdk.compiler.lowering import Keyword, Lowerer, lower_program
from marie_sdk.compiler.patterns import (
    Address,
    Direct,
    Numeral,
    OffsetByNumeral,
    OffsetByVar,
    Pointer,
    classify,
)
from marie_sdk.compiler.source import SourceLine, read_source, read_source_file
from marie_sdk.compiler.symbols import SymbolTable, Variable, VariableKind

__all__ = [
    # Compiler
    "CompilerOptions",
    "CompilerResult",
    "MacroCompiler",
    "compile_file",
    "compile_source",
    # Passes
    "DeclarationPass",
    "build_symbol_table",
    "Lowerer",
    "Keyword",
    "lower_program",
    "Emitter",
    "emit_program",
    "format_symbol_table",
    # Data model
    "AddressingMode",
    "NativeInstruction",
    "Program",
    "Reference",
    "SymbolTable",
    "Variable",
    "VariableKind",
    # Reference kinds
    "Address",
    "Direct",
    "Numeral",
    "OffsetByNumeral",
    "OffsetByVar",
    "Pointer",
    "classify",
    # Source
    "SourceLine",
    "read_source",
    "read_source_file",
]
