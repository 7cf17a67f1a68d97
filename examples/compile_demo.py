#!/usr/bin/env python3
"""
MARIE Macro Compiler Demo
=========================

This script demonstrates how to use the compiler API to:
1. Compile a source string with default options
2. Inspect the symbol table and lowered instructions
3. Compile the example files next to this script
4. Report a compile error

Usage:
    python examples/compile_demo.py
"""

from pathlib import Path

from marie_sdk import CompilerError, CompilerOptions, MacroCompiler
from marie_sdk.compiler import format_symbol_table


def main():
    here = Path(__file__).parent

    # ==========================================================================
    # 1. Compile a source string
    # ==========================================================================
    source = """
        let $x = $5
        let $y
        add $y $x $x      // y := x + x
        load $y
        output
        halt
    """
    compiler = MacroCompiler()
    result = compiler.compile_source(source, "<demo>")

    print("Output:")
    print(result.output)

    # ==========================================================================
    # 2. Inspect the table and the lowered program
    # ==========================================================================
    print(format_symbol_table(result.table))
    for index, instruction in enumerate(result.program.instructions):
        label = result.program.label_at(index) or ""
        print(f"{index:3d} {label:<8} {instruction}")

    # ==========================================================================
    # 3. Compile the example files without the entry jump
    # ==========================================================================
    plain = MacroCompiler(CompilerOptions(entry_label=None))
    for path in sorted(here.glob("*.mac")):
        result = plain.compile_file(path)
        print(f"\n{path.name}: {len(result.table)} variables, "
              f"{len(result.program.instructions)} instructions")

    # ==========================================================================
    # 4. Errors carry file, line and column
    # ==========================================================================
    try:
        compiler.compile_source("let $total\nadd $totl\n", "typo.mac")
    except CompilerError as e:
        print(f"\n{e}")


if __name__ == "__main__":
    main()
