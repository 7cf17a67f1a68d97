"""
Native Program Emitter
======================

Renders a lowered Program as MARIE assembly text.

Output Layout
-------------
    jump main                  optional entry prologue at address 0
    x,	dec 5                  one data word per table variable
    c_5,	dec 5
    main,	add x              instructions, label prefix where attached
    halt
    subti,	hex 0              runtime helpers, only when called

Without a prologue a `hex 0` word takes address 0 instead. Either way the
data words occupy addresses 1..N exactly as the symbol table assigned them.

Operand Expansion
-----------------
| Reference        | Emitted                                           |
|------------------|---------------------------------------------------|
| Direct x         | op x                                              |
| Pointer p        | opi p                                             |
| Address x        | op x_addr                                         |
| Offset p[i]      | store temp_acc / load p / add i /                 |
|                  | store temp_addr / opi temp_addr                   |
| subt Pointer p   | store temp_acc / loadi p / jns subti              |
| subt Offset p[i] | offset idiom, then jns subtio                     |

The offset idiom saves the accumulator in temp_acc and does not reload
it before the indirect opcode runs.

Copyright (c) 2025-2026 Hugo José Pinto & Contributors
"""

from typing import Optional
import logging

from marie_sdk.isa import Opcode, NO_INDIRECT_OPCODES
from marie_sdk.compiler.instructions import (
    AddressingMode,
    NativeInstruction,
    Program,
)
from marie_sdk.compiler.runtime import (
    SUBTI,
    SUBTIO,
    required_routines,
    runtime_lines,
)
from marie_sdk.compiler.symbols import (
    TEMP_ACC,
    TEMP_ADDR,
    SymbolTable,
    VariableKind,
    native_name,
)

logger = logging.getLogger(__name__)


LABEL_SEPARATOR = ",\t"

# Fills address 0 when there is no entry prologue
ADDRESS_ZERO_PLACEHOLDER = "hex 0"


def format_line(text: str, label: Optional[str] = None) -> str:
    """Prefix an instruction or directive with its label, if any."""
    if label:
        return f"{label}{LABEL_SEPARATOR}{text}"
    return text


def data_lines(table: SymbolTable) -> list[str]:
    """One `dec` directive per variable, in address order."""
    return [
        format_line(f"dec {variable.default_value}", variable.native_name)
        for variable in table
    ]


def expand_instruction(instruction: NativeInstruction) -> list[str]:
    """
    Expand one native instruction into output lines (without labels).

    Args:
        instruction: A lowered instruction

    Returns:
        One line for most instructions; several for offset and
        indirect-subtract forms
    """
    opcode = instruction.opcode

    if opcode is Opcode.SKIPCOND:
        return [f"{opcode.mnemonic} {instruction.condition.operand}"]
    if opcode is Opcode.JUMP:
        return [f"{opcode.mnemonic} {instruction.target}"]

    reference = instruction.reference
    if reference is None:
        return [opcode.mnemonic]

    variable = native_name(reference.variable)
    mode = reference.mode

    if mode is AddressingMode.DIRECT or mode is AddressingMode.ADDRESS:
        return [f"{opcode.mnemonic} {variable}"]

    if mode is AddressingMode.POINTER:
        if opcode in NO_INDIRECT_OPCODES:
            return [
                f"store {TEMP_ACC}",
                f"loadi {variable}",
                f"jns {SUBTI}",
            ]
        return [f"{opcode.indirect_mnemonic} {variable}"]

    if mode is AddressingMode.OFFSET:
        lines = [
            f"store {TEMP_ACC}",
            f"load {variable}",
            f"add {native_name(reference.index)}",
            f"store {TEMP_ADDR}",
        ]
        if opcode in NO_INDIRECT_OPCODES:
            lines.append(f"jns {SUBTIO}")
        else:
            lines.append(f"{opcode.indirect_mnemonic} {TEMP_ADDR}")
        return lines

    raise AssertionError(f"unhandled addressing mode {mode}")


class Emitter:
    """
    Writes a Program as native assembly text.

    Usage:
        text = Emitter(entry_label="main").emit(program)
    """

    def __init__(self, entry_label: Optional[str] = None, link_runtime: bool = True):
        """
        Args:
            entry_label: Label for the `jump` prologue, or None for no prologue
            link_runtime: Append the subtract helpers when they are called
        """
        self.entry_label = entry_label
        self.link_runtime = link_runtime

    def emit(self, program: Program) -> str:
        """Render the complete program, newline-terminated."""
        lines = []
        entry_target, first_label = self._entry(program)

        if entry_target is not None:
            lines.append(f"jump {entry_target}")
        elif len(program.table):
            # Address 0 stays unused so data words sit at their table addresses
            lines.append(ADDRESS_ZERO_PLACEHOLDER)

        lines.extend(data_lines(program.table))

        for index, instruction in enumerate(program.instructions):
            label = program.label_at(index)
            if index == 0 and label is None:
                label = first_label
            expanded = expand_instruction(instruction)
            lines.append(format_line(expanded[0], label))
            lines.extend(expanded[1:])

        if self.link_runtime:
            routines = required_routines(program.instructions)
            if routines:
                logger.debug(f"Linking runtime: {', '.join(r.name for r in routines)}")
            lines.extend(runtime_lines(routines))

        logger.info(f"Emitted {len(lines)} lines")
        if not lines:
            return ""
        return "\n".join(lines) + "\n"

    def _entry(self, program: Program) -> tuple[Optional[str], Optional[str]]:
        """
        Work out the prologue target and the label to put on instruction 0.

        Returns:
            (jump target or None, label for the first instruction or None)
        """
        if not self.entry_label or not program.instructions:
            return None, None
        if program.has_label(self.entry_label):
            return self.entry_label, None
        existing = program.label_at(0)
        if existing is not None:
            return existing, None
        return self.entry_label, self.entry_label


def emit_program(
    program: Program,
    entry_label: Optional[str] = None,
    link_runtime: bool = True,
) -> str:
    """Render program as native assembly text."""
    return Emitter(entry_label, link_runtime).emit(program)


def format_symbol_table(table: SymbolTable) -> str:
    """
    Render the table as a symbol listing.

    Format: name $address value kind (one per line, address order)
    """
    lines = ["# Symbol table", "# Generated by mcc"]
    for variable in table:
        kind = variable.kind.name.lower()
        if variable.is_constant and variable.kind is VariableKind.DECLARED:
            kind += " const"
        lines.append(
            f"{variable.native_name:<16} ${variable.address:03X} "
            f"{variable.default_value:>6}  {kind}"
        )
    return "\n".join(lines) + "\n"
