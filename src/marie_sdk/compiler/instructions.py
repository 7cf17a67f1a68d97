"""
Native Instruction Model
========================

Data types produced by the lowering stage and consumed by the emitter.

A Reference names a table variable by its canonical name rather than
holding the Variable itself, so lowered programs stay valid independent
of how the table is stored.

Addressing Modes
----------------
| Mode    | Source form  | Emitted as                              |
|---------|--------------|-----------------------------------------|
| DIRECT  | $x, $5       | op x / op c_5                           |
| POINTER | @p           | opi p                                   |
| ADDRESS | &x           | op x_addr                               |
| OFFSET  | @p[$i]       | five-instruction idiom through temp_addr|
"""

from dataclasses import dataclass, field
from enum import Enum, auto
from typing import Optional

from marie_sdk.isa import Opcode, SkipCondition, REFERENCE_OPCODES
from marie_sdk.compiler.symbols import SymbolTable


class AddressingMode(Enum):
    """How a reference operand reaches its value."""
    DIRECT = auto()
    POINTER = auto()
    ADDRESS = auto()
    OFFSET = auto()


@dataclass(frozen=True)
class Reference:
    """
    Resolved instruction operand.

    Attributes:
        variable: Canonical name of the table variable
        mode: Addressing mode
        index: Canonical name of the index variable (OFFSET only)
    """
    variable: str
    mode: AddressingMode = AddressingMode.DIRECT
    index: Optional[str] = None

    def __post_init__(self):
        if (self.mode is AddressingMode.OFFSET) != (self.index is not None):
            raise ValueError("an index is required for, and only for, OFFSET references")

    def __str__(self) -> str:
        if self.mode is AddressingMode.POINTER:
            return f"@{self.variable}"
        if self.mode is AddressingMode.OFFSET:
            return f"@{self.variable}[{self.index}]"
        return self.variable


@dataclass(frozen=True)
class NativeInstruction:
    """
    One instruction of the target machine.

    Exactly one operand field is set, depending on the opcode:
    reference for add/subt/store/load/jns, condition for skipcond,
    target for jump, none for clear/input/output/halt.
    """
    opcode: Opcode
    reference: Optional[Reference] = None
    condition: Optional[SkipCondition] = None
    target: Optional[str] = None

    def __post_init__(self):
        if (self.opcode in REFERENCE_OPCODES) != (self.reference is not None):
            raise ValueError(f"{self.opcode.mnemonic}: reference operand mismatch")
        if (self.opcode is Opcode.SKIPCOND) != (self.condition is not None):
            raise ValueError(f"{self.opcode.mnemonic}: condition operand mismatch")
        if (self.opcode is Opcode.JUMP) != (self.target is not None):
            raise ValueError(f"{self.opcode.mnemonic}: jump target mismatch")

    def __str__(self) -> str:
        if self.reference is not None:
            return f"{self.opcode.mnemonic} {self.reference}"
        if self.condition is not None:
            return f"{self.opcode.mnemonic} {self.condition.operand}"
        if self.target is not None:
            return f"{self.opcode.mnemonic} {self.target}"
        return self.opcode.mnemonic


@dataclass
class Program:
    """
    Output of the compiler: the frozen table plus the lowered instructions.

    Attributes:
        table: Frozen symbol table
        instructions: Native instructions in program order
        labels: Instruction index -> label attached to that instruction
    """
    table: SymbolTable
    instructions: list[NativeInstruction] = field(default_factory=list)
    labels: dict[int, str] = field(default_factory=dict)

    def label_at(self, index: int) -> Optional[str]:
        return self.labels.get(index)

    def has_label(self, name: str) -> bool:
        return name in self.labels.values()
