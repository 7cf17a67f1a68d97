"""
MARIE Instruction Set Definitions
=================================

MARIE is a single-accumulator machine with 16-bit words and a 12-bit
address field. The compiler only targets the subset of instructions the
macro language can produce, plus the indirect forms used by pointer and
offset addressing.

Mnemonic Conventions
--------------------
| Form      | Example         | Meaning                              |
|-----------|-----------------|--------------------------------------|
| direct    | add x           | AC := AC + M[x]                      |
| indirect  | addi p          | AC := AC + M[M[p]]                   |
| address   | add x_addr      | AC := AC + address-of(x)             |
| data      | x, dec 5        | one data word initialised to 5       |

The `i` suffix selects the indirect opcode; the `_addr` suffix names the
implicit constant holding a variable's address.

Copyright (c) 2025-2026 Hugo José Pinto & Contributors
"""

from enum import Enum


# =============================================================================
# Word Geometry
# =============================================================================

WORD_MIN = -32768
WORD_MAX = 32767

# Address 0 holds the entry jump; variables start right after it.
FIRST_VARIABLE_ADDRESS = 1

INDIRECT_SUFFIX = "i"
ADDRESS_SUFFIX = "_addr"
CONSTANT_PREFIX = "c_"


# =============================================================================
# Opcodes
# =============================================================================

class Opcode(Enum):
    """
    Native instructions the compiler emits.

    The value is the lowercase mnemonic written to the output text.
    """
    ADD = "add"
    SUBT = "subt"
    STORE = "store"
    LOAD = "load"
    JNS = "jns"
    SKIPCOND = "skipcond"
    JUMP = "jump"
    CLEAR = "clear"
    INPUT = "input"
    OUTPUT = "output"
    HALT = "halt"

    @property
    def mnemonic(self) -> str:
        return self.value

    @property
    def indirect_mnemonic(self) -> str:
        """Mnemonic of the indirect form (addi, loadi, ...)."""
        return self.value + INDIRECT_SUFFIX


# Opcodes that take a memory reference operand
REFERENCE_OPCODES = frozenset({
    Opcode.ADD,
    Opcode.SUBT,
    Opcode.STORE,
    Opcode.LOAD,
    Opcode.JNS,
})

# Opcodes with no operand at all
INHERENT_OPCODES = frozenset({
    Opcode.CLEAR,
    Opcode.INPUT,
    Opcode.OUTPUT,
    Opcode.HALT,
})

# Reference opcodes without a native indirect form. Indirect use goes
# through a linked runtime helper instead.
NO_INDIRECT_OPCODES = frozenset({
    Opcode.SUBT,
})


# =============================================================================
# Skipcond Condition Codes
# =============================================================================

class SkipCondition(Enum):
    """
    Conditions for `skipcond`: skip the next instruction when AC matches.

    The value is the native condition code from the instruction's
    address field.
    """
    LESS_THAN_ZERO = 0x000
    ZERO = 0x400
    GREATER_THAN_ZERO = 0x800

    @property
    def code(self) -> int:
        return self.value

    @property
    def operand(self) -> str:
        """Condition code as written in the output (three hex digits)."""
        return f"{self.value:03X}"


# Source spellings accepted for each condition (case-insensitive)
SKIPCOND_ALIASES: dict[str, SkipCondition] = {
    "gt": SkipCondition.GREATER_THAN_ZERO,
    "lt": SkipCondition.LESS_THAN_ZERO,
    "eq": SkipCondition.ZERO,
    "zero": SkipCondition.ZERO,
    "800": SkipCondition.GREATER_THAN_ZERO,
    "000": SkipCondition.LESS_THAN_ZERO,
    "400": SkipCondition.ZERO,
}


def parse_skip_condition(text: str) -> SkipCondition | None:
    """
    Parse a skipcond operand.

    Accepts the aliases in SKIPCOND_ALIASES and the literal codes with an
    optional 0x prefix.

    Returns:
        The matching SkipCondition, or None if the text is not recognised
    """
    key = text.lower()
    if key.startswith("0x"):
        key = key[2:].rjust(3, "0")
    return SKIPCOND_ALIASES.get(key)


def fits_word(value: int) -> bool:
    """Return True if value fits a signed 16-bit word."""
    return WORD_MIN <= value <= WORD_MAX
