"""
Runtime Helpers
===============

MARIE has no indirect subtract. Subtracting through a pointer or an
offset is lowered to a `jns` into one of the routines below, which are
appended to the program once when used.

Calling Convention
------------------
On entry `temp_acc` holds the minuend (the accumulator saved by the
caller). On return the accumulator holds `temp_acc - operand`.

- `subti`:  the accumulator already holds the operand value
            (caller did `loadi pointer`)
- `subtio`: `temp_addr` holds the operand address
            (caller computed base + index)

Both return through their entry word with `jumpi`, the usual MARIE
subroutine convention.

Copyright (c) 2025-2026 Hugo José Pinto & Contributors
"""

from dataclasses import dataclass
from typing import Iterable

from marie_sdk.isa import Opcode
from marie_sdk.compiler.instructions import AddressingMode, NativeInstruction
from marie_sdk.compiler.symbols import TEMP_ACC, TEMP_ADDR


SUBTI = "subti"
SUBTIO = "subtio"
SUBTI_RHS = "subti_rhs"

# Names the runtime defines in the output; user labels and variables
# must not reuse them.
RUNTIME_SYMBOLS = frozenset({SUBTI, SUBTIO, SUBTI_RHS})


@dataclass(frozen=True)
class RuntimeRoutine:
    """A subroutine: entry word label, body and the scratch words it reads."""
    name: str
    body: tuple[str, ...]
    scratch: tuple[str, ...]

    def lines(self) -> list[str]:
        return [f"{self.name},\thex 0", *self.body]


SUBTI_ROUTINE = RuntimeRoutine(SUBTI, (
    f"store {SUBTI_RHS}",
    f"load {TEMP_ACC}",
    f"subt {SUBTI_RHS}",
    f"jumpi {SUBTI}",
), scratch=(TEMP_ACC,))

SUBTIO_ROUTINE = RuntimeRoutine(SUBTIO, (
    f"loadi {TEMP_ADDR}",
    f"store {SUBTI_RHS}",
    f"load {TEMP_ACC}",
    f"subt {SUBTI_RHS}",
    f"jumpi {SUBTIO}",
), scratch=(TEMP_ACC, TEMP_ADDR))

ROUTINES = (SUBTI_ROUTINE, SUBTIO_ROUTINE)
ROUTINES_BY_NAME = {routine.name: routine for routine in ROUTINES}


def helper_for(instruction: NativeInstruction) -> str | None:
    """Name of the routine an instruction calls, or None."""
    if instruction.opcode is not Opcode.SUBT:
        return None
    mode = instruction.reference.mode
    if mode is AddressingMode.POINTER:
        return SUBTI
    if mode is AddressingMode.OFFSET:
        return SUBTIO
    return None


def required_routines(instructions: Iterable[NativeInstruction]) -> list[RuntimeRoutine]:
    """Routines called by instructions, in fixed order."""
    used = {helper_for(instruction) for instruction in instructions}
    return [routine for routine in ROUTINES if routine.name in used]


def runtime_lines(routines: list[RuntimeRoutine]) -> list[str]:
    """Output text for routines plus their shared data word."""
    if not routines:
        return []
    lines = []
    for routine in routines:
        lines.extend(routine.lines())
    lines.append(f"{SUBTI_RHS},\tdec 0")
    return lines
