"""
Instruction Lowering
====================

Expands each pseudo-instruction line into native instructions, reading
the frozen SymbolTable built by the declaration pass.

Instruction Forms
-----------------
| Source              | Lowered                                   |
|---------------------|-------------------------------------------|
| store $x            | Store(x)                                  |
| load $x             | Load(x)                                   |
| jns $x              | Jns(x)                                    |
| clear/input/...     | Clear / Input / Output / Halt             |
| add $a              | Add(a)                                    |
| add $a $b           | Load(b), Add(a), Store(a)   a := b + a    |
| add $a $b $c        | Load(b), Add(c), Store(a)   a := b + c    |
| subt $a $b          | Load(b), Subt(a), Store(a)  a := b - a    |
| subt $a $b $c       | Load(b), Subt(c), Store(a)  a := b - c    |
| jump loop           | Jump(loop)                                |
| skipcond gt         | Skipcond(GreaterThanZero)                 |
| let ...             | (nothing, the value lives in the table)   |

Operands beyond the third of add/subt are ignored, or rejected when
strict operand checking is enabled.

Labels
------
A line may start with `name:`. The label is attached to the first native
instruction of the next line that produces any. A `jump` must name a label
defined somewhere in the file, or the entry label when the emitter adds it.

Copyright (c) 2025-2026 Hugo José Pinto & Contributors
"""

from enum import Enum
from typing import Iterable, Optional
import logging

from marie_sdk.errors import (
    InvalidInstructionArityError,
    InvalidReferenceError,
    LabelError,
    UndeclaredVariableError,
    UnknownInstructionError,
)
from marie_sdk.isa import Opcode, parse_skip_condition
from marie_sdk.compiler.instructions import (
    AddressingMode,
    NativeInstruction,
    Program,
    Reference,
)
from marie_sdk.compiler.patterns import (
    Address,
    Direct,
    Numeral,
    OffsetByNumeral,
    OffsetByVar,
    Pointer,
    classify,
    is_reference_token,
)
from marie_sdk.compiler.runtime import ROUTINES_BY_NAME, RUNTIME_SYMBOLS, helper_for
from marie_sdk.compiler.source import SourceLine, is_label_name, split_label
from marie_sdk.compiler.symbols import RESERVED_NAMES, SymbolTable

logger = logging.getLogger(__name__)


class Keyword(Enum):
    """Leading keywords of the source language."""
    LET = "let"
    STORE = "store"
    LOAD = "load"
    JNS = "jns"
    ADD = "add"
    SUBT = "subt"
    CLEAR = "clear"
    INPUT = "input"
    OUTPUT = "output"
    HALT = "halt"
    JUMP = "jump"
    SKIPCOND = "skipcond"


# Single reference operand, any addressing mode
MEMORY_KEYWORDS = {
    Keyword.STORE: Opcode.STORE,
    Keyword.LOAD: Opcode.LOAD,
    Keyword.JNS: Opcode.JNS,
}

# One to three operands, expanded by arity
ARITHMETIC_KEYWORDS = {
    Keyword.ADD: Opcode.ADD,
    Keyword.SUBT: Opcode.SUBT,
}

# No operand; trailing tokens are ignored
INHERENT_KEYWORDS = {
    Keyword.CLEAR: Opcode.CLEAR,
    Keyword.INPUT: Opcode.INPUT,
    Keyword.OUTPUT: Opcode.OUTPUT,
    Keyword.HALT: Opcode.HALT,
}

MAX_ARITHMETIC_OPERANDS = 3


def reference_operands(keyword: str, operands: list[str]) -> list[str]:
    """
    Operand tokens that lowering resolves as references for keyword.

    Tokens past these positions are ignored and never classified. Unknown
    keywords, `let`, `jump` and `skipcond` have none.
    """
    try:
        kind = Keyword(keyword.lower())
    except ValueError:
        return []
    if kind in MEMORY_KEYWORDS:
        return operands[:1]
    if kind in ARITHMETIC_KEYWORDS:
        return operands[:MAX_ARITHMETIC_OPERANDS]
    return []


def arithmetic_operand(operands: list[str]) -> str:
    """The add/subt operand read by the opcode itself, not by the Load."""
    if len(operands) >= MAX_ARITHMETIC_OPERANDS:
        return operands[MAX_ARITHMETIC_OPERANDS - 1]
    return operands[0]


class Lowerer:
    """
    Lowers source lines against a frozen SymbolTable.

    Usage:
        lowerer = Lowerer(table)
        instructions = lowerer.lower_line(line)
    """

    def __init__(self, table: SymbolTable, strict_operands: bool = False):
        """
        Args:
            table: Symbol table produced by the declaration pass
            strict_operands: Reject add/subt operands beyond the third
        """
        if not table.frozen:
            raise ValueError("lowering requires a frozen symbol table")
        self.table = table
        self.strict_operands = strict_operands

    # =========================================================================
    # Line Lowering
    # =========================================================================

    def lower_line(self, line: SourceLine) -> list[NativeInstruction]:
        """
        Lower one source line.

        Returns:
            Native instructions in execution order (empty for `let` and
            label-only lines)

        Raises:
            CompilerError: On any classification or resolution failure
        """
        _, tokens = split_label(line)
        if not tokens:
            return []

        keyword = self._keyword(line, tokens[0])
        operands = tokens[1:]

        if keyword is Keyword.LET:
            instructions = []
        elif keyword in MEMORY_KEYWORDS:
            self._require_operands(line, keyword, operands, 1, "one operand")
            reference = self.resolve(line, operands[0])
            instructions = [NativeInstruction(MEMORY_KEYWORDS[keyword], reference)]
        elif keyword in ARITHMETIC_KEYWORDS:
            instructions = self._lower_arithmetic(line, keyword, operands)
        elif keyword in INHERENT_KEYWORDS:
            instructions = [NativeInstruction(INHERENT_KEYWORDS[keyword])]
        elif keyword is Keyword.JUMP:
            instructions = [self._lower_jump(line, operands)]
        elif keyword is Keyword.SKIPCOND:
            instructions = [self._lower_skipcond(line, operands)]
        else:
            raise AssertionError(f"unhandled keyword {keyword}")

        self._check_runtime_scratch(line, instructions)
        logger.debug(f"Line {line.line_number}: '{line.text}' -> {len(instructions)} instruction(s)")
        return instructions

    def _keyword(self, line: SourceLine, token: str) -> Keyword:
        try:
            return Keyword(token.lower())
        except ValueError:
            raise UnknownInstructionError(
                token,
                location=line.location(token),
                source_line=line.text,
                valid_keywords=[k.value for k in Keyword],
            ) from None

    def _require_operands(
        self,
        line: SourceLine,
        keyword: Keyword,
        operands: list[str],
        minimum: int,
        expected: str,
    ) -> None:
        if len(operands) < minimum:
            raise InvalidInstructionArityError(
                keyword.value,
                len(operands),
                expected,
                location=line.location(),
                source_line=line.text,
            )

    def _lower_arithmetic(
        self,
        line: SourceLine,
        keyword: Keyword,
        operands: list[str],
    ) -> list[NativeInstruction]:
        """
        Expand add/subt by operand count.

        The two-operand form computes `dest := src OP dest`; for subtract
        that is `src - dest`, and the order must not be swapped.
        """
        self._require_operands(line, keyword, operands, 1, "one to three operands")
        if self.strict_operands and len(operands) > MAX_ARITHMETIC_OPERANDS:
            raise InvalidInstructionArityError(
                keyword.value,
                len(operands),
                "at most three operands",
                location=line.location(operands[MAX_ARITHMETIC_OPERANDS]),
                source_line=line.text,
            )

        opcode = ARITHMETIC_KEYWORDS[keyword]

        if len(operands) == 1:
            return [NativeInstruction(opcode, self.resolve(line, operands[0]))]

        dest = self.resolve(line, operands[0])
        src = self.resolve(line, operands[1])

        if len(operands) == 2:
            return [
                NativeInstruction(Opcode.LOAD, src),
                NativeInstruction(opcode, dest),
                NativeInstruction(Opcode.STORE, dest),
            ]

        src2 = self.resolve(line, operands[2])
        return [
            NativeInstruction(Opcode.LOAD, src),
            NativeInstruction(opcode, src2),
            NativeInstruction(Opcode.STORE, dest),
        ]

    def _lower_jump(self, line: SourceLine, operands: list[str]) -> NativeInstruction:
        self._require_operands(line, Keyword.JUMP, operands, 1, "a label")
        target = operands[0]
        if not is_label_name(target):
            raise InvalidReferenceError(
                target,
                location=line.location(target),
                source_line=line.text,
                hint="jump takes a label name such as 'loop'",
            )
        return NativeInstruction(Opcode.JUMP, target=target)

    def _lower_skipcond(self, line: SourceLine, operands: list[str]) -> NativeInstruction:
        self._require_operands(line, Keyword.SKIPCOND, operands, 1, "a condition")
        condition = parse_skip_condition(operands[0])
        if condition is None:
            raise InvalidReferenceError(
                operands[0],
                location=line.location(operands[0]),
                source_line=line.text,
                hint="skipcond takes gt, lt, eq or one of the codes 800, 000, 400",
            )
        return NativeInstruction(Opcode.SKIPCOND, condition=condition)

    # =========================================================================
    # Reference Resolution
    # =========================================================================

    def resolve(self, line: SourceLine, token: str) -> Reference:
        """
        Resolve an operand token to a Reference into the table.

        Raises:
            InvalidReferenceError: If the token is not a reference
            UndeclaredVariableError: If a named variable is not in the table
        """
        location = line.location(token)
        if not is_reference_token(token):
            raise InvalidReferenceError(
                token,
                location=location,
                source_line=line.text,
                hint="operands start with '$', '@' or '&'",
            )

        kind = classify(token, location, line.text)

        if isinstance(kind, (Numeral, Direct)):
            reference = Reference(kind.canonical_name, AddressingMode.DIRECT)
        elif isinstance(kind, Pointer):
            reference = Reference(kind.canonical_name, AddressingMode.POINTER)
        elif isinstance(kind, Address):
            reference = Reference(kind.canonical_name, AddressingMode.ADDRESS)
        elif isinstance(kind, (OffsetByVar, OffsetByNumeral)):
            reference = Reference(
                kind.canonical_name,
                AddressingMode.OFFSET,
                index=kind.index_canonical_name,
            )
        else:
            raise AssertionError(f"unhandled reference kind {kind!r}")

        names = [reference.variable]
        if reference.index is not None:
            names.append(reference.index)
            names.extend(RESERVED_NAMES)
        for name in names:
            self._require_variable(line, token, name)
        return reference

    def _require_variable(self, line: SourceLine, token: str, name: str) -> None:
        if self.table.lookup(name) is None:
            raise UndeclaredVariableError(
                name,
                location=line.location(token),
                source_line=line.text,
                similar_symbols=self.table.similar_names(name),
            )

    def _check_runtime_scratch(self, line: SourceLine, instructions: list[NativeInstruction]) -> None:
        """Indirect subtract saves the accumulator in the scratch words."""
        for instruction in instructions:
            helper = helper_for(instruction)
            if helper is None:
                continue
            for name in ROUTINES_BY_NAME[helper].scratch:
                self._require_variable(line, name, name)


# =============================================================================
# Whole-Program Lowering
# =============================================================================

def lower_program(
    lines: Iterable[SourceLine],
    table: SymbolTable,
    strict_operands: bool = False,
    entry_label: Optional[str] = None,
) -> Program:
    """
    Lower every line and attach labels to their instructions.

    Args:
        lines: Source lines in file order
        table: Frozen table from the declaration pass
        strict_operands: Reject add/subt operands beyond the third
        entry_label: Label the emitter puts on instruction 0, if any; jumps
            may target it when the source leaves instruction 0 unlabelled

    Raises:
        LabelError: For duplicate, colliding, dangling or undefined labels
        CompilerError: For any lowering failure
    """
    lowerer = Lowerer(table, strict_operands=strict_operands)
    program = Program(table)
    defined: dict[str, SourceLine] = {}
    pending: tuple[str, SourceLine] | None = None
    jumps: list[tuple[str, SourceLine]] = []

    for line in lines:
        label, _ = split_label(line)
        if label is not None:
            _check_label(label, line, defined, table)
            if pending is not None:
                raise LabelError(
                    label,
                    f"would share an instruction with label '{pending[0]}'",
                    location=line.location(),
                    source_line=line.text,
                )
            defined[label] = line
            pending = (label, line)

        instructions = lowerer.lower_line(line)
        if instructions and pending is not None:
            program.labels[len(program.instructions)] = pending[0]
            pending = None
        program.instructions.extend(instructions)
        jumps.extend(
            (instruction.target, line)
            for instruction in instructions
            if instruction.opcode is Opcode.JUMP
        )

    if pending is not None:
        label, line = pending
        raise LabelError(
            label,
            "is not followed by any instruction",
            location=line.location(),
            source_line=line.text,
        )

    targets = set(defined)
    if entry_label and program.label_at(0) is None:
        targets.add(entry_label)
    for target, line in jumps:
        if target not in targets:
            raise LabelError(
                target,
                "is not defined",
                location=line.location(target),
                source_line=line.text,
                hint="jump targets must be labels defined with 'name:'",
            )

    logger.info(
        f"Lowered {len(program.instructions)} instructions, {len(program.labels)} labels"
    )
    return program


def _check_label(
    label: str,
    line: SourceLine,
    defined: dict[str, SourceLine],
    table: SymbolTable,
) -> None:
    location = line.location()
    if label in defined:
        raise LabelError(
            label,
            "is already defined",
            location=location,
            source_line=line.text,
            hint=f"first defined at line {defined[label].line_number}",
        )
    if table.lookup_native(label) is not None:
        raise LabelError(
            label,
            "collides with a variable of the same name",
            location=location,
            source_line=line.text,
        )
    if label in RUNTIME_SYMBOLS:
        raise LabelError(
            label,
            "is reserved for the runtime helpers",
            location=location,
            source_line=line.text,
        )
