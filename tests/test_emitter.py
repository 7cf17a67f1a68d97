# =============================================================================
# test_emitter.py - Native Program Emitter Tests
# =============================================================================
# Tests for rendering lowered programs as MARIE assembly text.
#
# Test coverage includes:
#   - Per-mode instruction expansion
#   - Data directives
#   - Labels and the entry prologue
#   - Runtime helper linking
#   - Symbol table listing
# =============================================================================

import pytest

from marie_sdk.compiler.declarations import build_symbol_table
from marie_sdk.compiler.emitter import (
    data_lines,
    emit_program,
    expand_instruction,
    format_line,
    format_symbol_table,
)
from marie_sdk.compiler.instructions import AddressingMode, NativeInstruction, Reference
from marie_sdk.compiler.lowering import lower_program
from marie_sdk.compiler.runtime import (
    SUBTI_ROUTINE,
    SUBTIO_ROUTINE,
    required_routines,
    runtime_lines,
)
from marie_sdk.compiler.source import read_source
from marie_sdk.isa import Opcode, SkipCondition


def program_for(source: str):
    lines = read_source(source)
    return lower_program(lines, build_symbol_table(lines))


def ref(opcode, name, mode=AddressingMode.DIRECT, index=None):
    return NativeInstruction(opcode, Reference(name, mode, index))


# =============================================================================
# Instruction Expansion
# =============================================================================

class TestExpandInstruction:
    """Test how each addressing mode is written out."""

    def test_direct(self):
        assert expand_instruction(ref(Opcode.ADD, "x")) == ["add x"]

    def test_numeral_uses_constant_name(self):
        assert expand_instruction(ref(Opcode.LOAD, ":5")) == ["load c_5"]

    def test_address_uses_shadow_name(self):
        instruction = ref(Opcode.LOAD, "x:addr", AddressingMode.ADDRESS)
        assert expand_instruction(instruction) == ["load x_addr"]

    @pytest.mark.parametrize("opcode,text", [
        (Opcode.LOAD, "loadi p"),
        (Opcode.STORE, "storei p"),
        (Opcode.ADD, "addi p"),
        (Opcode.JNS, "jnsi p"),
    ])
    def test_pointer(self, opcode, text):
        assert expand_instruction(ref(opcode, "p", AddressingMode.POINTER)) == [text]

    def test_pointer_subtract(self):
        instruction = ref(Opcode.SUBT, "p", AddressingMode.POINTER)
        assert expand_instruction(instruction) == [
            "store temp_acc",
            "loadi p",
            "jns subti",
        ]

    def test_offset(self):
        instruction = ref(Opcode.LOAD, "arr", AddressingMode.OFFSET, "i")
        assert expand_instruction(instruction) == [
            "store temp_acc",
            "load arr",
            "add i",
            "store temp_addr",
            "loadi temp_addr",
        ]

    def test_offset_numeral_index(self):
        instruction = ref(Opcode.STORE, "arr", AddressingMode.OFFSET, ":2")
        lines = expand_instruction(instruction)
        assert lines[2] == "add c_2"
        assert lines[-1] == "storei temp_addr"

    def test_offset_subtract(self):
        instruction = ref(Opcode.SUBT, "arr", AddressingMode.OFFSET, "i")
        assert expand_instruction(instruction) == [
            "store temp_acc",
            "load arr",
            "add i",
            "store temp_addr",
            "jns subtio",
        ]

    @pytest.mark.parametrize("condition,text", [
        (SkipCondition.GREATER_THAN_ZERO, "skipcond 800"),
        (SkipCondition.LESS_THAN_ZERO, "skipcond 000"),
        (SkipCondition.ZERO, "skipcond 400"),
    ])
    def test_skipcond(self, condition, text):
        instruction = NativeInstruction(Opcode.SKIPCOND, condition=condition)
        assert expand_instruction(instruction) == [text]

    def test_jump(self):
        instruction = NativeInstruction(Opcode.JUMP, target="loop")
        assert expand_instruction(instruction) == ["jump loop"]

    @pytest.mark.parametrize("opcode", [Opcode.CLEAR, Opcode.INPUT, Opcode.OUTPUT, Opcode.HALT])
    def test_inherent(self, opcode):
        assert expand_instruction(NativeInstruction(opcode)) == [opcode.mnemonic]


class TestNativeInstruction:
    """Test operand validation on the instruction model."""

    def test_reference_required(self):
        with pytest.raises(ValueError):
            NativeInstruction(Opcode.LOAD)

    def test_reference_not_allowed(self):
        with pytest.raises(ValueError):
            NativeInstruction(Opcode.HALT, Reference("x"))

    def test_offset_needs_index(self):
        with pytest.raises(ValueError):
            Reference("p", AddressingMode.OFFSET)

    def test_index_only_for_offset(self):
        with pytest.raises(ValueError):
            Reference("p", AddressingMode.POINTER, "i")

    def test_str(self):
        assert str(ref(Opcode.ADD, "p", AddressingMode.OFFSET, "i")) == "add @p[i]"


# =============================================================================
# Program Layout
# =============================================================================

class TestFormatting:
    """Test line and data formatting helpers."""

    def test_labelled_line(self):
        assert format_line("dec 5", "x") == "x,\tdec 5"

    def test_unlabelled_line(self):
        assert format_line("halt") == "halt"

    def test_data_lines(self):
        table = build_symbol_table(read_source("let $x = $5\nlet $y\nload &y"))
        assert data_lines(table) == [
            "x,\tdec 5",
            "y,\tdec 0",
            "c_5,\tdec 5",
            "y_addr,\tdec 2",
        ]


class TestEmitProgram:
    """Test complete program output."""

    def test_without_prologue(self):
        program = program_for("let $x = $5\nadd $x\nhalt")
        assert emit_program(program) == "hex 0\nx,\tdec 5\nc_5,\tdec 5\nadd x\nhalt\n"

    def test_with_prologue(self):
        program = program_for("let $x = $5\nadd $x\nhalt")
        assert emit_program(program, entry_label="main") == (
            "jump main\n"
            "x,\tdec 5\n"
            "c_5,\tdec 5\n"
            "main,\tadd x\n"
            "halt\n"
        )

    def test_prologue_jumps_to_defined_entry(self):
        program = program_for("let $x\nload $x\nmain: halt")
        assert emit_program(program, entry_label="main").splitlines() == [
            "jump main",
            "x,\tdec 0",
            "load x",
            "main,\thalt",
        ]

    def test_prologue_reuses_existing_first_label(self):
        program = program_for("let $x\nstart: load $x\njump start")
        assert emit_program(program, entry_label="main").splitlines() == [
            "jump start",
            "x,\tdec 0",
            "start,\tload x",
            "jump start",
        ]

    def test_no_prologue_without_instructions(self):
        program = program_for("let $x = $1")
        assert emit_program(program, entry_label="main") == "hex 0\nx,\tdec 1\nc_1,\tdec 1\n"

    def test_empty_program(self):
        assert emit_program(program_for("")) == ""

    def test_placeholder_keeps_table_addresses(self):
        """Without a prologue each data word still sits at its table address."""
        program = program_for("let $x\nlet $p = $0\nload &x\nhalt")
        lines = emit_program(program).splitlines()
        assert lines[0] == "hex 0"
        for variable in program.table:
            assert lines[variable.address].startswith(f"{variable.native_name},\t")
        x_line = lines.index("x,\tdec 0")
        assert lines[program.table["x:addr"].address] == f"x_addr,\tdec {x_line}"

    def test_no_placeholder_without_data(self):
        assert emit_program(program_for("halt")) == "halt\n"

    def test_label_on_first_expanded_line(self):
        program = program_for("let $a\nlet $b\nloop: add $a $b\njump loop")
        assert emit_program(program).splitlines()[3:] == [
            "loop,\tload b",
            "add a",
            "store a",
            "jump loop",
        ]

    def test_label_on_offset_idiom(self):
        program = program_for("let $p\nlet $i\nnext: load @p[$i]")
        lines = emit_program(program).splitlines()
        assert "next,\tstore temp_acc" in lines


# =============================================================================
# Runtime Linking
# =============================================================================

class TestRuntimeLinking:
    """Test that subtract helpers are appended only when called."""

    def test_no_helpers_by_default(self):
        text = emit_program(program_for("let $p\nload @p\nhalt"))
        assert "subti" not in text

    def test_pointer_subtract_links_subti(self):
        text = emit_program(program_for("let $p\nsubt @p\nhalt"))
        assert text.endswith(
            "halt\n"
            "subti,\thex 0\n"
            "store subti_rhs\n"
            "load temp_acc\n"
            "subt subti_rhs\n"
            "jumpi subti\n"
            "subti_rhs,\tdec 0\n"
        )
        assert "subtio" not in text

    def test_offset_subtract_links_subtio(self):
        text = emit_program(program_for("let $p\nsubt @p[$1]\nhalt"))
        lines = text.splitlines()
        assert "subtio,\thex 0" in lines
        assert "subti,\thex 0" not in lines
        assert lines[-1] == "subti_rhs,\tdec 0"

    def test_both_helpers_linked_once(self):
        source = "let $p\nsubt @p\nsubt @p\nsubt @p[$1]\nsubt @p[$2]\nhalt"
        lines = emit_program(program_for(source)).splitlines()
        assert lines.count("subti,\thex 0") == 1
        assert lines.count("subtio,\thex 0") == 1
        assert lines.count("subti_rhs,\tdec 0") == 1
        assert lines.index("subti,\thex 0") < lines.index("subtio,\thex 0")

    def test_link_runtime_disabled(self):
        text = emit_program(program_for("let $p\nsubt @p\nhalt"), link_runtime=False)
        assert "jns subti" in text
        assert "subti," not in text

    def test_required_routines(self):
        program = program_for("let $p\nsubt @p[$1]\nsubt @p")
        assert required_routines(program.instructions) == [SUBTI_ROUTINE, SUBTIO_ROUTINE]

    def test_runtime_lines_empty(self):
        assert runtime_lines([]) == []


# =============================================================================
# Symbol Listing
# =============================================================================

class TestSymbolListing:
    """Test the symbol table listing."""

    def test_listing(self):
        table = build_symbol_table(read_source("let const $k = $3\nlet $x\nload &x"))
        lines = format_symbol_table(table).splitlines()
        assert lines[0] == "# Symbol table"
        rows = [line.split() for line in lines[2:]]
        assert rows == [
            ["k", "$001", "3", "declared", "const"],
            ["x", "$002", "0", "declared"],
            ["c_3", "$003", "3", "numeral"],
            ["x_addr", "$004", "2", "address"],
        ]

    def test_listing_reserved(self):
        table = build_symbol_table(read_source("let $p\nload @p[$1]"))
        last = format_symbol_table(table).splitlines()[-1].split()
        assert last == ["temp_addr", "$004", "0", "reserved"]
