# =============================================================================
# test_compiler.py - Macro Compiler Integration Tests
# =============================================================================
# End-to-end tests from macro source to MARIE assembly text.
#
# Test coverage includes:
#   - Complete programs with every addressing mode
#   - Error reporting with file, line and column
#   - CompilerOptions and environment configuration
#   - File input and output
# =============================================================================

from pathlib import Path

import pytest

from marie_sdk import (
    CompilerOptions,
    MacroCompiler,
    compile_file,
    compile_source,
)
from marie_sdk.compiler.instructions import NativeInstruction, Reference
from marie_sdk.errors import (
    CompilerError,
    InvalidInstructionArityError,
    LabelError,
    MarieError,
    UndeclaredVariableError,
    UnknownInstructionError,
)
from marie_sdk.isa import Opcode


PLAIN = CompilerOptions(entry_label=None)


# =============================================================================
# Full Pipeline
# =============================================================================

class TestFullPipeline:
    """Test complete compilations."""

    def test_worked_example(self):
        """let $x = $5 / add $x $x / halt."""
        result = MacroCompiler(PLAIN).compile_source("let $x = $5\nadd $x $x\nhalt\n")
        table = result.table
        assert (table["x"].address, table["x"].default_value) == (1, 5)
        assert (table[":5"].address, table[":5"].default_value) == (2, 5)
        assert result.program.instructions == [
            NativeInstruction(Opcode.LOAD, Reference("x")),
            NativeInstruction(Opcode.ADD, Reference("x")),
            NativeInstruction(Opcode.STORE, Reference("x")),
            NativeInstruction(Opcode.HALT),
        ]

    def test_single_operand_accumulate(self):
        result = MacroCompiler(PLAIN).compile_source("let $x = $5\nadd $x\nhalt\n")
        assert result.program.instructions == [
            NativeInstruction(Opcode.ADD, Reference("x")),
            NativeInstruction(Opcode.HALT),
        ]

    def test_default_output(self):
        assert compile_source("let $x = $5\nadd $x $x\nhalt\n") == (
            "jump main\n"
            "x,\tdec 5\n"
            "c_5,\tdec 5\n"
            "main,\tload x\n"
            "add x\n"
            "store x\n"
            "halt\n"
        )

    def test_pointer_subtract_program(self):
        source = """
            let $n = $3
            let $p
            load &n       // p := &n
            store $p
            subt @p       // AC := AC - n
            halt
        """
        assert compile_source(source).splitlines() == [
            "jump main",
            "n,\tdec 3",
            "p,\tdec 0",
            "c_3,\tdec 3",
            "n_addr,\tdec 1",
            "temp_acc,\tdec 0",
            "main,\tload n_addr",
            "store p",
            "store temp_acc",
            "loadi p",
            "jns subti",
            "halt",
            "subti,\thex 0",
            "store subti_rhs",
            "load temp_acc",
            "subt subti_rhs",
            "jumpi subti",
            "subti_rhs,\tdec 0",
        ]

    def test_countdown_loop(self):
        source = """
            // count down from 10
            let $count = $10
            loop: subt $count $count $1
            load $count
            output
            skipcond 400
            jump loop
            halt
        """
        assert compile_source(source, options=PLAIN).splitlines() == [
            "hex 0",
            "count,\tdec 10",
            "c_1,\tdec 1",
            "c_10,\tdec 10",
            "loop,\tload count",
            "subt c_1",
            "store count",
            "load count",
            "output",
            "skipcond 400",
            "jump loop",
            "halt",
        ]

    def test_array_sum(self):
        source = """
            let $arr
            let $i = $2
            let $sum
            load $sum
            add @arr[$i]
            store $sum
            halt
        """
        lines = compile_source(source, options=PLAIN).splitlines()
        assert lines[lines.index("load sum") + 1:lines.index("halt")] == [
            "store temp_acc",
            "load arr",
            "add i",
            "store temp_addr",
            "addi temp_addr",
            "store sum",
        ]

    def test_result_metadata(self):
        result = MacroCompiler().compile_source("// x\nlet $x\n\nhalt\n", "prog.mac")
        assert result.filename == "prog.mac"
        assert result.line_count == 2
        assert result.output.startswith("jump main\n")

    def test_ignored_tokens_do_not_fail(self):
        decls = "let $a\nlet $b\nlet $c\n"
        noisy = compile_source(decls + "add $a $b $c @@\nhalt $\n")
        assert noisy == compile_source(decls + "add $a $b $c\nhalt\n")

    def test_address_of_without_prologue(self):
        """`&x` holds the line position of x's data word."""
        source = "let $x\nlet $p = $0\nload &x\nhalt\n"
        lines = compile_source(source, options=PLAIN).splitlines()
        x_line = lines.index("x,\tdec 0")
        assert f"x_addr,\tdec {x_line}" in lines

    def test_jump_to_entry_label(self):
        assert compile_source("halt\njump main\n") == "jump main\nmain,\thalt\njump main\n"


# =============================================================================
# Error Reporting
# =============================================================================

class TestErrors:
    """Test that failures abort with a located diagnostic."""

    def test_undeclared_reports_location(self):
        with pytest.raises(UndeclaredVariableError) as exc_info:
            compile_source("let $x\nadd $y\n", "prog.mac")
        message = str(exc_info.value)
        assert message.startswith("prog.mac:2:5: error: undeclared variable 'y'")
        assert "    add $y" in message
        assert "        ^" in message

    def test_all_errors_are_marie_errors(self):
        with pytest.raises(MarieError):
            compile_source("mov $x")

    def test_unknown_instruction(self):
        with pytest.raises(UnknownInstructionError) as exc_info:
            compile_source("let $x\nvar $x\n")
        assert exc_info.value.line_number == 2

    def test_first_error_wins(self):
        """Declaration errors are reported before lowering errors."""
        with pytest.raises(UndeclaredVariableError):
            compile_source("bogus\nload $missing\n")

    def test_strict_operands(self):
        source = "let $a\nadd $a $a $a $a\n"
        assert compile_source(source)
        with pytest.raises(InvalidInstructionArityError):
            compile_source(source, options=CompilerOptions(strict_operands=True))

    def test_entry_label_collides_with_variable(self):
        with pytest.raises(LabelError) as exc_info:
            compile_source("let $main\nload $main\n")
        assert "main" in str(exc_info.value)

    def test_entry_label_collision_avoided_without_prologue(self):
        assert compile_source("let $main\nload $main\n", options=PLAIN) == (
            "hex 0\nmain,\tdec 0\nload main\n"
        )

    def test_other_entry_label(self):
        text = compile_source("let $main\nload $main\n", options=CompilerOptions(entry_label="start"))
        assert text.splitlines()[0] == "jump start"

    def test_compiler_error_is_marie_error(self):
        assert issubclass(CompilerError, MarieError)

    def test_undefined_jump_target(self):
        with pytest.raises(LabelError) as exc_info:
            compile_source("let $x\nload $x\njump x\n", "prog.mac")
        assert str(exc_info.value).startswith("prog.mac:3:6: error: label 'x' is not defined")


# =============================================================================
# Options
# =============================================================================

class TestCompilerOptions:
    """Test option defaults, validation and environment overrides."""

    def test_defaults(self):
        options = CompilerOptions()
        assert options.strict_operands is False
        assert options.entry_label == "main"
        assert options.link_runtime is True

    def test_empty_entry_disables_prologue(self):
        assert CompilerOptions(entry_label="").entry_label is None

    def test_invalid_entry(self):
        with pytest.raises(ValueError):
            CompilerOptions(entry_label="2start")

    def test_link_runtime_off(self):
        text = compile_source("let $p\nsubt @p\n", options=CompilerOptions(link_runtime=False))
        assert "jns subti" in text
        assert "subti," not in text

    def test_from_env_defaults(self, monkeypatch):
        for name in ("MARIE_STRICT_OPERANDS", "MARIE_ENTRY_LABEL", "MARIE_LINK_RUNTIME"):
            monkeypatch.delenv(name, raising=False)
        assert CompilerOptions.from_env() == CompilerOptions()

    def test_from_env(self, monkeypatch):
        monkeypatch.setenv("MARIE_STRICT_OPERANDS", "yes")
        monkeypatch.setenv("MARIE_ENTRY_LABEL", "start")
        monkeypatch.setenv("MARIE_LINK_RUNTIME", "0")
        options = CompilerOptions.from_env()
        assert options.strict_operands is True
        assert options.entry_label == "start"
        assert options.link_runtime is False

    def test_from_env_empty_entry(self, monkeypatch):
        monkeypatch.setenv("MARIE_ENTRY_LABEL", "")
        assert CompilerOptions.from_env().entry_label is None

    def test_from_env_ignores_invalid_values(self, monkeypatch):
        monkeypatch.setenv("MARIE_STRICT_OPERANDS", "maybe")
        monkeypatch.setenv("MARIE_ENTRY_LABEL", "not a label")
        monkeypatch.setenv("MARIE_LINK_RUNTIME", "sometimes")
        assert CompilerOptions.from_env() == CompilerOptions()


# =============================================================================
# Files
# =============================================================================

class TestFiles:
    """Test compiling from and to files."""

    def test_compile_file(self, tmp_path):
        source = tmp_path / "prog.mac"
        source.write_text("let $x\nload $x\nhalt\n", encoding="utf-8")
        assert compile_file(source) == "jump main\nx,\tdec 0\nmain,\tload x\nhalt\n"

    def test_compile_file_writes_output(self, tmp_path):
        source = tmp_path / "prog.mac"
        source.write_text("halt\n", encoding="utf-8")
        target = tmp_path / "prog.mas"
        text = compile_file(source, target, options=PLAIN)
        assert target.read_text(encoding="utf-8") == text == "halt\n"

    def test_no_output_on_error(self, tmp_path):
        source = tmp_path / "bad.mac"
        source.write_text("load $x\n", encoding="utf-8")
        target = tmp_path / "bad.mas"
        with pytest.raises(UndeclaredVariableError) as exc_info:
            compile_file(source, target)
        assert not target.exists()
        assert str(exc_info.value).startswith(f"{source}:1:6:")

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            compile_file(tmp_path / "missing.mac")


# =============================================================================
# Example Programs
# =============================================================================

EXAMPLES_DIR = Path(__file__).parent.parent / "examples"


class TestExamples:
    """Test that the shipped example programs compile."""

    @pytest.mark.parametrize("name,first", [
        ("countdown.mac", "jump loop"),
        ("table_walk.mac", "jump main"),
    ])
    def test_example_compiles(self, name, first):
        result = MacroCompiler().compile_file(EXAMPLES_DIR / name)
        assert result.output.splitlines()[0] == first

    def test_table_walk_layout(self):
        result = MacroCompiler().compile_file(EXAMPLES_DIR / "table_walk.mac")
        table = result.table
        assert [table[n].address for n in ("data", "data2", "data3")] == [1, 2, 3]
        assert table["data:addr"].default_value == 1
        assert table.has_reserved()
