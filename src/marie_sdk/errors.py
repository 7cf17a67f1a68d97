"""
MARIE SDK Error Hierarchy
=========================

This module defines the exception hierarchy for the MARIE macro compiler.
All exceptions inherit from MarieError, allowing callers to catch every
SDK-related error with a single except clause if desired.

Exception Hierarchy
-------------------
MarieError (base)
└── CompilerError (compiler-related, carries source location)
    ├── InvalidReferenceError - token does not match any reference shape
    ├── DuplicateDeclarationError - variable declared more than once
    ├── UndeclaredVariableError - variable used without a `let`
    ├── ConstantConflictError - pooled constant with a mismatched value
    ├── InvalidInstructionArityError - wrong number of operands
    ├── MalformedDeclarationError - `let` line does not follow the grammar
    ├── UnknownInstructionError - leading keyword outside the instruction set
    └── LabelError - duplicate, colliding or dangling label

Design Philosophy
-----------------
Every compiler error is fatal: the pipeline stops at the first one and
produces no output. Each exception captures the line number and the
literal source text, so a single diagnostic is enough to locate the
problem.

Error messages follow this format:
    filename:line:column: error: description
        source_line_text
        ^ (pointer to the offending token)
    hint: suggestion for fixing (when available)
"""

from dataclasses import dataclass
from typing import Optional


# =============================================================================
# Base Exception Class
# =============================================================================

class MarieError(Exception):
    """
    Base exception for all MARIE SDK errors.

    All exceptions in the SDK inherit from this class, allowing callers
    to catch all SDK-related errors with a single except clause:

        try:
            compile_file("program.mac")
        except MarieError as e:
            print(f"Error: {e}")
    """
    pass


# =============================================================================
# Source Location Tracking
# =============================================================================

@dataclass(frozen=True)
class SourceLocation:
    """
    Represents a location in source code for error reporting.

    Attributes:
        filename: Name of the source file (or "<input>" for string input)
        line: Line number (1-indexed)
        column: Column number (1-indexed, 0 when unknown)
    """
    filename: str
    line: int
    column: int = 0

    def __str__(self) -> str:
        """Format as 'filename:line:column' for error messages."""
        if self.column > 0:
            return f"{self.filename}:{self.line}:{self.column}"
        return f"{self.filename}:{self.line}"


# =============================================================================
# Compiler Exceptions
# =============================================================================

class CompilerError(MarieError):
    """
    Base exception for all compiler errors.

    Provides common formatting for error messages including source
    location tracking and optional hint messages.

    Attributes:
        message: The error description
        location: Where in the source the error occurred (optional)
        hint: A suggestion for fixing the error (optional)
        source_line: The literal source text at the error location (optional)
    """

    def __init__(
        self,
        message: str,
        location: Optional[SourceLocation] = None,
        hint: Optional[str] = None,
        source_line: Optional[str] = None,
    ):
        self.message = message
        self.location = location
        self.hint = hint
        self.source_line = source_line
        super().__init__(self._format_message())

    @property
    def line_number(self) -> Optional[int]:
        """Line number of the error, if known."""
        return self.location.line if self.location else None

    def _format_message(self) -> str:
        """
        Format the error message with location, source context, and hint.

        Example output:
            sum.mac:7:5: error: undeclared variable 'totl'
                add $totl $x
                    ^
            hint: add 'let $totl' somewhere in the file
        """
        parts = []

        if self.location:
            parts.append(f"{self.location}: error: {self.message}")
        else:
            parts.append(f"error: {self.message}")

        if self.source_line is not None and self.location is not None:
            parts.append(f"    {self.source_line}")
            if self.location.column > 0:
                padding = " " * (4 + self.location.column - 1)
                parts.append(f"{padding}^")

        if self.hint:
            parts.append(f"hint: {self.hint}")

        return "\n".join(parts)


class InvalidReferenceError(CompilerError):
    """
    Token does not have the shape of any known reference.

    Raised by the pattern classifier for tokens such as `$`, `#x`,
    `@1abc` or `@p[x]`, and for numerals outside the signed 16-bit range.
    """

    def __init__(
        self,
        token: str,
        location: Optional[SourceLocation] = None,
        hint: Optional[str] = None,
        source_line: Optional[str] = None,
    ):
        self.token = token
        super().__init__(
            f"invalid reference '{token}'",
            location=location,
            hint=hint,
            source_line=source_line,
        )


class DuplicateDeclarationError(CompilerError):
    """
    Variable declared more than once.

    Includes the line of the first declaration when available.
    """

    def __init__(
        self,
        symbol: str,
        location: Optional[SourceLocation] = None,
        original_location: Optional[SourceLocation] = None,
        source_line: Optional[str] = None,
        hint: Optional[str] = None,
    ):
        self.symbol = symbol
        self.original_location = original_location

        if not hint and original_location:
            hint = f"'{symbol}' was first declared at {original_location}"

        super().__init__(
            f"duplicate declaration of '{symbol}'",
            location=location,
            hint=hint,
            source_line=source_line,
        )


class UndeclaredVariableError(CompilerError):
    """
    Reference to a variable that no `let` line declares.

    Suggests similarly-named variables when some exist, to catch typos.
    """

    def __init__(
        self,
        symbol: str,
        location: Optional[SourceLocation] = None,
        source_line: Optional[str] = None,
        similar_symbols: Optional[list[str]] = None,
        hint: Optional[str] = None,
    ):
        self.symbol = symbol
        self.similar_symbols = similar_symbols or []

        if not hint:
            if self.similar_symbols:
                suggestions = ", ".join(f"'{s}'" for s in self.similar_symbols[:3])
                hint = f"did you mean {suggestions}?"
            else:
                hint = f"add 'let ${symbol}' somewhere in the file"

        super().__init__(
            f"undeclared variable '{symbol}'",
            location=location,
            hint=hint,
            source_line=source_line,
        )


class ConstantConflictError(CompilerError):
    """
    An implicit constant pool entry exists with a different value.

    Pooled constants are keyed by canonical name; the same name must
    always denote the same value.
    """

    def __init__(
        self,
        symbol: str,
        existing_value: int,
        requested_value: int,
        location: Optional[SourceLocation] = None,
        source_line: Optional[str] = None,
    ):
        self.symbol = symbol
        self.existing_value = existing_value
        self.requested_value = requested_value
        super().__init__(
            f"constant '{symbol}' already holds {existing_value}, "
            f"cannot pool it as {requested_value}",
            location=location,
            source_line=source_line,
        )


class InvalidInstructionArityError(CompilerError):
    """
    Instruction has the wrong number of operands.

    Example:
        add          ; Error: add needs at least one operand
    """

    def __init__(
        self,
        mnemonic: str,
        operand_count: int,
        expected: str,
        location: Optional[SourceLocation] = None,
        source_line: Optional[str] = None,
    ):
        self.mnemonic = mnemonic
        self.operand_count = operand_count
        self.expected = expected
        super().__init__(
            f"'{mnemonic}' takes {expected}, got {operand_count}",
            location=location,
            source_line=source_line,
        )


class MalformedDeclarationError(CompilerError):
    """
    Declaration line does not follow `let [const] $name [= $value]`.
    """

    def __init__(
        self,
        message: str = "malformed declaration",
        location: Optional[SourceLocation] = None,
        source_line: Optional[str] = None,
        hint: Optional[str] = None,
    ):
        if hint is None:
            hint = "expected 'let [const] $name [= $value]'"
        super().__init__(
            message,
            location=location,
            hint=hint,
            source_line=source_line,
        )


class UnknownInstructionError(CompilerError):
    """
    Line starts with a keyword outside the instruction set.
    """

    def __init__(
        self,
        keyword: str,
        location: Optional[SourceLocation] = None,
        source_line: Optional[str] = None,
        valid_keywords: Optional[list[str]] = None,
    ):
        self.keyword = keyword
        hint = None
        if valid_keywords:
            hint = f"expected one of: {', '.join(valid_keywords)}"
        super().__init__(
            f"unknown instruction '{keyword}'",
            location=location,
            hint=hint,
            source_line=source_line,
        )


class LabelError(CompilerError):
    """
    Label defined twice, colliding with a variable, or attached to nothing.
    """

    def __init__(
        self,
        label: str,
        reason: str,
        location: Optional[SourceLocation] = None,
        source_line: Optional[str] = None,
        hint: Optional[str] = None,
    ):
        self.label = label
        self.reason = reason
        super().__init__(
            f"label '{label}' {reason}",
            location=location,
            hint=hint,
            source_line=source_line,
        )
