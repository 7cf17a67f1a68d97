"""
Declaration Pass
================

Builds the frozen SymbolTable in a single forward scan over the source.

What the Scan Does
------------------
1. **Declaration lines** (`let [const] $name [= $value]`) are validated
   and appended to the table in source order. A second declaration of
   the same name is fatal however far apart the two lines are.
2. **Every other line** is scanned for the operands lowering will read;
   tokens it ignores (a fourth add operand, text after `halt`) are skipped.
   Numerals and `&name` forms are remembered for pooling; `$name` /
   `@name` uses are remembered for the existence check; offset forms
   contribute their base pointer and index separately.

After the Scan
--------------
3. Numerals are pooled in ascending value order, then address shadows in
   first-use order, then the scratch words: `temp_acc` for a subtract
   through a pointer, `temp_acc` and `temp_addr` for any offset form.
4. Every recorded `$name` / `@name` use is checked against the table.
   Because this happens after the whole file has been seen, a use may
   appear before its `let`.
5. The table is frozen.

Resulting Table Order
---------------------
    explicit declarations  (source order)
    numeral constants      (ascending, deduplicated)
    address shadows        (first-use order)
    temp_acc, temp_addr    (when needed)

Copyright (c) 2025-2026 Hugo José Pinto & Contributors
"""

from dataclasses import dataclass
from typing import Iterable
import logging
import re

from marie_sdk.errors import (
    LabelError,
    MalformedDeclarationError,
    SourceLocation,
    UndeclaredVariableError,
)
from marie_sdk.compiler.patterns import (
    Address,
    Direct,
    Numeral,
    OffsetByNumeral,
    OffsetByVar,
    Pointer,
    NUMERAL_PATTERN,
    DIRECT_PATTERN,
    NUMERAL_RE,
    address_shadow_name,
    classify,
    is_reference_token,
    numeral_name,
    parse_numeral,
)
from marie_sdk.compiler.lowering import Keyword, arithmetic_operand, reference_operands
from marie_sdk.compiler.runtime import RUNTIME_SYMBOLS, SUBTI_ROUTINE
from marie_sdk.compiler.source import SourceLine, split_label
from marie_sdk.compiler.symbols import (
    RESERVED_NAMES,
    SymbolTable,
    VariableKind,
)

logger = logging.getLogger(__name__)


LET_KEYWORD = "let"

LET_RE = re.compile(
    rf"let\s+(?P<const>const\s+)?(?P<name>{DIRECT_PATTERN})"
    rf"(?:\s*=\s*(?P<value>{NUMERAL_PATTERN}|{DIRECT_PATTERN}))?",
    re.ASCII | re.IGNORECASE,
)


@dataclass(frozen=True)
class _Use:
    """One occurrence of a name in the source."""
    name: str
    token: str
    line: SourceLine

    @property
    def location(self) -> SourceLocation:
        return self.line.location(self.token)


def is_declaration(tokens: list[str]) -> bool:
    """Return True if the tokens form a `let` line."""
    return bool(tokens) and tokens[0].lower() == LET_KEYWORD


class DeclarationPass:
    """
    Single-use builder for the program's SymbolTable.

    Usage:
        table = DeclarationPass().run(lines)
    """

    def __init__(self):
        self.table = SymbolTable()
        self._numerals: dict[int, _Use] = {}
        self._addresses: dict[str, _Use] = {}
        self._named_uses: list[_Use] = []
        self._scratch: set[str] = set()

    def run(self, lines: Iterable[SourceLine]) -> SymbolTable:
        """
        Scan all lines and return the frozen table.

        Raises:
            CompilerError: On the first invalid, duplicate or missing name
        """
        for line in lines:
            label, tokens = split_label(line)
            if not tokens:
                continue
            if is_declaration(tokens):
                if label is not None:
                    raise LabelError(
                        label,
                        "cannot be attached to a declaration",
                        location=line.location(),
                        source_line=line.text,
                    )
                self._declare(line)
            else:
                self._collect_uses(line, tokens)

        self._pool_numerals()
        self._pool_addresses()
        for name in RESERVED_NAMES:
            if name in self._scratch:
                self.table.reserve(name)
        self._check_uses()

        self.table.freeze()
        logger.info(
            f"Symbol table built: {len(self.table)} variables "
            f"({len(self._numerals)} numerals, {len(self._addresses)} address shadows)"
        )
        return self.table

    # =========================================================================
    # Declarations
    # =========================================================================

    def _declare(self, line: SourceLine) -> None:
        """Validate a `let` line and append its variable to the table."""
        match = LET_RE.fullmatch(line.text)
        if not match:
            raise MalformedDeclarationError(
                "malformed declaration",
                location=line.location(),
                source_line=line.text,
            )

        token = match.group("name")
        name = token[1:]
        if name in RESERVED_NAMES:
            raise MalformedDeclarationError(
                f"'{name}' is reserved",
                location=line.location(token),
                source_line=line.text,
                hint=f"{', '.join(RESERVED_NAMES)} are scratch words managed by the compiler",
            )
        if name in RUNTIME_SYMBOLS:
            raise MalformedDeclarationError(
                f"'{name}' is reserved",
                location=line.location(token),
                source_line=line.text,
                hint="this name is used by the runtime subtract helpers",
            )

        default_value = 0
        value_token = match.group("value")
        if value_token is not None:
            default_value = self._initial_value(line, value_token)

        self.table.declare(
            name,
            default_value,
            is_constant=match.group("const") is not None,
            location=line.location(token),
            source_line=line.text,
        )

    def _initial_value(self, line: SourceLine, token: str) -> int:
        """Resolve the right-hand side of `let $x = ...`."""
        if NUMERAL_RE.fullmatch(token):
            value = parse_numeral(token, line.location(token), line.text)
            self._numerals.setdefault(value, _Use(numeral_name(value), token, line))
            return value

        source = self.table.lookup(token[1:])
        if source is None:
            raise UndeclaredVariableError(
                token[1:],
                location=line.location(token),
                source_line=line.text,
                hint="a variable used as an initial value must be declared on an earlier line",
            )
        return source.default_value

    # =========================================================================
    # Uses
    # =========================================================================

    def _collect_uses(self, line: SourceLine, tokens: list[str]) -> None:
        """Record the references lowering will resolve on a non-declaration line."""
        keyword = tokens[0].lower()
        operands = reference_operands(keyword, tokens[1:])
        subtracted = None
        if keyword == Keyword.SUBT.value and operands:
            subtracted = arithmetic_operand(operands)

        for token in operands:
            if not is_reference_token(token):
                continue
            kind = classify(token, line.location(token), line.text)

            if isinstance(kind, Numeral):
                self._numerals.setdefault(kind.value, _Use(kind.canonical_name, token, line))
            elif isinstance(kind, (Direct, Pointer)):
                self._named_uses.append(_Use(kind.name, token, line))
                if isinstance(kind, Pointer) and token == subtracted:
                    self._scratch.update(SUBTI_ROUTINE.scratch)
            elif isinstance(kind, Address):
                self._addresses.setdefault(kind.name, _Use(kind.name, token, line))
            elif isinstance(kind, OffsetByVar):
                self._named_uses.append(_Use(kind.base, token, line))
                self._named_uses.append(_Use(kind.index_name, token, line))
                self._scratch.update(RESERVED_NAMES)
            elif isinstance(kind, OffsetByNumeral):
                self._named_uses.append(_Use(kind.base, token, line))
                self._numerals.setdefault(
                    kind.index_value, _Use(kind.index_canonical_name, token, line)
                )
                self._scratch.update(RESERVED_NAMES)

    def _pool_numerals(self) -> None:
        for value in sorted(self._numerals):
            use = self._numerals[value]
            self.table.lookup_or_create_constant(
                numeral_name(value),
                value,
                location=use.location,
                source_line=use.line.text,
            )

    def _pool_addresses(self) -> None:
        for name, use in self._addresses.items():
            target = self.table.lookup(name)
            if target is None or target.kind is not VariableKind.DECLARED:
                raise UndeclaredVariableError(
                    name,
                    location=use.location,
                    source_line=use.line.text,
                    similar_symbols=self.table.similar_names(name),
                )
            self.table.lookup_or_create_constant(
                address_shadow_name(name),
                target.address,
                kind=VariableKind.ADDRESS,
                location=use.location,
                source_line=use.line.text,
            )

    def _check_uses(self) -> None:
        for use in self._named_uses:
            if self.table.lookup(use.name) is None:
                raise UndeclaredVariableError(
                    use.name,
                    location=use.location,
                    source_line=use.line.text,
                    similar_symbols=self.table.similar_names(use.name),
                )


def build_symbol_table(lines: Iterable[SourceLine]) -> SymbolTable:
    """Run the declaration pass over lines and return the frozen table."""
    return DeclarationPass().run(lines)
