"""
Symbol Table
============

Append-only registry of program variables with deterministic address
assignment.

Address Assignment
------------------
Addresses start at 1 (address 0 is reserved for the entry jump) and grow
by one per entry in creation order. Once assigned, an address never
changes and no entry is ever removed.

Entry Kinds
-----------
| Kind      | Canonical name | Native name | Created by                 |
|-----------|----------------|-------------|----------------------------|
| DECLARED  | total          | total       | `let $total`               |
| NUMERAL   | :5             | c_5         | any `$5` in the source     |
| ADDRESS   | total:addr     | total_addr  | any `&total` in the source |
| RESERVED  | temp_acc       | temp_acc    | offset / indirect subtract |

Reservation Keys
----------------
The implicit entries are materialised lazily under fixed keys:
numerals under `:<value>`, address shadows under `<name>:addr`, and the
two scratch words under RESERVED_NAMES. Looking a key up again returns
the existing entry instead of allocating a new address.

After the declaration pass the table is frozen and becomes read-only.
"""

from dataclasses import dataclass
from enum import Enum, auto
from typing import Iterator, Optional
import difflib
import logging

from marie_sdk.errors import (
    ConstantConflictError,
    DuplicateDeclarationError,
    SourceLocation,
)
from marie_sdk.isa import (
    ADDRESS_SUFFIX,
    CONSTANT_PREFIX,
    FIRST_VARIABLE_ADDRESS,
)
from marie_sdk.compiler.patterns import ADDRESS_SHADOW_SUFFIX, NUMERAL_PREFIX

logger = logging.getLogger(__name__)


TEMP_ACC = "temp_acc"
TEMP_ADDR = "temp_addr"

# Scratch words used by offset addressing and indirect subtract
RESERVED_NAMES = (TEMP_ACC, TEMP_ADDR)


class VariableKind(Enum):
    """How a table entry came into existence."""
    DECLARED = auto()
    NUMERAL = auto()
    ADDRESS = auto()
    RESERVED = auto()


def native_name(canonical_name: str) -> str:
    """
    Name used for a variable in the emitted program text.

    Canonical names may contain ':' which is not valid in native labels.
    """
    if canonical_name.startswith(NUMERAL_PREFIX):
        return CONSTANT_PREFIX + canonical_name[len(NUMERAL_PREFIX):]
    if canonical_name.endswith(ADDRESS_SHADOW_SUFFIX):
        return canonical_name[: -len(ADDRESS_SHADOW_SUFFIX)] + ADDRESS_SUFFIX
    return canonical_name


@dataclass(frozen=True)
class Variable:
    """
    One data word of the program.

    Attributes:
        canonical_name: Unique key in the table
        default_value: Initial value (signed 16-bit)
        is_constant: True for `let const` and pooled constants
        address: Assigned word address (never 0)
        kind: Origin of the entry
        location: Where the entry was declared or first used
    """
    canonical_name: str
    default_value: int
    is_constant: bool
    address: int
    kind: VariableKind = VariableKind.DECLARED
    location: Optional[SourceLocation] = None

    @property
    def native_name(self) -> str:
        return native_name(self.canonical_name)


class SymbolTable:
    """
    Ordered, append-only collection of Variables.

    Usage:
        table = SymbolTable()
        x = table.declare("x", 5)
        five = table.lookup_or_create_constant(":5", 5)
        table.freeze()
    """

    def __init__(self):
        self._variables: list[Variable] = []
        self._by_name: dict[str, Variable] = {}
        self._by_native_name: dict[str, Variable] = {}
        self._frozen = False

    # =========================================================================
    # Container Protocol
    # =========================================================================

    def __iter__(self) -> Iterator[Variable]:
        return iter(self._variables)

    def __len__(self) -> int:
        return len(self._variables)

    def __contains__(self, name: str) -> bool:
        return name in self._by_name

    def __getitem__(self, name: str) -> Variable:
        return self._by_name[name]

    @property
    def frozen(self) -> bool:
        return self._frozen

    @property
    def variables(self) -> tuple[Variable, ...]:
        return tuple(self._variables)

    def freeze(self) -> None:
        """Make the table read-only."""
        self._frozen = True

    # =========================================================================
    # Creation
    # =========================================================================

    def _next_address(self) -> int:
        if not self._variables:
            return FIRST_VARIABLE_ADDRESS
        return max(v.address for v in self._variables) + 1

    def declare(
        self,
        name: str,
        default_value: int = 0,
        is_constant: bool = False,
        kind: VariableKind = VariableKind.DECLARED,
        location: Optional[SourceLocation] = None,
        source_line: Optional[str] = None,
    ) -> Variable:
        """
        Append a new variable at the next free address.

        Raises:
            DuplicateDeclarationError: If the name (or its native name) exists
            RuntimeError: If the table is frozen
        """
        if self._frozen:
            raise RuntimeError(f"symbol table is frozen, cannot declare '{name}'")

        existing = self._by_name.get(name)
        if existing is not None:
            raise DuplicateDeclarationError(
                name,
                location=location,
                original_location=existing.location,
                source_line=source_line,
            )

        clash = self._by_native_name.get(native_name(name))
        if clash is not None:
            raise DuplicateDeclarationError(
                name,
                location=location,
                source_line=source_line,
                hint=f"'{clash.canonical_name}' is already emitted as "
                     f"'{clash.native_name}'",
            )

        variable = Variable(
            canonical_name=name,
            default_value=default_value,
            is_constant=is_constant,
            address=self._next_address(),
            kind=kind,
            location=location,
        )
        self._variables.append(variable)
        self._by_name[name] = variable
        self._by_native_name[variable.native_name] = variable
        logger.debug(
            f"Declared {kind.name.lower()} '{name}' = {default_value} "
            f"at address {variable.address}"
        )
        return variable

    def lookup_or_create_constant(
        self,
        name: str,
        value: int,
        kind: VariableKind = VariableKind.NUMERAL,
        location: Optional[SourceLocation] = None,
        source_line: Optional[str] = None,
    ) -> Variable:
        """
        Return the pooled constant called name, creating it if needed.

        Raises:
            ConstantConflictError: If name exists but is not a constant
                holding value
        """
        existing = self._by_name.get(name)
        if existing is None:
            return self.declare(
                name, value, is_constant=True, kind=kind,
                location=location, source_line=source_line,
            )
        if not existing.is_constant or existing.default_value != value:
            raise ConstantConflictError(
                name,
                existing.default_value,
                value,
                location=location,
                source_line=source_line,
            )
        return existing

    def reserve(self, name: str) -> Variable:
        """
        Return the scratch word called name, creating it on first use.
        """
        existing = self._by_name.get(name)
        if existing is not None:
            return existing
        return self.declare(name, 0, is_constant=False, kind=VariableKind.RESERVED)

    # =========================================================================
    # Queries
    # =========================================================================

    def lookup(self, name: str) -> Optional[Variable]:
        """Find a variable by canonical name without creating it."""
        return self._by_name.get(name)

    def lookup_native(self, name: str) -> Optional[Variable]:
        """Find a variable by the name it has in the emitted text."""
        return self._by_native_name.get(name)

    def similar_names(self, name: str, limit: int = 3) -> list[str]:
        """Declared names close to name, for 'did you mean' hints."""
        declared = [
            v.canonical_name for v in self._variables
            if v.kind is VariableKind.DECLARED
        ]
        return difflib.get_close_matches(name, declared, n=limit)

    def has_reserved(self) -> bool:
        """Return True once the scratch words have been reserved."""
        return all(name in self._by_name for name in RESERVED_NAMES)
