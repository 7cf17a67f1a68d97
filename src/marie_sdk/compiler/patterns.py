"""
Reference Pattern Classifier
============================

Decides what a reference token means from its lexical shape alone.

Reference Shapes
----------------
| Shape        | Example       | Kind             | Canonical name  |
|--------------|---------------|------------------|-----------------|
| $digits      | $1_000        | Numeral          | :1000           |
| $name        | $total        | Direct           | total           |
| @name        | @ptr          | Pointer          | ptr             |
| &name        | &total        | Address          | total:addr      |
| @name[$name] | @arr[$i]      | OffsetByVar      | arr (index i)   |
| @name[$N]    | @arr[$2]      | OffsetByNumeral  | arr (index :2)  |

Underscores in numerals are thousands separators and are ignored. The
canonical name of a numeral is derived from its value, so `$1000`,
`$1_000` and `$01000` all denote the same pooled constant.

All patterns are anchored: the whole token must match.
"""

from dataclasses import dataclass
from typing import Optional, Union
import re

from marie_sdk.errors import InvalidReferenceError, SourceLocation
from marie_sdk.isa import fits_word, WORD_MIN, WORD_MAX


# =============================================================================
# Token Grammar
# =============================================================================

NUMERAL_PATTERN = r"\$\d[\d_]*"
DIRECT_PATTERN = r"\$[A-Za-z]\w*"
POINTER_PATTERN = r"@[A-Za-z]\w*"
ADDRESS_PATTERN = r"&[A-Za-z]\w*"

NUMERAL_RE = re.compile(NUMERAL_PATTERN, re.ASCII)
DIRECT_RE = re.compile(DIRECT_PATTERN, re.ASCII)
POINTER_RE = re.compile(POINTER_PATTERN, re.ASCII)
ADDRESS_RE = re.compile(ADDRESS_PATTERN, re.ASCII)
OFFSET_RE = re.compile(
    rf"(?P<base>{POINTER_PATTERN})\[(?P<index>{NUMERAL_PATTERN}|{DIRECT_PATTERN})\]",
    re.ASCII,
)

# Characters that introduce a reference token
SIGILS = ("$", "@", "&")

ADDRESS_SHADOW_SUFFIX = ":addr"
NUMERAL_PREFIX = ":"


# =============================================================================
# Reference Kinds
# =============================================================================

@dataclass(frozen=True)
class Numeral:
    """Literal value, pooled as an implicit constant."""
    value: int

    @property
    def canonical_name(self) -> str:
        return numeral_name(self.value)


@dataclass(frozen=True)
class Direct:
    """Variable accessed at its own address."""
    name: str

    @property
    def canonical_name(self) -> str:
        return self.name


@dataclass(frozen=True)
class Pointer:
    """Variable whose value is the address of the operand."""
    name: str

    @property
    def canonical_name(self) -> str:
        return self.name


@dataclass(frozen=True)
class Address:
    """Address of a variable, materialised as its own constant."""
    name: str

    @property
    def canonical_name(self) -> str:
        return address_shadow_name(self.name)


@dataclass(frozen=True)
class OffsetByVar:
    """Base pointer plus the value of an index variable."""
    base: str
    index_name: str

    @property
    def canonical_name(self) -> str:
        return self.base

    @property
    def index_canonical_name(self) -> str:
        return self.index_name


@dataclass(frozen=True)
class OffsetByNumeral:
    """Base pointer plus a literal index (the literal is pooled)."""
    base: str
    index_value: int

    @property
    def canonical_name(self) -> str:
        return self.base

    @property
    def index_canonical_name(self) -> str:
        return numeral_name(self.index_value)


ReferenceKind = Union[Numeral, Direct, Pointer, Address, OffsetByVar, OffsetByNumeral]

OFFSET_KINDS = (OffsetByVar, OffsetByNumeral)


# =============================================================================
# Naming Helpers
# =============================================================================

def numeral_name(value: int) -> str:
    """Canonical (pool) name of a numeral: ':' followed by its value."""
    return f"{NUMERAL_PREFIX}{value}"


def address_shadow_name(name: str) -> str:
    """Canonical name of the constant holding the address of name."""
    return f"{name}{ADDRESS_SHADOW_SUFFIX}"


def is_reference_token(token: str) -> bool:
    """Return True if token starts with a reference sigil."""
    return token.startswith(SIGILS)


# =============================================================================
# Classification
# =============================================================================

def parse_numeral(
    token: str,
    location: Optional[SourceLocation] = None,
    source_line: Optional[str] = None,
) -> int:
    """
    Convert a numeral token (`$1_000`) to its integer value.

    Raises:
        InvalidReferenceError: If the value does not fit a signed 16-bit word
    """
    value = int(token[1:].replace("_", ""))
    if not fits_word(value):
        raise InvalidReferenceError(
            token,
            location=location,
            hint=f"numerals must be between {WORD_MIN} and {WORD_MAX}",
            source_line=source_line,
        )
    return value


def classify(
    token: str,
    location: Optional[SourceLocation] = None,
    source_line: Optional[str] = None,
) -> ReferenceKind:
    """
    Classify a reference token by its shape.

    The sigil selects Numeral, Direct, Pointer or Address; bracket syntax
    on a pointer selects one of the offset forms.

    Args:
        token: A single whitespace-free token
        location: Where the token occurs (for diagnostics)
        source_line: Literal source text (for diagnostics)

    Returns:
        Exactly one ReferenceKind

    Raises:
        InvalidReferenceError: If the token matches no shape
    """
    if NUMERAL_RE.fullmatch(token):
        return Numeral(parse_numeral(token, location, source_line))

    if DIRECT_RE.fullmatch(token):
        return Direct(token[1:])

    if POINTER_RE.fullmatch(token):
        return Pointer(token[1:])

    if ADDRESS_RE.fullmatch(token):
        return Address(token[1:])

    match = OFFSET_RE.fullmatch(token)
    if match:
        base = match.group("base")[1:]
        index = match.group("index")
        if NUMERAL_RE.fullmatch(index):
            return OffsetByNumeral(base, parse_numeral(index, location, source_line))
        return OffsetByVar(base, index[1:])

    raise InvalidReferenceError(
        token,
        location=location,
        hint=_hint_for(token),
        source_line=source_line,
    )


def _hint_for(token: str) -> str:
    """Pick a hint for a token that matched no reference shape."""
    if "[" in token and not token.startswith("@"):
        return "offsets are written '@base[$index]' with a pointer base"
    if token.startswith(SIGILS):
        return "names start with a letter; numerals use digits and '_' only"
    return "references start with '$', '@' or '&'"
