"""
MARIE SDK ISA Package
=====================

Target machine definitions shared by the lowering stage and the emitter:
opcodes, indirect-form availability, skipcond condition codes and the
word/address geometry.

Usage:
    from marie_sdk.isa import Opcode, SkipCondition, parse_skip_condition
"""

from marie_sdk.isa.marie import (
    # Core types
    Opcode,
    SkipCondition,
    # Opcode groups
    REFERENCE_OPCODES,
    INHERENT_OPCODES,
    NO_INDIRECT_OPCODES,
    SKIPCOND_ALIASES,
    # Geometry and naming
    WORD_MIN,
    WORD_MAX,
    FIRST_VARIABLE_ADDRESS,
    INDIRECT_SUFFIX,
    ADDRESS_SUFFIX,
    CONSTANT_PREFIX,
    # Helpers
    parse_skip_condition,
    fits_word,
)

__all__ = [
    "Opcode",
    "SkipCondition",
    "REFERENCE_OPCODES",
    "INHERENT_OPCODES",
    "NO_INDIRECT_OPCODES",
    "SKIPCOND_ALIASES",
    "WORD_MIN",
    "WORD_MAX",
    "FIRST_VARIABLE_ADDRESS",
    "INDIRECT_SUFFIX",
    "ADDRESS_SUFFIX",
    "CONSTANT_PREFIX",
    "parse_skip_condition",
    "fits_word",
]
