"""
USDB Algo Type System
=====================

This module defines the types the semantic analyzer reasons about and the
symbols it stores in its scope stack.

Type Kinds
----------
- integer, real, boolean, char, string: the primitive types
- array: element type plus one entry per dimension
- structure: ordered named fields
- enumeration: ordered value names (values behave as integers)
- function: parameter types and a return type
- procedure: parameter types, no result
- unknown: the type of anything that failed to resolve

Unknown is contagious but silent: an expression involving an unknown
operand gets a best-effort type and never produces a second error.

Arithmetic Promotion
--------------------
| left    | right   | result  |
|---------|---------|---------|
| real    | any     | real    |
| any     | real    | real    |
| other   | other   | integer |
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional


# =============================================================================
# Type Kind Enumeration
# =============================================================================

class TypeKind(Enum):
    """Discriminator for SymbolType."""
    INTEGER = "integer"
    REAL = "real"
    BOOLEAN = "boolean"
    CHAR = "char"
    STRING = "string"
    ARRAY = "array"
    STRUCTURE = "structure"
    ENUMERATION = "enumeration"
    FUNCTION = "function"
    PROCEDURE = "procedure"
    UNKNOWN = "unknown"

    def __str__(self) -> str:
        return self.value


# =============================================================================
# Type Representation
# =============================================================================

@dataclass(frozen=True)
class SymbolType:
    """
    A resolved Algo type.

    Attributes:
        kind: The type kind
        dimensions: Array sizes (None where the size is not a literal)
        element_type: Array element type
        fields: Structure fields as (name, type) pairs, in declaration order
        values: Enumeration value names
        params: Routine parameter types
        return_type: Function result type
    """
    kind: TypeKind
    dimensions: tuple[Optional[int], ...] = ()
    element_type: Optional["SymbolType"] = None
    fields: tuple[tuple[str, "SymbolType"], ...] = ()
    values: tuple[str, ...] = ()
    params: tuple["SymbolType", ...] = ()
    return_type: Optional["SymbolType"] = None

    @property
    def is_unknown(self) -> bool:
        return self.kind == TypeKind.UNKNOWN

    @property
    def is_structure(self) -> bool:
        return self.kind == TypeKind.STRUCTURE

    @property
    def is_routine(self) -> bool:
        return self.kind in (TypeKind.FUNCTION, TypeKind.PROCEDURE)

    def field_type(self, name: str) -> Optional["SymbolType"]:
        """Look up a structure field case-insensitively; None if absent."""
        lowered = name.lower()
        for field_name, field_type in self.fields:
            if field_name.lower() == lowered:
                return field_type
        return None

    def __str__(self) -> str:
        if self.kind == TypeKind.ARRAY:
            dims = "".join(f"[{d if d is not None else '?'}]" for d in self.dimensions)
            return f"array{dims} of {self.element_type}"
        if self.kind == TypeKind.ENUMERATION:
            return f"({', '.join(self.values)})"
        return str(self.kind)


TYPE_INTEGER = SymbolType(TypeKind.INTEGER)
TYPE_REAL = SymbolType(TypeKind.REAL)
TYPE_BOOLEAN = SymbolType(TypeKind.BOOLEAN)
TYPE_CHAR = SymbolType(TypeKind.CHAR)
TYPE_STRING = SymbolType(TypeKind.STRING)
TYPE_UNKNOWN = SymbolType(TypeKind.UNKNOWN)

PRIMITIVE_TYPES: dict[str, SymbolType] = {
    "INTEGER": TYPE_INTEGER,
    "REAL": TYPE_REAL,
    "BOOLEAN": TYPE_BOOLEAN,
    "CHAR": TYPE_CHAR,
    "STRING": TYPE_STRING,
}


# =============================================================================
# Type Constructors
# =============================================================================

def make_array(element_type: SymbolType, dimensions: list[Optional[int]]) -> SymbolType:
    return SymbolType(TypeKind.ARRAY, dimensions=tuple(dimensions), element_type=element_type)


def make_structure(fields: list[tuple[str, SymbolType]]) -> SymbolType:
    return SymbolType(TypeKind.STRUCTURE, fields=tuple(fields))


def make_enumeration(values: list[str]) -> SymbolType:
    return SymbolType(TypeKind.ENUMERATION, values=tuple(values))


def make_function(params: list[SymbolType], return_type: SymbolType) -> SymbolType:
    return SymbolType(TypeKind.FUNCTION, params=tuple(params), return_type=return_type)


def make_procedure(params: list[SymbolType]) -> SymbolType:
    return SymbolType(TypeKind.PROCEDURE, params=tuple(params))


def arithmetic_result(left: SymbolType, right: SymbolType) -> SymbolType:
    """Result of + - * / ^ DIV MOD: real if either side is real, else integer."""
    if left.kind == TypeKind.REAL or right.kind == TypeKind.REAL:
        return TYPE_REAL
    return TYPE_INTEGER


# =============================================================================
# Symbols
# =============================================================================

@dataclass
class Symbol:
    """
    An entry in a scope of the symbol table.

    Attributes:
        name: Name with its declared casing
        type: Resolved type
        is_constant: True for CONST declarations and enumeration values
        constant_value: Literal value of a constant
        by_reference: True for VAR parameters
    """
    name: str
    type: SymbolType
    is_constant: bool = False
    constant_value: Any = None
    by_reference: bool = False


# Built-in functions available without declaration
BUILTIN_FUNCTIONS: dict[str, SymbolType] = {
    **{
        name: make_function([TYPE_REAL], TYPE_REAL)
        for name in (
            "sqrt", "abs", "sin", "cos", "tan", "ln", "log",
            "exp", "floor", "ceil", "round",
        )
    },
    "length": make_function([TYPE_STRING], TYPE_INTEGER),
}

# Built-ins whose C counterparts return double
MATH_BUILTINS = frozenset(name for name, t in BUILTIN_FUNCTIONS.items() if t.return_type == TYPE_REAL)
