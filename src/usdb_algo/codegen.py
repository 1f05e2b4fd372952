"""
C99 Code Generator for USDB Algo
================================

This module lowers a semantically valid Program to C99 source text.

Output Layout
-------------
    // Generated from USDB Algorithmic Language
    // Algorithm: <name>

    #include <stdio.h> ... <stdbool.h>

    typedef struct { ... } Name;        (global TYPE declarations)
    #define NAME value                  (global constants)
    ctype name[dims];                   (global variables)

    rettype f(params);                  (prototypes: functions, then procedures)

    rettype f(params) { ... }           (definitions, same order)

    int main(void) { ...  return 0; }

Type Mapping
------------
| Algo     | C       |
|----------|---------|
| INTEGER  | int     |
| REAL     | double  |
| BOOLEAN  | bool    |
| CHAR     | char    |
| STRING   | char*   |
| ARRAY    | element type + [dims] suffix |
| VAR p: T | T *p (uses and call arguments are emitted as written) |

Format Inference
----------------
PRINT and SCAN pick printf/scanf conversions from a shallow type map
(lowercase variable name -> primitive type name). Globals seed the map;
each routine works on a copy extended with its parameters and locals.
Expressions that are not literals, identifiers, binary expressions or
math built-in calls print with %d.

All mutable generation state lives in a GenerationContext passed to
every emitter, so one CodeGenerator can be reused across programs.
"""

from dataclasses import dataclass, field
from typing import Optional
import logging

from usdb_algo.ast import (
    ArrayAccess,
    ArrayType,
    AssignmentStatement,
    BinaryExpression,
    BinaryOperator,
    BlockStatement,
    BooleanLiteral,
    CallStatement,
    CharLiteral,
    ConstDeclaration,
    DoWhileStatement,
    EnumType,
    Expression,
    FieldAccess,
    ForStatement,
    FunctionCall,
    FunctionDeclaration,
    Identifier,
    IfStatement,
    IntegerLiteral,
    Literal,
    Parameter,
    ParenExpression,
    PrimitiveType,
    PrintStatement,
    ProcedureDeclaration,
    Program,
    RealLiteral,
    ReturnStatement,
    ScanStatement,
    Statement,
    StringLiteral,
    StructureType,
    SwitchStatement,
    TypeDeclaration,
    TypeExpression,
    TypeReference,
    UnaryExpression,
    UnaryOperator,
    VarDeclaration,
    WhileStatement,
)
from usdb_algo.errors import CodeGenError, SourceLocation
from usdb_algo.types import MATH_BUILTINS

logger = logging.getLogger(__name__)


# =============================================================================
# Lowering Tables
# =============================================================================

C_HEADERS = ("stdio.h", "stdlib.h", "string.h", "math.h", "stdbool.h")

PRIMITIVE_C_TYPES = {
    "INTEGER": "int",
    "REAL": "double",
    "BOOLEAN": "bool",
    "CHAR": "char",
    "STRING": "char*",
}

C_OPERATORS = {
    BinaryOperator.ADD: "+",
    BinaryOperator.SUBTRACT: "-",
    BinaryOperator.MULTIPLY: "*",
    BinaryOperator.DIVIDE: "/",
    BinaryOperator.INT_DIVIDE: "/",
    BinaryOperator.MODULO: "%",
    BinaryOperator.EQUAL: "==",
    BinaryOperator.NOT_EQUAL: "!=",
    BinaryOperator.LESS: "<",
    BinaryOperator.GREATER: ">",
    BinaryOperator.LESS_EQUAL: "<=",
    BinaryOperator.GREATER_EQUAL: ">=",
    BinaryOperator.AND: "&&",
    BinaryOperator.OR: "||",
}

# Built-ins whose C spelling differs from the Algo one
C_BUILTIN_NAMES = {
    "ln": "log",
    "log": "log10",
    "length": "strlen",
}

PRINT_FORMATS = {"REAL": "%f", "CHAR": "%c", "STRING": "%s"}
SCAN_FORMATS = {"REAL": "%lf", "CHAR": " %c", "STRING": "%s"}


# =============================================================================
# Generation State
# =============================================================================

@dataclass
class GenerationContext:
    """
    Mutable state of one generate() call.

    Attributes:
        lines: Emitted output lines
        indent_level: Current nesting depth inside function bodies
        type_map: Lowercase variable name -> primitive type name
        routines: Lowercase names of the program's own functions and procedures
        indent: One indentation level
    """
    lines: list[str] = field(default_factory=list)
    indent_level: int = 0
    type_map: dict[str, str] = field(default_factory=dict)
    routines: set[str] = field(default_factory=set)
    indent: str = "    "

    def emit(self, line: str) -> None:
        """Emit a line at the current indentation."""
        self.lines.append(f"{self.indent * self.indent_level}{line}")

    def emit_raw(self, line: str = "") -> None:
        """Emit a line at column zero."""
        self.lines.append(line)

    def for_routine(self) -> "GenerationContext":
        """
        A context for one routine body: shares the output lines, starts
        one level in and works on a copy of the global type map.
        """
        return GenerationContext(
            lines=self.lines,
            indent_level=1,
            type_map=dict(self.type_map),
            routines=self.routines,
            indent=self.indent,
        )


@dataclass
class CodeGenResult:
    """
    Output of generate().

    Attributes:
        code: The C source ("" when generation failed)
        errors: CodeGenErrors raised during generation
    """
    code: str = ""
    errors: list[CodeGenError] = field(default_factory=list)


# =============================================================================
# Code Generator
# =============================================================================

class CodeGenerator:
    """
    Translates a Program into C99.

    Usage:
        result = CodeGenerator().generate(program)
        if not result.errors:
            print(result.code)
    """

    def __init__(self, indent: str = "    "):
        self.indent = indent

    def generate(self, program: Program) -> CodeGenResult:
        ctx = GenerationContext(indent=self.indent)
        try:
            self._generate_program(program, ctx)
        except CodeGenError as e:
            logger.debug("Code generation failed: %s", e.display())
            return CodeGenResult(code="", errors=[e])

        logger.debug("Generated %d lines of C for %s", len(ctx.lines), program.name)
        return CodeGenResult(code="\n".join(ctx.lines), errors=[])

    # =========================================================================
    # Program Structure
    # =========================================================================

    def _generate_program(self, program: Program, ctx: GenerationContext) -> None:
        ctx.emit_raw("// Generated from USDB Algorithmic Language")
        ctx.emit_raw(f"// Algorithm: {program.name}")
        ctx.emit_raw()
        for header in C_HEADERS:
            ctx.emit_raw(f"#include <{header}>")
        ctx.emit_raw()

        for declaration in program.types:
            self._generate_type_declaration(declaration, ctx)
            ctx.emit_raw()

        for declaration in program.constants:
            ctx.emit_raw(f"#define {declaration.name} {self._literal(declaration.value)}")

        for declaration in program.variables:
            self._generate_var_declaration(declaration, ctx)

        if program.constants or program.variables:
            ctx.emit_raw()

        ctx.routines = {r.name.lower() for r in [*program.functions, *program.procedures]}

        for function in program.functions:
            ctx.emit_raw(f"{self._signature(function)};")
        for procedure in program.procedures:
            ctx.emit_raw(f"{self._signature(procedure)};")
        if program.functions or program.procedures:
            ctx.emit_raw()

        for routine in [*program.functions, *program.procedures]:
            self._generate_routine(routine, ctx)
            ctx.emit_raw()

        ctx.emit_raw("int main(void) {")
        ctx.indent_level = 1
        self._generate_statements(program.body, ctx)
        ctx.emit("return 0;")
        ctx.indent_level = 0
        ctx.emit_raw("}")

    def _signature(self, routine: FunctionDeclaration | ProcedureDeclaration) -> str:
        if isinstance(routine, FunctionDeclaration):
            return_type = self._c_type(routine.return_type)
        else:
            return_type = "void"
        return f"{return_type} {routine.name}({self._parameter_list(routine.parameters)})"

    def _parameter_list(self, parameters: list[Parameter]) -> str:
        if not parameters:
            return "void"
        rendered = []
        for param in parameters:
            c_type = self._c_type(param.param_type)
            suffix = self._array_suffix(param.param_type)
            if param.by_reference:
                rendered.append(f"{c_type} *{param.name}{suffix}")
            else:
                rendered.append(f"{c_type} {param.name}{suffix}")
        return ", ".join(rendered)

    def _generate_routine(
        self, routine: FunctionDeclaration | ProcedureDeclaration, ctx: GenerationContext
    ) -> None:
        ctx.emit_raw(f"{self._signature(routine)} {{")
        local = ctx.for_routine()

        for param in routine.parameters:
            local.type_map[param.name.lower()] = primitive_name(param.param_type)

        for declaration in routine.types:
            self._generate_type_declaration(declaration, local)
        for declaration in routine.constants:
            self._generate_local_constant(declaration, local)
        for declaration in routine.variables:
            self._generate_var_declaration(declaration, local)

        self._generate_statements(routine.body, local)
        ctx.emit_raw("}")

    # =========================================================================
    # Declarations
    # =========================================================================

    def _generate_type_declaration(self, declaration: TypeDeclaration, ctx: GenerationContext) -> None:
        definition = declaration.definition

        if isinstance(definition, StructureType):
            ctx.emit("typedef struct {")
            ctx.indent_level += 1
            for field_decl in definition.fields:
                c_type = self._c_type(field_decl.var_type)
                suffix = self._array_suffix(field_decl.var_type)
                for name in field_decl.names:
                    ctx.emit(f"{c_type} {name}{suffix};")
            ctx.indent_level -= 1
            ctx.emit(f"}} {declaration.name};")
        elif isinstance(definition, EnumType):
            ctx.emit(f"typedef enum {{ {', '.join(definition.values)} }} {declaration.name};")
        else:
            ctx.emit(
                f"typedef {self._c_type(definition)} "
                f"{declaration.name}{self._array_suffix(definition)};"
            )

    def _generate_local_constant(self, declaration: ConstDeclaration, ctx: GenerationContext) -> None:
        c_type = literal_c_type(declaration.value)
        ctx.emit(f"const {c_type} {declaration.name} = {self._literal(declaration.value)};")

    def _generate_var_declaration(self, declaration: VarDeclaration, ctx: GenerationContext) -> None:
        c_type = self._c_type(declaration.var_type)
        suffix = self._array_suffix(declaration.var_type)
        type_name = primitive_name(declaration.var_type)
        for name in declaration.names:
            ctx.emit(f"{c_type} {name}{suffix};")
            ctx.type_map[name.lower()] = type_name

    # =========================================================================
    # Statements
    # =========================================================================

    def _generate_statements(self, statements: list[Statement], ctx: GenerationContext) -> None:
        for statement in statements:
            self._generate_statement(statement, ctx)

    def _generate_body(self, statements: list[Statement], ctx: GenerationContext) -> None:
        ctx.indent_level += 1
        self._generate_statements(statements, ctx)
        ctx.indent_level -= 1

    def _generate_statement(self, stmt: Statement, ctx: GenerationContext) -> None:
        if isinstance(stmt, AssignmentStatement):
            target = self._expression(stmt.target, ctx)
            ctx.emit(f"{target} = {self._expression(stmt.value, ctx)};")
        elif isinstance(stmt, IfStatement):
            self._generate_if(stmt, ctx)
        elif isinstance(stmt, WhileStatement):
            ctx.emit(f"while ({self._expression(stmt.condition, ctx)}) {{")
            self._generate_body(stmt.body, ctx)
            ctx.emit("}")
        elif isinstance(stmt, DoWhileStatement):
            ctx.emit("do {")
            self._generate_body(stmt.body, ctx)
            ctx.emit(f"}} while ({self._expression(stmt.condition, ctx)});")
        elif isinstance(stmt, ForStatement):
            self._generate_for(stmt, ctx)
        elif isinstance(stmt, SwitchStatement):
            self._generate_switch(stmt, ctx)
        elif isinstance(stmt, CallStatement):
            ctx.emit(f"{self._call(stmt.name, stmt.arguments, ctx)};")
        elif isinstance(stmt, ScanStatement):
            self._generate_scan(stmt, ctx)
        elif isinstance(stmt, PrintStatement):
            self._generate_print(stmt, ctx)
        elif isinstance(stmt, ReturnStatement):
            ctx.emit(f"return {self._expression(stmt.value, ctx)};")
        elif isinstance(stmt, BlockStatement):
            self._generate_statements(stmt.statements, ctx)
        else:
            raise self._unsupported(stmt)

    def _generate_if(self, stmt: IfStatement, ctx: GenerationContext) -> None:
        ctx.emit(f"if ({self._expression(stmt.condition, ctx)}) {{")
        self._generate_body(stmt.then_branch, ctx)
        if stmt.else_branch:
            ctx.emit("} else {")
            self._generate_body(stmt.else_branch, ctx)
        ctx.emit("}")

    def _generate_for(self, stmt: ForStatement, ctx: GenerationContext) -> None:
        """
        FOR i <- a TO b [STEP s] DO ...

        The test is always <=. Without STEP the loop counts up by one;
        a STEP is added as written, whatever its sign.
        """
        var = stmt.variable
        start = self._expression(stmt.start, ctx)
        end = self._expression(stmt.end, ctx)

        if stmt.step is None:
            update = f"{var}++"
        else:
            update = f"{var} += {self._expression(stmt.step, ctx)}"

        ctx.emit(f"for ({var} = {start}; {var} <= {end}; {update}) {{")
        self._generate_body(stmt.body, ctx)
        ctx.emit("}")

    def _generate_switch(self, stmt: SwitchStatement, ctx: GenerationContext) -> None:
        ctx.emit(f"switch ({self._expression(stmt.expression, ctx)}) {{")
        ctx.indent_level += 1

        for case in stmt.cases:
            for value in case.values:
                ctx.emit(f"case {self._expression(value, ctx)}:")
            ctx.indent_level += 1
            self._generate_statements(case.body, ctx)
            ctx.emit("break;")
            ctx.indent_level -= 1

        if stmt.default_case is not None:
            ctx.emit("default:")
            ctx.indent_level += 1
            self._generate_statements(stmt.default_case, ctx)
            ctx.emit("break;")
            ctx.indent_level -= 1

        ctx.indent_level -= 1
        ctx.emit("}")

    def _generate_scan(self, stmt: ScanStatement, ctx: GenerationContext) -> None:
        for target in stmt.targets:
            fmt = "%d"
            if isinstance(target, Identifier):
                fmt = SCAN_FORMATS.get(ctx.type_map.get(target.name.lower()), "%d")
            ctx.emit(f'scanf("{fmt}", &{self._expression(target, ctx)});')

    def _generate_print(self, stmt: PrintStatement, ctx: GenerationContext) -> None:
        specs = "".join(self._print_format(e, ctx) for e in stmt.expressions)
        args = "".join(f", {self._expression(e, ctx)}" for e in stmt.expressions)
        ctx.emit(f'printf("{specs}\\n"{args});')

    def _print_format(self, expr: Expression, ctx: GenerationContext) -> str:
        if isinstance(expr, RealLiteral):
            return "%f"
        if isinstance(expr, CharLiteral):
            return "%c"
        if isinstance(expr, StringLiteral):
            return "%s"
        if isinstance(expr, Identifier):
            return PRINT_FORMATS.get(ctx.type_map.get(expr.name.lower()), "%d")
        if isinstance(expr, BinaryExpression):
            if "%f" in (self._print_format(expr.left, ctx), self._print_format(expr.right, ctx)):
                return "%f"
            return "%d"
        if isinstance(expr, FunctionCall) and expr.name.lower() in MATH_BUILTINS:
            return "%f"
        return "%d"

    # =========================================================================
    # Expressions
    # =========================================================================

    def _expression(self, expr: Expression, ctx: GenerationContext) -> str:
        if isinstance(expr, (IntegerLiteral, RealLiteral, BooleanLiteral, CharLiteral, StringLiteral)):
            return self._literal(expr)
        if isinstance(expr, Identifier):
            return expr.name
        if isinstance(expr, BinaryExpression):
            left = self._expression(expr.left, ctx)
            right = self._expression(expr.right, ctx)
            if expr.operator == BinaryOperator.POWER:
                return f"pow({left}, {right})"
            return f"({left} {C_OPERATORS[expr.operator]} {right})"
        if isinstance(expr, UnaryExpression):
            operand = self._expression(expr.operand, ctx)
            if expr.operator == UnaryOperator.NOT:
                return f"!{operand}"
            return f"-{operand}"
        if isinstance(expr, ParenExpression):
            return f"({self._expression(expr.expression, ctx)})"
        if isinstance(expr, ArrayAccess):
            indices = "".join(f"[{self._expression(i, ctx)}]" for i in expr.indices)
            return f"{self._expression(expr.array, ctx)}{indices}"
        if isinstance(expr, FieldAccess):
            return f"{self._expression(expr.object, ctx)}.{expr.field}"
        if isinstance(expr, FunctionCall):
            return self._call(expr.name, expr.arguments, ctx)
        raise self._unsupported(expr)

    def _call(self, name: str, arguments: list[Expression], ctx: GenerationContext) -> str:
        if name.lower() not in ctx.routines:
            name = C_BUILTIN_NAMES.get(name.lower(), name)
        rendered = [self._expression(arg, ctx) for arg in arguments]
        return f"{name}({', '.join(rendered)})"

    def _literal(self, literal: Literal) -> str:
        if isinstance(literal, BooleanLiteral):
            return "true" if literal.value else "false"
        if isinstance(literal, IntegerLiteral):
            return str(literal.value)
        if isinstance(literal, RealLiteral):
            return repr(literal.value)
        if isinstance(literal, CharLiteral):
            return f"'{escape_char(literal.value)}'"
        if isinstance(literal, StringLiteral):
            return f'"{escape_string(literal.value)}"'
        raise self._unsupported(literal)

    # =========================================================================
    # Types
    # =========================================================================

    def _c_type(self, type_expr: TypeExpression) -> str:
        if isinstance(type_expr, PrimitiveType):
            return PRIMITIVE_C_TYPES.get(type_expr.name, "int")
        if isinstance(type_expr, ArrayType):
            return self._c_type(type_expr.element_type)
        if isinstance(type_expr, TypeReference):
            return type_expr.name
        if isinstance(type_expr, StructureType):
            fields = " ".join(
                f"{self._c_type(f.var_type)} {name}{self._array_suffix(f.var_type)};"
                for f in type_expr.fields
                for name in f.names
            )
            return f"struct {{ {fields} }}"
        if isinstance(type_expr, EnumType):
            return f"enum {{ {', '.join(type_expr.values)} }}"
        raise self._unsupported(type_expr)

    def _array_suffix(self, type_expr: TypeExpression) -> str:
        """[d1][d2]... for arrays (nested element arrays included), else ""."""
        if not isinstance(type_expr, ArrayType):
            return ""
        dims = "".join(f"[{self._expression(d, GenerationContext())}]" for d in type_expr.dimensions)
        return dims + self._array_suffix(type_expr.element_type)

    @staticmethod
    def _unsupported(node) -> CodeGenError:
        location: Optional[SourceLocation] = node.span.start if getattr(node, "span", None) else None
        return CodeGenError(f"Cannot generate code for {node.__class__.__name__}", location)


# =============================================================================
# Helpers
# =============================================================================

def primitive_name(type_expr: TypeExpression) -> str:
    """Primitive name recorded in the type map: arrays use their element."""
    if isinstance(type_expr, PrimitiveType):
        return type_expr.name
    if isinstance(type_expr, ArrayType):
        return primitive_name(type_expr.element_type)
    return "INTEGER"


def literal_c_type(literal: Literal) -> str:
    if isinstance(literal, RealLiteral):
        return "double"
    if isinstance(literal, BooleanLiteral):
        return "bool"
    if isinstance(literal, CharLiteral):
        return "char"
    if isinstance(literal, StringLiteral):
        return "char*"
    return "int"


def is_negative_literal(expr: Expression) -> bool:
    """True for -3, -0.5 and (-1) as written in the source."""
    if isinstance(expr, ParenExpression):
        return is_negative_literal(expr.expression)
    if isinstance(expr, (IntegerLiteral, RealLiteral)):
        return expr.value < 0
    return (
        isinstance(expr, UnaryExpression)
        and expr.operator == UnaryOperator.NEGATE
        and isinstance(expr.operand, (IntegerLiteral, RealLiteral))
        and expr.operand.value > 0
    )


def escape_char(char: str) -> str:
    return {
        "\n": "\\n",
        "\t": "\\t",
        "\r": "\\r",
        "\\": "\\\\",
        "'": "\\'",
    }.get(char, char)


def escape_string(text: str) -> str:
    return (
        text.replace("\\", "\\\\")
        .replace('"', '\\"')
        .replace("\n", "\\n")
        .replace("\t", "\\t")
        .replace("\r", "\\r")
    )


def generate(program: Program, indent: str = "    ") -> CodeGenResult:
    """
    Generate C99 for a program.

    Returns:
        CodeGenResult with the code, or the CodeGenError that stopped it
    """
    return CodeGenerator(indent).generate(program)
