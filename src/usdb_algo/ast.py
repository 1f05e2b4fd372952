"""
USDB Algo Abstract Syntax Tree (AST) Definitions
================================================

This module defines the AST node types produced by the parser and
consumed by the semantic analyzer, the C code generator and the
flowchart generator.

Node Hierarchy
--------------
ASTNode (base)
├── Program - root: name, declarations, routines and main body
├── Declarations
│   ├── ConstDeclaration - NAME = literal
│   ├── TypeDeclaration - Name = type expression
│   ├── VarDeclaration - a, b : type
│   ├── Parameter - [VAR] name : type
│   ├── FunctionDeclaration - FUNCTION f(...) : type
│   └── ProcedureDeclaration - PROCEDURE p(...)
├── Type Expressions
│   ├── PrimitiveType - INTEGER REAL BOOLEAN CHAR STRING
│   ├── ArrayType - ARRAY [n][m] OF type
│   ├── StructureType - STRUCTURE BEGIN fields END
│   ├── EnumType - (A, B, C)
│   └── TypeReference - a named type
├── Statements
│   ├── AssignmentStatement, IfStatement, WhileStatement
│   ├── DoWhileStatement, ForStatement, SwitchStatement (+ CaseClause)
│   ├── CallStatement, ScanStatement, PrintStatement
│   └── ReturnStatement, BlockStatement
└── Expressions
    ├── IntegerLiteral, RealLiteral, BooleanLiteral, CharLiteral, StringLiteral
    ├── Identifier, ArrayAccess, FieldAccess (the lvalue forms)
    ├── BinaryExpression, UnaryExpression, ParenExpression
    └── FunctionCall

Design Notes
------------
- Every variant is its own dataclass; the class is the discriminator and
  node.node_type exposes its name for serialisation.
- Every node may carry a span. Spans exist for diagnostics and flowchart
  correlation only and are excluded from equality.
- Consumers dispatch through ASTVisitor, one visit_<ClassName> method per
  variant.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, Union

from usdb_algo.errors import SourceSpan


# =============================================================================
# AST Node Base Classes
# =============================================================================

@dataclass
class ASTNode:
    """
    Base class for all AST nodes.

    Attributes:
        span: Source span of the node (None for synthesized nodes)
    """
    span: Optional[SourceSpan] = field(default=None, compare=False, repr=False)

    @property
    def node_type(self) -> str:
        """The variant name, e.g. 'IfStatement'."""
        return self.__class__.__name__

    @property
    def line(self) -> int:
        """First source line of the node, or 0 when it has no span."""
        return self.span.start.line if self.span else 0


@dataclass
class Expression(ASTNode):
    """Base class for nodes that evaluate to a value."""
    pass


@dataclass
class Statement(ASTNode):
    """Base class for executable statements."""
    pass


@dataclass
class TypeExpression(ASTNode):
    """Base class for type expressions."""
    pass


# =============================================================================
# Operators
# =============================================================================

class BinaryOperator(Enum):
    """Binary operators, valued by their Algo spelling."""
    ADD = "+"
    SUBTRACT = "-"
    MULTIPLY = "*"
    DIVIDE = "/"
    POWER = "^"
    INT_DIVIDE = "DIV"
    MODULO = "MOD"
    EQUAL = "="
    NOT_EQUAL = "<>"
    LESS = "<"
    GREATER = ">"
    LESS_EQUAL = "<="
    GREATER_EQUAL = ">="
    AND = "AND"
    OR = "OR"

    @property
    def is_arithmetic(self) -> bool:
        return self in ARITHMETIC_OPERATORS

    @property
    def is_relational(self) -> bool:
        return self in RELATIONAL_OPERATORS

    @property
    def is_logical(self) -> bool:
        return self in (BinaryOperator.AND, BinaryOperator.OR)


ARITHMETIC_OPERATORS = frozenset({
    BinaryOperator.ADD,
    BinaryOperator.SUBTRACT,
    BinaryOperator.MULTIPLY,
    BinaryOperator.DIVIDE,
    BinaryOperator.POWER,
    BinaryOperator.INT_DIVIDE,
    BinaryOperator.MODULO,
})

RELATIONAL_OPERATORS = frozenset({
    BinaryOperator.EQUAL,
    BinaryOperator.NOT_EQUAL,
    BinaryOperator.LESS,
    BinaryOperator.GREATER,
    BinaryOperator.LESS_EQUAL,
    BinaryOperator.GREATER_EQUAL,
})


class UnaryOperator(Enum):
    """Unary operators, valued by their Algo spelling."""
    NEGATE = "-"
    NOT = "NOT"


# =============================================================================
# Expression Nodes
# =============================================================================

@dataclass
class IntegerLiteral(Expression):
    value: int = 0


@dataclass
class RealLiteral(Expression):
    value: float = 0.0


@dataclass
class BooleanLiteral(Expression):
    value: bool = False


@dataclass
class CharLiteral(Expression):
    value: str = ""


@dataclass
class StringLiteral(Expression):
    value: str = ""


Literal = Union[IntegerLiteral, RealLiteral, BooleanLiteral, CharLiteral, StringLiteral]

LITERAL_TYPES = (IntegerLiteral, RealLiteral, BooleanLiteral, CharLiteral, StringLiteral)


@dataclass
class Identifier(Expression):
    """Reference to a variable, constant or parameter by name."""
    name: str = ""


@dataclass
class BinaryExpression(Expression):
    """
    Binary operation.

    Attributes:
        operator: The operator
        left: Left operand
        right: Right operand
    """
    operator: BinaryOperator = BinaryOperator.ADD
    left: Expression = None
    right: Expression = None


@dataclass
class UnaryExpression(Expression):
    operator: UnaryOperator = UnaryOperator.NEGATE
    operand: Expression = None


@dataclass
class ArrayAccess(Expression):
    """
    Array element access.

    `t[i, j]` and `t[i][j]` both produce a single node whose indices
    list holds every subscript in order.
    """
    array: Expression = None
    indices: list[Expression] = field(default_factory=list)


@dataclass
class FieldAccess(Expression):
    """Structure field access: object.field"""
    object: Expression = None
    field: str = ""


@dataclass
class FunctionCall(Expression):
    """
    Function call used as a value.

    Attributes:
        name: Called function name, as written
        arguments: Argument expressions
    """
    name: str = ""
    arguments: list[Expression] = field(default_factory=list)


@dataclass
class ParenExpression(Expression):
    """Parenthesised expression, kept so generated code mirrors the source."""
    expression: Expression = None


LValue = Union[Identifier, ArrayAccess, FieldAccess]


# =============================================================================
# Type Expression Nodes
# =============================================================================

PRIMITIVE_TYPE_NAMES = ("INTEGER", "REAL", "BOOLEAN", "CHAR", "STRING")


@dataclass
class PrimitiveType(TypeExpression):
    """One of INTEGER, REAL, BOOLEAN, CHAR, STRING (always upper case)."""
    name: str = "INTEGER"


@dataclass
class ArrayType(TypeExpression):
    """
    Array type.

    Attributes:
        dimensions: Size expression per dimension (literals or constants)
        element_type: Type of each element
    """
    dimensions: list[Expression] = field(default_factory=list)
    element_type: TypeExpression = None


@dataclass
class StructureType(TypeExpression):
    fields: list["VarDeclaration"] = field(default_factory=list)


@dataclass
class EnumType(TypeExpression):
    """Enumeration: (RED, GREEN, BLUE)."""
    values: list[str] = field(default_factory=list)


@dataclass
class TypeReference(TypeExpression):
    """Reference to a type declared in a TYPE block."""
    name: str = ""


# =============================================================================
# Declaration Nodes
# =============================================================================

@dataclass
class ConstDeclaration(ASTNode):
    """CONST NAME = literal"""
    name: str = ""
    value: Literal = None


@dataclass
class TypeDeclaration(ASTNode):
    """TYPE Name = type"""
    name: str = ""
    definition: TypeExpression = None


@dataclass
class VarDeclaration(ASTNode):
    """
    VAR a, b : type

    Attributes:
        names: Declared names, in source order
        var_type: Their shared type
    """
    names: list[str] = field(default_factory=list)
    var_type: TypeExpression = None


@dataclass
class Parameter(ASTNode):
    """
    Routine parameter.

    Attributes:
        name: Parameter name
        param_type: Parameter type
        by_reference: True when declared with VAR (lowered to a C pointer)
    """
    name: str = ""
    param_type: TypeExpression = None
    by_reference: bool = False


@dataclass
class FunctionDeclaration(ASTNode):
    """
    FUNCTION definition.

    Attributes:
        name: Function name
        parameters: Formal parameters
        return_type: Declared result type
        constants, types, variables: Local declarations
        body: Statements between BEGIN and END
    """
    name: str = ""
    parameters: list[Parameter] = field(default_factory=list)
    return_type: TypeExpression = None
    constants: list[ConstDeclaration] = field(default_factory=list)
    types: list[TypeDeclaration] = field(default_factory=list)
    variables: list[VarDeclaration] = field(default_factory=list)
    body: list[Statement] = field(default_factory=list)


@dataclass
class ProcedureDeclaration(ASTNode):
    """PROCEDURE definition; same shape as a function without a result."""
    name: str = ""
    parameters: list[Parameter] = field(default_factory=list)
    constants: list[ConstDeclaration] = field(default_factory=list)
    types: list[TypeDeclaration] = field(default_factory=list)
    variables: list[VarDeclaration] = field(default_factory=list)
    body: list[Statement] = field(default_factory=list)


Routine = Union[FunctionDeclaration, ProcedureDeclaration]


# =============================================================================
# Statement Nodes
# =============================================================================

@dataclass
class AssignmentStatement(Statement):
    """target <- value"""
    target: LValue = None
    value: Expression = None


@dataclass
class IfStatement(Statement):
    """
    IF (condition) THEN ... [ELSE ...]

    Attributes:
        condition: The condition expression
        then_branch: Statements run when the condition holds
        else_branch: Statements run otherwise (None when there is no ELSE)
    """
    condition: Expression = None
    then_branch: list[Statement] = field(default_factory=list)
    else_branch: Optional[list[Statement]] = None


@dataclass
class WhileStatement(Statement):
    condition: Expression = None
    body: list[Statement] = field(default_factory=list)


@dataclass
class DoWhileStatement(Statement):
    """DO ... WHILE (condition): the body runs at least once."""
    body: list[Statement] = field(default_factory=list)
    condition: Expression = None


@dataclass
class ForStatement(Statement):
    """
    FOR variable <- start TO end [STEP step] DO ...

    A missing step always means +1, whatever the bounds.
    """
    variable: str = ""
    start: Expression = None
    end: Expression = None
    step: Optional[Expression] = None
    body: list[Statement] = field(default_factory=list)


@dataclass
class CaseClause(ASTNode):
    """CASE v1, v2 : body"""
    values: list[Expression] = field(default_factory=list)
    body: list[Statement] = field(default_factory=list)


@dataclass
class SwitchStatement(Statement):
    """
    SWITCH expression BEGIN CASE ... DEFAULT ... END

    Attributes:
        expression: The value being switched on
        cases: CASE clauses in source order
        default_case: DEFAULT body (None when absent)
    """
    expression: Expression = None
    cases: list[CaseClause] = field(default_factory=list)
    default_case: Optional[list[Statement]] = None


@dataclass
class CallStatement(Statement):
    """Procedure invocation, with or without parentheses."""
    name: str = ""
    arguments: list[Expression] = field(default_factory=list)


@dataclass
class ScanStatement(Statement):
    targets: list[LValue] = field(default_factory=list)


@dataclass
class PrintStatement(Statement):
    expressions: list[Expression] = field(default_factory=list)


@dataclass
class ReturnStatement(Statement):
    value: Expression = None


@dataclass
class BlockStatement(Statement):
    """Nested BEGIN ... END inside a statement list."""
    statements: list[Statement] = field(default_factory=list)


# =============================================================================
# Program Root Node
# =============================================================================

@dataclass
class Program(ASTNode):
    """
    Root node: ALGORITHM name ... BEGIN ... END.

    Attributes:
        name: Algorithm name
        constants, types, variables: Global declarations
        functions, procedures: Routine definitions in source order
        body: Main program statements
    """
    name: str = ""
    constants: list[ConstDeclaration] = field(default_factory=list)
    types: list[TypeDeclaration] = field(default_factory=list)
    variables: list[VarDeclaration] = field(default_factory=list)
    functions: list[FunctionDeclaration] = field(default_factory=list)
    procedures: list[ProcedureDeclaration] = field(default_factory=list)
    body: list[Statement] = field(default_factory=list)


# =============================================================================
# AST Visitor Pattern
# =============================================================================

class ASTVisitor:
    """
    Base class for AST visitors.

    Subclasses override visit_<ClassName> for the node types they care
    about; anything else falls through to generic_visit, which walks the
    children.

    Usage:
        class CallFinder(ASTVisitor):
            def visit_FunctionCall(self, node):
                ...

        CallFinder().visit(program)
    """

    def visit(self, node: ASTNode):
        """Dispatch to visit_<ClassName>, or generic_visit when undefined."""
        method_name = f"visit_{node.__class__.__name__}"
        visitor = getattr(self, method_name, self.generic_visit)
        return visitor(node)

    def visit_all(self, nodes: list) -> list:
        """Visit each node of a list and return the results in order."""
        return [self.visit(node) for node in nodes]

    def generic_visit(self, node: ASTNode) -> None:
        """Visit every child node."""
        for field_value in node.__dict__.values():
            if isinstance(field_value, ASTNode):
                self.visit(field_value)
            elif isinstance(field_value, list):
                for item in field_value:
                    if isinstance(item, ASTNode):
                        self.visit(item)


# =============================================================================
# AST Pretty Printer
# =============================================================================

class ASTPrinter(ASTVisitor):
    """
    Pretty printer for AST debugging.

    Usage:
        printer = ASTPrinter()
        print(printer.print(program))
    """

    def __init__(self):
        self.output: list[str] = []
        self.indent_level = 0

    def print(self, node: ASTNode) -> str:
        """Print the AST and return it as a string."""
        self.output = []
        self.indent_level = 0
        self.visit(node)
        return "\n".join(self.output)

    def _emit(self, text: str) -> None:
        self.output.append(f"{'  ' * self.indent_level}{text}")

    def _block(self, title: str, statements: list[Statement]) -> None:
        self._emit(title)
        self.indent_level += 1
        self.visit_all(statements)
        self.indent_level -= 1

    def visit_Program(self, node: Program):
        self._emit(f"Program: {node.name}")
        self.indent_level += 1
        for decl in node.constants + node.types + node.variables:
            self.visit(decl)
        for routine in node.functions + node.procedures:
            self.visit(routine)
        self._block("Main", node.body)
        self.indent_level -= 1

    def visit_ConstDeclaration(self, node: ConstDeclaration):
        self._emit(f"Const: {node.name} = {format_expression(node.value)}")

    def visit_TypeDeclaration(self, node: TypeDeclaration):
        self._emit(f"Type: {node.name} = {format_type(node.definition)}")

    def visit_VarDeclaration(self, node: VarDeclaration):
        self._emit(f"Var: {', '.join(node.names)} : {format_type(node.var_type)}")

    def _visit_routine(self, kind: str, node: Routine, suffix: str = "") -> None:
        params = ", ".join(format_parameter(p) for p in node.parameters)
        self._emit(f"{kind}: {node.name}({params}){suffix}")
        self.indent_level += 1
        for decl in node.constants + node.types + node.variables:
            self.visit(decl)
        self.visit_all(node.body)
        self.indent_level -= 1

    def visit_FunctionDeclaration(self, node: FunctionDeclaration):
        self._visit_routine("Function", node, f" : {format_type(node.return_type)}")

    def visit_ProcedureDeclaration(self, node: ProcedureDeclaration):
        self._visit_routine("Procedure", node)

    def visit_AssignmentStatement(self, node: AssignmentStatement):
        self._emit(f"Assign: {format_expression(node.target)} <- {format_expression(node.value)}")

    def visit_IfStatement(self, node: IfStatement):
        self._emit(f"If: {format_expression(node.condition)}")
        self.indent_level += 1
        self._block("Then:", node.then_branch)
        if node.else_branch is not None:
            self._block("Else:", node.else_branch)
        self.indent_level -= 1

    def visit_WhileStatement(self, node: WhileStatement):
        self._block(f"While: {format_expression(node.condition)}", node.body)

    def visit_DoWhileStatement(self, node: DoWhileStatement):
        self._block(f"DoWhile: {format_expression(node.condition)}", node.body)

    def visit_ForStatement(self, node: ForStatement):
        header = (
            f"For: {node.variable} <- {format_expression(node.start)} "
            f"TO {format_expression(node.end)}"
        )
        if node.step is not None:
            header += f" STEP {format_expression(node.step)}"
        self._block(header, node.body)

    def visit_SwitchStatement(self, node: SwitchStatement):
        self._emit(f"Switch: {format_expression(node.expression)}")
        self.indent_level += 1
        for case in node.cases:
            values = ", ".join(format_expression(v) for v in case.values)
            self._block(f"Case: {values}", case.body)
        if node.default_case is not None:
            self._block("Default:", node.default_case)
        self.indent_level -= 1

    def visit_CallStatement(self, node: CallStatement):
        args = ", ".join(format_expression(a) for a in node.arguments)
        self._emit(f"Call: {node.name}({args})")

    def visit_ScanStatement(self, node: ScanStatement):
        self._emit(f"Scan: {', '.join(format_expression(t) for t in node.targets)}")

    def visit_PrintStatement(self, node: PrintStatement):
        self._emit(f"Print: {', '.join(format_expression(e) for e in node.expressions)}")

    def visit_ReturnStatement(self, node: ReturnStatement):
        self._emit(f"Return: {format_expression(node.value)}")

    def visit_BlockStatement(self, node: BlockStatement):
        self._block("Block", node.statements)


# =============================================================================
# Source Formatting Helpers
# =============================================================================

def _escape(text: str, quote: str) -> str:
    return (
        text.replace("\\", "\\\\")
        .replace(quote, "\\" + quote)
        .replace("\n", "\\n")
        .replace("\t", "\\t")
        .replace("\r", "\\r")
    )


def format_expression(expr: Optional[Expression]) -> str:
    """
    Render an expression back to Algo-like text.

    Used by the AST printer and for flowchart labels. Binary operators are
    spaced, unary operators are written as '- x' and 'NOT x'.
    """
    if expr is None:
        return ""
    if isinstance(expr, BooleanLiteral):
        return "TRUE" if expr.value else "FALSE"
    if isinstance(expr, (IntegerLiteral, RealLiteral)):
        return str(expr.value)
    if isinstance(expr, CharLiteral):
        return f"'{_escape(expr.value, chr(39))}'"
    if isinstance(expr, StringLiteral):
        return f'"{_escape(expr.value, chr(34))}"'
    if isinstance(expr, Identifier):
        return expr.name
    if isinstance(expr, ArrayAccess):
        indices = ", ".join(format_expression(i) for i in expr.indices)
        return f"{format_expression(expr.array)}[{indices}]"
    if isinstance(expr, FieldAccess):
        return f"{format_expression(expr.object)}.{expr.field}"
    if isinstance(expr, FunctionCall):
        args = ", ".join(format_expression(a) for a in expr.arguments)
        return f"{expr.name}({args})"
    if isinstance(expr, BinaryExpression):
        return (
            f"{format_expression(expr.left)} {expr.operator.value} "
            f"{format_expression(expr.right)}"
        )
    if isinstance(expr, UnaryExpression):
        return f"{expr.operator.value} {format_expression(expr.operand)}"
    if isinstance(expr, ParenExpression):
        return f"({format_expression(expr.expression)})"
    return "?"


def format_type(type_expr: Optional[TypeExpression]) -> str:
    """Render a type expression the way it is written in Algo."""
    if isinstance(type_expr, (PrimitiveType, TypeReference)):
        return type_expr.name
    if isinstance(type_expr, ArrayType):
        dims = "".join(f"[{format_expression(d)}]" for d in type_expr.dimensions)
        return f"ARRAY {dims} OF {format_type(type_expr.element_type)}"
    if isinstance(type_expr, StructureType):
        return "STRUCTURE"
    if isinstance(type_expr, EnumType):
        return f"({', '.join(type_expr.values)})"
    return "UNKNOWN"


def format_parameter(param: Parameter) -> str:
    prefix = "VAR " if param.by_reference else ""
    return f"{prefix}{param.name}: {format_type(param.param_type)}"
