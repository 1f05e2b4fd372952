"""
USDB Algo Semantic Analyzer
===========================

This module checks a parsed Program for scope and type errors before
code generation.

Analysis Order
--------------
1. Global TYPE declarations
2. Global constants (typed from their literal)
3. Global variables
4. Signatures of every function, then every procedure
5. Bodies of every function, then every procedure, each in its own scope
   holding parameters and local types, constants and variables
6. The main body

Because signatures are registered before any body is analyzed, routines
may call each other regardless of declaration order.

Error Policy
------------
The analyzer never stops early. Every problem becomes a SemanticError
with severity "error" (blocks code generation) or "warning" (reported
only). An undefined name evaluates to the unknown type so analysis of
the surrounding expression continues without cascading errors.
"""

from dataclasses import dataclass, field
from typing import Optional
import logging

from usdb_algo.ast import (
    ArrayAccess,
    ArrayType,
    ASTVisitor,
    AssignmentStatement,
    BinaryExpression,
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
    ParenExpression,
    PrimitiveType,
    PrintStatement,
    ProcedureDeclaration,
    Program,
    RealLiteral,
    ReturnStatement,
    ScanStatement,
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
from usdb_algo.errors import (
    CompilerError,
    DiagnosticCollector,
    SemanticError,
    SourceLocation,
)
from usdb_algo.types import (
    BUILTIN_FUNCTIONS,
    PRIMITIVE_TYPES,
    TYPE_BOOLEAN,
    TYPE_CHAR,
    TYPE_INTEGER,
    TYPE_REAL,
    TYPE_STRING,
    TYPE_UNKNOWN,
    Symbol,
    SymbolType,
    TypeKind,
    arithmetic_result,
    make_array,
    make_enumeration,
    make_function,
    make_procedure,
    make_structure,
)

logger = logging.getLogger(__name__)


# =============================================================================
# Symbol Table
# =============================================================================

class SymbolTable:
    """
    Explicit stack of scopes mapping lowercase names to symbols.

    Named types live in a parallel stack so TYPE declarations local to a
    routine disappear with its scope. Built-in functions sit below the
    global scope and can be shadowed without a redeclaration warning.

    Example:
        table = SymbolTable()
        table.define(Symbol("x", TYPE_INTEGER))
        table.enter_scope()
        table.lookup("X")         # finds the global x
        table.exit_scope()
    """

    def __init__(self):
        self._builtins: dict[str, Symbol] = {
            name: Symbol(name, symbol_type, is_constant=True)
            for name, symbol_type in BUILTIN_FUNCTIONS.items()
        }
        self._scopes: list[dict[str, Symbol]] = [{}]
        self._type_scopes: list[dict[str, SymbolType]] = [{}]

    @property
    def depth(self) -> int:
        """Number of open scopes; 1 means only the global scope."""
        return len(self._scopes)

    def enter_scope(self) -> None:
        self._scopes.append({})
        self._type_scopes.append({})

    def exit_scope(self) -> None:
        """Pop the innermost scope. The global scope is never popped."""
        if len(self._scopes) > 1:
            self._scopes.pop()
            self._type_scopes.pop()

    def define(self, symbol: Symbol) -> None:
        self._scopes[-1][symbol.name.lower()] = symbol

    def lookup(self, name: str) -> Optional[Symbol]:
        """Search from the innermost scope outwards, then the built-ins."""
        key = name.lower()
        for scope in reversed(self._scopes):
            if key in scope:
                return scope[key]
        return self._builtins.get(key)

    def lookup_local(self, name: str) -> Optional[Symbol]:
        return self._scopes[-1].get(name.lower())

    def define_type(self, name: str, symbol_type: SymbolType) -> None:
        self._type_scopes[-1][name.lower()] = symbol_type

    def lookup_type(self, name: str) -> Optional[SymbolType]:
        key = name.lower()
        for scope in reversed(self._type_scopes):
            if key in scope:
                return scope[key]
        return None

    def is_builtin(self, symbol: Symbol) -> bool:
        return self._builtins.get(symbol.name.lower()) is symbol


# =============================================================================
# Analysis Result
# =============================================================================

@dataclass
class AnalysisResult:
    """
    Output of analyze().

    Attributes:
        errors: Every diagnostic, errors and warnings, in source order
    """
    errors: list[CompilerError] = field(default_factory=list)

    @property
    def blocking(self) -> list[CompilerError]:
        return [e for e in self.errors if not e.is_warning]

    @property
    def warnings(self) -> list[CompilerError]:
        return [e for e in self.errors if e.is_warning]

    def has_errors(self) -> bool:
        return bool(self.blocking)


class _ReturnFinder(ASTVisitor):
    """Records whether a statement list contains a RETURN anywhere."""

    def __init__(self):
        self.found = False

    def visit_ReturnStatement(self, node: ReturnStatement):
        self.found = True


# =============================================================================
# Semantic Analyzer
# =============================================================================

class SemanticAnalyzer(ASTVisitor):
    """
    Scope and type checker.

    Statement visitors return nothing; expression visitors return the
    SymbolType of the expression.

    Usage:
        analyzer = SemanticAnalyzer()
        result = analyzer.analyze(program)
        for diagnostic in result.errors:
            print(diagnostic.display())
    """

    def __init__(self):
        self.symbols = SymbolTable()
        self.diagnostics = DiagnosticCollector()
        self._current_routine: Optional[FunctionDeclaration | ProcedureDeclaration] = None
        self._param_types: dict[int, list[SymbolType]] = {}

    def analyze(self, program: Program) -> AnalysisResult:
        self.symbols = SymbolTable()
        self.diagnostics = DiagnosticCollector()
        self._current_routine = None
        self._param_types = {}

        self._declare_types(program.types)
        self._declare_constants(program.constants)
        self._declare_variables(program.variables)

        for function in program.functions:
            params = self._resolve_parameters(function)
            signature = make_function(params, self._resolve_type(function.return_type))
            self._declare(Symbol(function.name, signature, is_constant=True), function)
        for procedure in program.procedures:
            params = self._resolve_parameters(procedure)
            self._declare(Symbol(procedure.name, make_procedure(params), is_constant=True), procedure)

        for function in program.functions:
            self._analyze_routine(function)
        for procedure in program.procedures:
            self._analyze_routine(procedure)

        self.visit_all(program.body)

        logger.debug(
            "Analyzed %s: %d errors, %d warnings",
            program.name, len(self.diagnostics.errors), len(self.diagnostics.warnings),
        )
        return AnalysisResult(errors=self.diagnostics.all())

    # =========================================================================
    # Diagnostics
    # =========================================================================

    @staticmethod
    def _location(node) -> Optional[SourceLocation]:
        """Start of the node's span; None falls back to line 1, column 1."""
        if node is not None and node.span is not None:
            return node.span.start
        return None

    def _error(self, message: str, node=None) -> None:
        self.diagnostics.error(message, self._location(node), SemanticError)

    def _warning(self, message: str, node=None) -> None:
        self.diagnostics.warning(message, self._location(node), SemanticError)

    # =========================================================================
    # Declarations
    # =========================================================================

    def _declare(self, symbol: Symbol, node) -> None:
        if self.symbols.lookup_local(symbol.name) is not None:
            self._warning(f"'{symbol.name}' is already declared in this scope", node)
        self.symbols.define(symbol)

    def _declare_types(self, types: list[TypeDeclaration]) -> None:
        for declaration in types:
            symbol_type = self._resolve_type(declaration.definition)
            self.symbols.define_type(declaration.name, symbol_type)
            if isinstance(declaration.definition, EnumType):
                for ordinal, value in enumerate(declaration.definition.values):
                    self._declare(
                        Symbol(value, TYPE_INTEGER, is_constant=True, constant_value=ordinal),
                        declaration,
                    )

    def _declare_constants(self, constants: list[ConstDeclaration]) -> None:
        for declaration in constants:
            self._declare(
                Symbol(
                    declaration.name,
                    literal_type(declaration.value),
                    is_constant=True,
                    constant_value=declaration.value.value,
                ),
                declaration,
            )

    def _declare_variables(self, variables: list[VarDeclaration]) -> None:
        for declaration in variables:
            symbol_type = self._resolve_type(declaration.var_type)
            for name in declaration.names:
                self._declare(Symbol(name, symbol_type), declaration)

    def _resolve_parameters(self, routine) -> list[SymbolType]:
        """Resolve parameter types once; the body scope reuses them."""
        params = [self._resolve_type(p.param_type) for p in routine.parameters]
        self._param_types[id(routine)] = params
        return params

    def _resolve_type(self, type_expr: TypeExpression) -> SymbolType:
        if isinstance(type_expr, PrimitiveType):
            return PRIMITIVE_TYPES.get(type_expr.name, TYPE_UNKNOWN)

        if isinstance(type_expr, ArrayType):
            dimensions = [
                d.value if isinstance(d, IntegerLiteral) else None
                for d in type_expr.dimensions
            ]
            return make_array(self._resolve_type(type_expr.element_type), dimensions)

        if isinstance(type_expr, StructureType):
            fields = []
            for declaration in type_expr.fields:
                field_type = self._resolve_type(declaration.var_type)
                fields.extend((name, field_type) for name in declaration.names)
            return make_structure(fields)

        if isinstance(type_expr, EnumType):
            return make_enumeration(type_expr.values)

        if isinstance(type_expr, TypeReference):
            resolved = self.symbols.lookup_type(type_expr.name)
            if resolved is not None:
                return resolved
            self._error(f"Undefined type '{type_expr.name}'", type_expr)

        return TYPE_UNKNOWN

    # =========================================================================
    # Routines
    # =========================================================================

    def _analyze_routine(self, routine: FunctionDeclaration | ProcedureDeclaration) -> None:
        self.symbols.enter_scope()
        self._current_routine = routine

        param_types = self._param_types.get(id(routine), [])
        for param, param_type in zip(routine.parameters, param_types):
            self._declare(
                Symbol(
                    param.name,
                    param_type,
                    by_reference=param.by_reference,
                ),
                param,
            )

        self._declare_types(routine.types)
        self._declare_constants(routine.constants)
        self._declare_variables(routine.variables)

        self.visit_all(routine.body)

        if isinstance(routine, FunctionDeclaration):
            finder = _ReturnFinder()
            finder.visit_all(routine.body)
            if not finder.found:
                self._warning(f"Function '{routine.name}' has no RETURN statement", routine)

        self._current_routine = None
        self.symbols.exit_scope()

    def _check_arity(self, symbol: Symbol, arguments: list[Expression], node) -> None:
        if self.symbols.is_builtin(symbol):
            return
        expected = len(symbol.type.params)
        if expected != len(arguments):
            self._warning(
                f"'{symbol.name}' expects {expected} argument(s), got {len(arguments)}", node
            )

    # =========================================================================
    # Statements
    # =========================================================================

    def visit_AssignmentStatement(self, node: AssignmentStatement):
        self._analyze_lvalue(node.target)
        self.visit(node.value)

        if isinstance(node.target, Identifier):
            symbol = self.symbols.lookup(node.target.name)
            if symbol is not None and symbol.is_constant:
                self._error(f"Cannot assign to constant '{node.target.name}'", node.target)

    def visit_IfStatement(self, node: IfStatement):
        self.visit(node.condition)
        self.visit_all(node.then_branch)
        if node.else_branch is not None:
            self.visit_all(node.else_branch)

    def visit_WhileStatement(self, node: WhileStatement):
        self.visit(node.condition)
        self.visit_all(node.body)

    def visit_DoWhileStatement(self, node: DoWhileStatement):
        self.visit_all(node.body)
        self.visit(node.condition)

    def visit_ForStatement(self, node: ForStatement):
        symbol = self.symbols.lookup(node.variable)
        if symbol is None:
            self._error(f"Undefined variable '{node.variable}'", node)
        elif symbol.is_constant:
            self._error(f"Cannot assign to constant '{node.variable}'", node)

        self.visit(node.start)
        self.visit(node.end)
        if node.step is not None:
            self.visit(node.step)
        self.visit_all(node.body)

    def visit_SwitchStatement(self, node: SwitchStatement):
        self.visit(node.expression)
        for case in node.cases:
            self.visit_all(case.values)
            self.visit_all(case.body)
        if node.default_case is not None:
            self.visit_all(node.default_case)

    def visit_CallStatement(self, node: CallStatement):
        symbol = self.symbols.lookup(node.name)
        if symbol is None:
            self._error(f"Undefined procedure '{node.name}'", node)
        elif not symbol.type.is_routine:
            self._error(f"'{node.name}' is not a procedure", node)
        else:
            self._check_arity(symbol, node.arguments, node)
        self.visit_all(node.arguments)

    def visit_ScanStatement(self, node: ScanStatement):
        for target in node.targets:
            self._analyze_lvalue(target)

    def visit_PrintStatement(self, node: PrintStatement):
        self.visit_all(node.expressions)

    def visit_ReturnStatement(self, node: ReturnStatement):
        if isinstance(self._current_routine, ProcedureDeclaration):
            self._warning(
                f"RETURN in procedure '{self._current_routine.name}' has no effect on its caller",
                node,
            )
        self.visit(node.value)

    def visit_BlockStatement(self, node: BlockStatement):
        self.visit_all(node.statements)

    def _analyze_lvalue(self, target: Expression) -> SymbolType:
        if isinstance(target, Identifier):
            symbol = self.symbols.lookup(target.name)
            if symbol is None:
                self._error(f"Undefined variable '{target.name}'", target)
                return TYPE_UNKNOWN
            return symbol.type
        return self.visit(target)

    # =========================================================================
    # Expressions
    # =========================================================================

    def visit_IntegerLiteral(self, node) -> SymbolType:
        return TYPE_INTEGER

    def visit_RealLiteral(self, node) -> SymbolType:
        return TYPE_REAL

    def visit_BooleanLiteral(self, node) -> SymbolType:
        return TYPE_BOOLEAN

    def visit_CharLiteral(self, node) -> SymbolType:
        return TYPE_CHAR

    def visit_StringLiteral(self, node) -> SymbolType:
        return TYPE_STRING

    def visit_Identifier(self, node: Identifier) -> SymbolType:
        symbol = self.symbols.lookup(node.name)
        if symbol is None:
            self._error(f"Undefined identifier '{node.name}'", node)
            return TYPE_UNKNOWN
        return symbol.type

    def visit_BinaryExpression(self, node: BinaryExpression) -> SymbolType:
        left = self.visit(node.left)
        right = self.visit(node.right)
        if node.operator.is_arithmetic:
            return arithmetic_result(left, right)
        return TYPE_BOOLEAN

    def visit_UnaryExpression(self, node: UnaryExpression) -> SymbolType:
        operand = self.visit(node.operand)
        if node.operator == UnaryOperator.NOT:
            return TYPE_BOOLEAN
        return operand

    def visit_ParenExpression(self, node: ParenExpression) -> SymbolType:
        return self.visit(node.expression)

    def visit_ArrayAccess(self, node: ArrayAccess) -> SymbolType:
        array_type = self.visit(node.array)
        self.visit_all(node.indices)
        if array_type.kind == TypeKind.ARRAY:
            return array_type.element_type
        return TYPE_UNKNOWN

    def visit_FieldAccess(self, node: FieldAccess) -> SymbolType:
        object_type = self.visit(node.object)
        if object_type.is_unknown:
            return TYPE_UNKNOWN

        field_type = object_type.field_type(node.field) if object_type.is_structure else None
        if field_type is None:
            self._error(f"Unknown field '{node.field}'", node)
            return TYPE_UNKNOWN
        return field_type

    def visit_FunctionCall(self, node: FunctionCall) -> SymbolType:
        symbol = self.symbols.lookup(node.name)
        if symbol is None:
            self._error(f"Undefined function '{node.name}'", node)
            return TYPE_UNKNOWN
        if symbol.type.kind != TypeKind.FUNCTION:
            self._error(f"'{node.name}' is not a function", node)
            return TYPE_UNKNOWN

        self._check_arity(symbol, node.arguments, node)
        self.visit_all(node.arguments)
        return symbol.type.return_type


# =============================================================================
# Helpers
# =============================================================================

def literal_type(literal: Literal) -> SymbolType:
    """Type of a literal value."""
    if isinstance(literal, IntegerLiteral):
        return TYPE_INTEGER
    if isinstance(literal, RealLiteral):
        return TYPE_REAL
    if isinstance(literal, BooleanLiteral):
        return TYPE_BOOLEAN
    if isinstance(literal, CharLiteral):
        return TYPE_CHAR
    if isinstance(literal, StringLiteral):
        return TYPE_STRING
    return TYPE_UNKNOWN


def analyze(program: Program) -> AnalysisResult:
    """
    Run semantic analysis on a parsed program.

    Returns:
        AnalysisResult holding every error and warning in source order
    """
    return SemanticAnalyzer().analyze(program)
