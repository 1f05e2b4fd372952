"""
Algo Parser Test Suite
======================

Tests for the recursive descent parser: program structure, declarations,
statements, expression precedence, spans and fail-fast error reporting.
"""

import pytest

from usdb_algo.ast import (
    ArrayAccess,
    ArrayType,
    AssignmentStatement,
    ASTPrinter,
    BinaryExpression,
    BinaryOperator,
    BlockStatement,
    CallStatement,
    DoWhileStatement,
    EnumType,
    FieldAccess,
    ForStatement,
    FunctionCall,
    FunctionDeclaration,
    Identifier,
    IfStatement,
    IntegerLiteral,
    ParenExpression,
    PrimitiveType,
    PrintStatement,
    ProcedureDeclaration,
    RealLiteral,
    ReturnStatement,
    ScanStatement,
    StringLiteral,
    StructureType,
    SwitchStatement,
    TypeReference,
    UnaryExpression,
    UnaryOperator,
    WhileStatement,
    format_expression,
)
from usdb_algo.errors import ParserError
from usdb_algo.lexer import AlgoLexer
from usdb_algo.parser import AlgoParser, parse


def parse_ok(source: str):
    """Parse source and return the Program, failing the test on errors."""
    result = parse(source)
    assert result.errors == [], [e.display() for e in result.errors]
    assert result.success
    return result.ast


def body_of(statements: str, declarations: str = ""):
    """Main body statements of a program wrapping the given text."""
    return parse_ok(f"ALGORITHM T\n{declarations}\nBEGIN\n{statements}\nEND.").body


def expr_of(expression: str):
    """The value expression of `x <- <expression>`."""
    return body_of(f"x <- {expression}")[0].value


# =============================================================================
# Program Structure
# =============================================================================

class TestProgramStructure:
    """Tests for the ALGORITHM ... BEGIN ... END. skeleton."""

    def test_minimal_program(self):
        program = parse_ok("ALGORITHM Hello BEGIN END.")
        assert program.name == "Hello"
        assert program.body == []

    def test_program_span(self):
        program = parse_ok("ALGORITHM T\nBEGIN\nEND.")
        assert program.span.start.line == 1
        assert program.span.end.line == 3

    def test_declaration_blocks_any_order(self):
        """CONST, TYPE and VAR blocks may repeat in any order."""
        program = parse_ok(
            "ALGORITHM T\n"
            "VAR a : INTEGER\n"
            "CONST N = 3\n"
            "VAR b : REAL\n"
            "TYPE Color = (Red, Green)\n"
            "CONST M = 4\n"
            "BEGIN END."
        )
        assert [c.name for c in program.constants] == ["N", "M"]
        assert [v.names for v in program.variables] == [["a"], ["b"]]
        assert program.types[0].name == "Color"

    def test_optional_semicolons(self):
        program = parse_ok("ALGORITHM T VAR a : INTEGER; b : REAL; BEGIN a <- 1; b <- 2.0; END.")
        assert len(program.variables) == 2
        assert len(program.body) == 2

    def test_missing_final_dot(self):
        result = parse("ALGORITHM T BEGIN END")
        assert not result.success
        assert "Expected '.' at end of program" in result.errors[0].message

    def test_missing_algorithm_keyword(self):
        result = parse("BEGIN END.")
        assert result.ast is None
        assert "ALGORITHM" in result.errors[0].message


# =============================================================================
# Declarations
# =============================================================================

class TestDeclarations:
    """Tests for constants, types, variables and routines."""

    def test_constants(self):
        program = parse_ok('ALGORITHM T CONST N = 10 PI = 3.14 NAME = "x" NEG = -2 BEGIN END.')
        values = [c.value for c in program.constants]
        assert isinstance(values[0], IntegerLiteral) and values[0].value == 10
        assert isinstance(values[1], RealLiteral) and values[1].value == 3.14
        assert isinstance(values[2], StringLiteral) and values[2].value == "x"
        assert values[3].value == -2

    def test_variable_list(self):
        program = parse_ok("ALGORITHM T VAR a, b, c : INTEGER BEGIN END.")
        declaration = program.variables[0]
        assert declaration.names == ["a", "b", "c"]
        assert isinstance(declaration.var_type, PrimitiveType)
        assert declaration.var_type.name == "INTEGER"

    def test_array_type(self):
        program = parse_ok("ALGORITHM T VAR m : ARRAY[3][4] OF REAL BEGIN END.")
        array = program.variables[0].var_type
        assert isinstance(array, ArrayType)
        assert [d.value for d in array.dimensions] == [3, 4]
        assert array.element_type.name == "REAL"

    def test_structure_type(self):
        program = parse_ok(
            "ALGORITHM T TYPE Point = STRUCTURE BEGIN x, y : REAL label : STRING END BEGIN END."
        )
        structure = program.types[0].definition
        assert isinstance(structure, StructureType)
        assert [f.names for f in structure.fields] == [["x", "y"], ["label"]]

    def test_enum_type(self):
        program = parse_ok("ALGORITHM T TYPE Day = (Mon, Tue, Wed) BEGIN END.")
        definition = program.types[0].definition
        assert isinstance(definition, EnumType)
        assert definition.values == ["Mon", "Tue", "Wed"]

    def test_type_reference(self):
        program = parse_ok(
            "ALGORITHM T TYPE Point = STRUCTURE BEGIN x : REAL END VAR p : Point BEGIN END."
        )
        assert isinstance(program.variables[0].var_type, TypeReference)

    def test_function_declaration(self):
        program = parse_ok(
            "ALGORITHM T\n"
            "FUNCTION square(n : INTEGER) : INTEGER\n"
            "VAR r : INTEGER\n"
            "BEGIN\n"
            "  r <- n * n\n"
            "  RETURN(r)\n"
            "END\n"
            "BEGIN END."
        )
        function = program.functions[0]
        assert isinstance(function, FunctionDeclaration)
        assert function.name == "square"
        assert function.parameters[0].name == "n"
        assert not function.parameters[0].by_reference
        assert function.return_type.name == "INTEGER"
        assert function.variables[0].names == ["r"]
        assert isinstance(function.body[1], ReturnStatement)

    def test_procedure_with_var_parameter(self):
        program = parse_ok(
            "ALGORITHM T\n"
            "PROCEDURE swap(VAR a : INTEGER, VAR b : INTEGER)\n"
            "VAR t : INTEGER\n"
            "BEGIN t <- a a <- b b <- t END;\n"
            "BEGIN END."
        )
        procedure = program.procedures[0]
        assert isinstance(procedure, ProcedureDeclaration)
        assert [p.by_reference for p in procedure.parameters] == [True, True]
        assert len(procedure.body) == 3

    def test_routines_in_source_order(self):
        program = parse_ok(
            "ALGORITHM T\n"
            "PROCEDURE p() BEGIN END\n"
            "FUNCTION f() : INTEGER BEGIN RETURN(1) END\n"
            "PROCEDURE q() BEGIN END\n"
            "BEGIN END."
        )
        assert [p.name for p in program.procedures] == ["p", "q"]
        assert [f.name for f in program.functions] == ["f"]


# =============================================================================
# Statements
# =============================================================================

class TestStatements:
    """Tests for each statement form."""

    def test_assignment(self):
        statement = body_of("x <- 5")[0]
        assert isinstance(statement, AssignmentStatement)
        assert statement.target == Identifier(name="x")
        assert statement.value == IntegerLiteral(value=5)

    def test_assignment_to_array_and_field(self):
        statements = body_of("t[i, j] <- 1\np.x <- 2")
        assert isinstance(statements[0].target, ArrayAccess)
        assert len(statements[0].target.indices) == 2
        assert isinstance(statements[1].target, FieldAccess)
        assert statements[1].target.field == "x"

    def test_if_then_else(self):
        statement = body_of('IF (x > 0) THEN PRINT("pos") ELSE PRINT("neg")')[0]
        assert isinstance(statement, IfStatement)
        assert len(statement.then_branch) == 1
        assert len(statement.else_branch) == 1

    def test_if_without_else(self):
        statement = body_of("IF (x > 0) THEN BEGIN x <- 1 y <- 2 END")[0]
        assert len(statement.then_branch) == 2
        assert statement.else_branch is None

    def test_while(self):
        statement = body_of("WHILE (i < 10) DO i <- i + 1")[0]
        assert isinstance(statement, WhileStatement)
        assert len(statement.body) == 1

    def test_do_while(self):
        statement = body_of("DO BEGIN i <- i + 1 END WHILE (i < 10)")[0]
        assert isinstance(statement, DoWhileStatement)
        assert len(statement.body) == 1
        assert isinstance(statement.condition, BinaryExpression)

    def test_for_without_step(self):
        statement = body_of("FOR i <- 1 TO 10 DO PRINT(i)")[0]
        assert isinstance(statement, ForStatement)
        assert statement.variable == "i"
        assert statement.step is None

    def test_for_with_negative_step(self):
        statement = body_of("FOR i <- 10 TO 1 STEP -1 DO PRINT(i)")[0]
        assert isinstance(statement.step, UnaryExpression)
        assert statement.step.operator == UnaryOperator.NEGATE

    def test_switch(self):
        statement = body_of(
            "SWITCH x BEGIN\n"
            "  CASE 1, 2 : PRINT(\"low\")\n"
            "  CASE 3 : BEGIN PRINT(\"three\") x <- 0 END\n"
            "  DEFAULT : PRINT(\"other\")\n"
            "END"
        )[0]
        assert isinstance(statement, SwitchStatement)
        assert [len(c.values) for c in statement.cases] == [2, 1]
        assert len(statement.cases[1].body) == 2
        assert len(statement.default_case) == 1

    def test_switch_without_default(self):
        statement = body_of("SWITCH x BEGIN CASE 1 : x <- 2 END")[0]
        assert statement.default_case is None

    def test_procedure_call_with_and_without_parentheses(self):
        statements = body_of("greet\nshow(1, 2)")
        assert statements[0] == CallStatement(name="greet", arguments=[])
        assert isinstance(statements[1], CallStatement)
        assert len(statements[1].arguments) == 2

    def test_scan_and_print(self):
        statements = body_of('SCAN(a, t[1])\nPRINT("sum", a + 1)')
        assert isinstance(statements[0], ScanStatement)
        assert len(statements[0].targets) == 2
        assert isinstance(statements[1], PrintStatement)
        assert len(statements[1].expressions) == 2

    def test_nested_block(self):
        statement = body_of("BEGIN x <- 1 END")[0]
        assert isinstance(statement, BlockStatement)

    def test_statement_spans(self):
        statements = body_of("x <- 1\n  y <- 2")
        assert statements[1].span.start.line == 5
        assert statements[1].span.start.column == 3


# =============================================================================
# Expressions
# =============================================================================

class TestExpressions:
    """Tests for precedence, associativity and postfix forms."""

    def test_multiplication_binds_tighter(self):
        expr = expr_of("1 + 2 * 3")
        assert expr.operator == BinaryOperator.ADD
        assert expr.right.operator == BinaryOperator.MULTIPLY

    def test_left_associative_subtraction(self):
        expr = expr_of("10 - 3 - 2")
        assert expr.operator == BinaryOperator.SUBTRACT
        assert isinstance(expr.left, BinaryExpression)
        assert expr.right == IntegerLiteral(value=2)

    def test_power_right_associative(self):
        expr = expr_of("2 ^ 3 ^ 2")
        assert expr.operator == BinaryOperator.POWER
        assert expr.left == IntegerLiteral(value=2)
        assert expr.right.operator == BinaryOperator.POWER

    def test_power_above_multiplication(self):
        expr = expr_of("2 * 3 ^ 2")
        assert expr.operator == BinaryOperator.MULTIPLY
        assert expr.right.operator == BinaryOperator.POWER

    def test_logical_precedence(self):
        """OR is lowest, then AND, then the relational operators."""
        expr = expr_of("a < 1 OR b > 2 AND c = 3")
        assert expr.operator == BinaryOperator.OR
        assert expr.right.operator == BinaryOperator.AND
        assert expr.right.right.operator == BinaryOperator.EQUAL

    @pytest.mark.parametrize("text,operator", [
        ("a DIV b", BinaryOperator.INT_DIVIDE),
        ("a MOD b", BinaryOperator.MODULO),
        ("a <> b", BinaryOperator.NOT_EQUAL),
        ("a != b", BinaryOperator.NOT_EQUAL),
        ("a <= b", BinaryOperator.LESS_EQUAL),
        ("a >= b", BinaryOperator.GREATER_EQUAL),
    ])
    def test_operator_mapping(self, text, operator):
        assert expr_of(text).operator == operator

    def test_unary_operators(self):
        assert expr_of("-a").operator == UnaryOperator.NEGATE
        assert expr_of("NOT done").operator == UnaryOperator.NOT

    def test_parenthesised(self):
        expr = expr_of("(1 + 2) * 3")
        assert isinstance(expr.left, ParenExpression)

    def test_function_call(self):
        expr = expr_of("max(a, b + 1)")
        assert isinstance(expr, FunctionCall)
        assert expr.name == "max"
        assert len(expr.arguments) == 2

    def test_chained_indexing_merges(self):
        """t[i][j] and t[i, j] produce the same node."""
        assert expr_of("t[i][j]") == expr_of("t[i, j]")

    def test_field_of_array_element(self):
        expr = expr_of("people[2].age")
        assert isinstance(expr, FieldAccess)
        assert isinstance(expr.object, ArrayAccess)

    def test_field_of_call_result(self):
        expr = expr_of("mk().x")
        assert isinstance(expr, FieldAccess)
        assert expr.field == "x"
        assert isinstance(expr.object, FunctionCall)
        assert expr.object.name == "mk"

    def test_index_of_call_result(self):
        expr = expr_of("row(i)[j]")
        assert isinstance(expr, ArrayAccess)
        assert isinstance(expr.array, FunctionCall)
        assert expr.array.arguments == [Identifier(name="i")]
        assert expr.indices == [Identifier(name="j")]

    def test_mixed_chain_after_call(self):
        expr = expr_of("grid(1)[2].cells[3, 4]")
        assert isinstance(expr, ArrayAccess)
        assert len(expr.indices) == 2
        assert isinstance(expr.array, FieldAccess)
        assert isinstance(expr.array.object.array, FunctionCall)

    def test_call_requires_a_name(self):
        """Only an identifier can be called, so f(x)(y) is rejected."""
        result = parse("ALGORITHM T VAR x : INTEGER BEGIN x <- f(x)(1) END.")
        assert result.ast is None
        assert len(result.errors) == 1

    def test_format_expression(self):
        assert format_expression(expr_of("a + b * 2")) == "a + b * 2"
        assert format_expression(expr_of("-x")) == "- x"


# =============================================================================
# Errors
# =============================================================================

class TestParserErrors:
    """The parser stops at the first syntax error."""

    def test_single_error_reported(self):
        result = parse("ALGORITHM T\nBEGIN\n  x <- \n  y <- \nEND.")
        assert result.ast is None
        assert len(result.errors) == 1
        assert isinstance(result.errors[0], ParserError)

    def test_missing_then(self):
        result = parse("ALGORITHM T\nBEGIN\n  IF (x > 0) PRINT(x)\nEND.")
        error = result.errors[0]
        assert "Expected 'THEN'" in error.message
        assert error.location.line == 3

    def test_error_carries_source_line(self):
        result = parse("ALGORITHM T\nBEGIN\n  IF (x > 0) PRINT(x)\nEND.")
        assert "IF (x > 0) PRINT(x)" in str(result.errors[0])

    def test_lexer_errors_abort_parse(self):
        """Lexer errors are surfaced as parser errors and no AST is built."""
        result = parse("ALGORITHM T BEGIN x <- @ END.")
        assert result.ast is None
        assert all(isinstance(e, ParserError) for e in result.errors)
        assert "Unexpected character '@'" in result.errors[0].message

    def test_parser_raises_directly(self):
        """AlgoParser itself raises; parse() converts to data."""
        tokens = AlgoLexer("ALGORITHM T BEGIN").tokenize()
        with pytest.raises(ParserError):
            AlgoParser(tokens).parse()

    def test_assignment_needs_arrow(self):
        result = parse("ALGORITHM T BEGIN t[1] 5 END.")
        assert "Expected '<-'" in result.errors[0].message


# =============================================================================
# AST Printer
# =============================================================================

class TestASTPrinter:
    """Tests for the debugging pretty printer."""

    def test_print_program(self):
        program = parse_ok(
            "ALGORITHM Demo VAR i : INTEGER BEGIN FOR i <- 1 TO 3 DO PRINT(i) END."
        )
        text = ASTPrinter().print(program)
        assert "Program: Demo" in text
        assert "Var: i : INTEGER" in text
        assert "For: i <- 1 TO 3" in text
        assert "Print: i" in text
