"""
C Code Generator Test Suite
===========================

Tests for the lowering of declarations, statements and expressions to
C99, and for the shallow printf/scanf format inference.
"""

import pytest

from usdb_algo.ast import (
    BinaryExpression,
    BinaryOperator,
    IntegerLiteral,
    ParenExpression,
    Program,
    RealLiteral,
    UnaryExpression,
    UnaryOperator,
)
from usdb_algo.codegen import (
    C_HEADERS,
    CodeGenerator,
    escape_string,
    generate,
    is_negative_literal,
)
from usdb_algo.parser import parse


def c_code(source: str, indent: str = "    ") -> str:
    """Generate C for source, which must parse cleanly."""
    result = parse(source)
    assert result.success, [e.display() for e in result.errors]
    generated = generate(result.ast, indent)
    assert generated.errors == []
    return generated.code


def c_lines(source: str) -> list[str]:
    return [line.strip() for line in c_code(source).splitlines()]


def main_of(statements: str, declarations: str = "") -> list[str]:
    """Stripped lines of the main() body for a wrapped program."""
    lines = c_lines(f"ALGORITHM T {declarations} BEGIN {statements} END.")
    start = lines.index("int main(void) {")
    return lines[start + 1:-2]


# =============================================================================
# Program Layout
# =============================================================================

class TestProgramLayout:
    """Tests for the fixed skeleton of the generated file."""

    def test_header_and_includes(self):
        lines = c_code("ALGORITHM Hello BEGIN END.").splitlines()
        assert lines[0] == "// Generated from USDB Algorithmic Language"
        assert lines[1] == "// Algorithm: Hello"
        for header in C_HEADERS:
            assert f"#include <{header}>" in lines

    def test_empty_main(self):
        code = c_code("ALGORITHM Hello BEGIN END.")
        assert code.endswith("int main(void) {\n    return 0;\n}")

    def test_single_main(self):
        code = c_code(
            "ALGORITHM T PROCEDURE p() BEGIN END FUNCTION f() : INTEGER BEGIN RETURN(1) END BEGIN END."
        )
        assert code.count("int main(") == 1

    def test_section_order(self):
        code = c_code(
            "ALGORITHM T\n"
            "CONST N = 3\n"
            "TYPE P = STRUCTURE BEGIN x : INTEGER END\n"
            "VAR g : INTEGER\n"
            "FUNCTION f() : INTEGER BEGIN RETURN(N) END\n"
            "BEGIN g <- f() END."
        )
        positions = [
            code.index("#include <stdio.h>"),
            code.index("typedef struct {"),
            code.index("#define N 3"),
            code.index("int g;"),
            code.index("int f(void);"),
            code.index("int f(void) {"),
            code.index("int main(void) {"),
        ]
        assert positions == sorted(positions)

    def test_generator_is_reusable(self):
        program = parse("ALGORITHM T VAR x : INTEGER BEGIN x <- 1 END.").ast
        generator = CodeGenerator()
        assert generator.generate(program).code == generator.generate(program).code

    def test_custom_indent(self):
        code = c_code("ALGORITHM T VAR x : INTEGER BEGIN x <- 1 END.", indent="\t")
        assert "\tx = 1;" in code.splitlines()


# =============================================================================
# Declarations
# =============================================================================

class TestDeclarations:
    """Tests for constants, types, variables and routine signatures."""

    def test_constants_become_defines(self):
        lines = c_lines('ALGORITHM T CONST N = 10 PI = 3.14 MSG = "hi" OK = TRUE BEGIN END.')
        assert "#define N 10" in lines
        assert "#define PI 3.14" in lines
        assert '#define MSG "hi"' in lines
        assert "#define OK true" in lines

    @pytest.mark.parametrize("algo_type,c_decl", [
        ("INTEGER", "int v;"),
        ("REAL", "double v;"),
        ("BOOLEAN", "bool v;"),
        ("CHAR", "char v;"),
        ("STRING", "char* v;"),
        ("ARRAY[5] OF INTEGER", "int v[5];"),
        ("ARRAY[3][4] OF REAL", "double v[3][4];"),
    ])
    def test_variable_types(self, algo_type, c_decl):
        assert c_decl in c_lines(f"ALGORITHM T VAR v : {algo_type} BEGIN END.")

    def test_one_declaration_per_name(self):
        lines = c_lines("ALGORITHM T VAR a, b : INTEGER BEGIN END.")
        assert "int a;" in lines and "int b;" in lines

    def test_structure_typedef(self):
        lines = c_lines(
            "ALGORITHM T TYPE Point = STRUCTURE BEGIN x, y : REAL tags : ARRAY[2] OF INTEGER END "
            "VAR p : Point BEGIN END."
        )
        start = lines.index("typedef struct {")
        assert lines[start + 1:start + 5] == ["double x;", "double y;", "int tags[2];", "} Point;"]
        assert "Point p;" in lines

    def test_enum_typedef(self):
        lines = c_lines("ALGORITHM T TYPE Color = (Red, Green) BEGIN END.")
        assert "typedef enum { Red, Green } Color;" in lines

    def test_prototypes_and_definitions(self):
        lines = c_lines(
            "ALGORITHM T\n"
            "FUNCTION add(a : INTEGER, b : INTEGER) : INTEGER BEGIN RETURN(a + b) END\n"
            "PROCEDURE hello() BEGIN PRINT(\"hi\") END\n"
            "BEGIN END."
        )
        assert "int add(int a, int b);" in lines
        assert "void hello(void);" in lines
        assert "int add(int a, int b) {" in lines
        assert "return (a + b);" in lines

    def test_routine_locals(self):
        lines = c_lines(
            "ALGORITHM T\n"
            "PROCEDURE p() CONST K = 2 VAR t : REAL BEGIN t <- K END\n"
            "BEGIN END."
        )
        assert "const int K = 2;" in lines
        assert "double t;" in lines
        assert "#define K 2" not in lines


# =============================================================================
# Statements
# =============================================================================

class TestStatements:
    """Tests for statement lowering."""

    def test_assignment(self):
        assert main_of("x <- 5", "VAR x : INTEGER") == ["x = 5;"]

    def test_if_else(self):
        assert main_of("IF (x > 0) THEN x <- 1 ELSE x <- 2", "VAR x : INTEGER") == [
            "if ((x > 0)) {", "x = 1;", "} else {", "x = 2;", "}",
        ]

    def test_if_without_else(self):
        assert main_of("IF (x > 0) THEN x <- 1", "VAR x : INTEGER") == [
            "if ((x > 0)) {", "x = 1;", "}",
        ]

    def test_while(self):
        assert main_of("WHILE (x < 3) DO x <- x + 1", "VAR x : INTEGER") == [
            "while ((x < 3)) {", "x = (x + 1);", "}",
        ]

    def test_do_while(self):
        assert main_of("DO x <- x + 1 WHILE (x < 3)", "VAR x : INTEGER") == [
            "do {", "x = (x + 1);", "} while ((x < 3));",
        ]

    def test_for_default_step(self):
        assert main_of("FOR i <- 1 TO 10 DO PRINT(i)", "VAR i : INTEGER")[0] == (
            "for (i = 1; i <= 10; i++) {"
        )

    def test_for_negative_step_keeps_less_equal(self):
        """Direction never comes from the sign of STEP."""
        assert main_of("FOR i <- 10 TO 1 STEP -1 DO PRINT(i)", "VAR i : INTEGER")[0] == (
            "for (i = 10; i <= 1; i += -1) {"
        )

    def test_for_descending_range_without_step(self):
        assert main_of("FOR i <- 10 TO 1 DO PRINT(i)", "VAR i : INTEGER")[0] == (
            "for (i = 10; i <= 1; i++) {"
        )

    def test_for_positive_step(self):
        assert main_of("FOR i <- 0 TO 10 STEP 2 DO PRINT(i)", "VAR i : INTEGER")[0] == (
            "for (i = 0; i <= 10; i += 2) {"
        )

    def test_switch(self):
        body = main_of(
            'SWITCH x BEGIN CASE 1, 2 : PRINT("low") DEFAULT : PRINT("high") END',
            "VAR x : INTEGER",
        )
        assert body == [
            "switch (x) {",
            "case 1:",
            "case 2:",
            'printf("%s\\n", "low");',
            "break;",
            "default:",
            'printf("%s\\n", "high");',
            "break;",
            "}",
        ]

    def test_nested_block_is_flattened(self):
        assert main_of("BEGIN x <- 1 END", "VAR x : INTEGER") == ["x = 1;"]

    def test_procedure_call(self):
        body = main_of("greet greet()", 'PROCEDURE greet() BEGIN PRINT("hi") END')
        assert body == ["greet();", "greet();"]


# =============================================================================
# Print and Scan Formats
# =============================================================================

class TestFormats:
    """Tests for printf/scanf format inference."""

    def test_print_integer_variable(self):
        assert main_of("PRINT(x)", "VAR x : INTEGER") == ['printf("%d\\n", x);']

    def test_print_mixed(self):
        body = main_of('PRINT("r=", r, c)', "VAR r : REAL c : CHAR")
        assert body == ['printf("%s%f%c\\n", "r=", r, c);']

    def test_print_real_expression(self):
        body = main_of("PRINT(r * 2)", "VAR r : REAL")
        assert body == ['printf("%f\\n", (r * 2));']

    def test_print_math_builtin(self):
        body = main_of("PRINT(sqrt(x))", "VAR x : INTEGER")
        assert body == ['printf("%f\\n", sqrt(x));']

    def test_print_array_element_is_shallow(self):
        body = main_of("PRINT(t[1])", "VAR t : ARRAY[3] OF REAL")
        assert body == ['printf("%d\\n", t[1]);']

    @pytest.mark.parametrize("algo_type,fmt", [
        ("INTEGER", "%d"),
        ("REAL", "%lf"),
        ("CHAR", " %c"),
        ("STRING", "%s"),
    ])
    def test_scan_formats(self, algo_type, fmt):
        assert main_of("SCAN(v)", f"VAR v : {algo_type}") == [f'scanf("{fmt}", &v);']

    def test_scan_several_targets(self):
        body = main_of("SCAN(a, t[0])", "VAR a : REAL t : ARRAY[2] OF REAL")
        assert body == ['scanf("%lf", &a);', 'scanf("%d", &t[0]);']

    def test_routine_types_are_local(self):
        code = c_code(
            "ALGORITHM T\n"
            "VAR v : INTEGER\n"
            "PROCEDURE p() VAR v : REAL BEGIN PRINT(v) END\n"
            "BEGIN PRINT(v) END."
        )
        assert 'printf("%f\\n", v);' in code
        assert 'printf("%d\\n", v);' in code


# =============================================================================
# Expressions
# =============================================================================

class TestExpressions:
    """Tests for expression lowering."""

    def test_binary_is_parenthesised(self):
        assert main_of("x <- a + b * c", "VAR x, a, b, c : INTEGER") == ["x = (a + (b * c));"]

    def test_postfix_after_call(self):
        lines = c_lines(
            "ALGORITHM T\n"
            "TYPE P = STRUCTURE BEGIN x : INTEGER END\n"
            "VAR r : INTEGER\n"
            "FUNCTION mk() : P VAR p : P BEGIN p.x <- 1 RETURN(p) END\n"
            "BEGIN r <- mk().x END."
        )
        assert "r = mk().x;" in lines

    def test_power_uses_pow(self):
        assert main_of("r <- x ^ 2", "VAR r, x : REAL") == ["r = pow(x, 2);"]

    @pytest.mark.parametrize("algo,c", [
        ("a DIV b", "(a / b)"),
        ("a MOD b", "(a % b)"),
        ("a = b", "(a == b)"),
        ("a <> b", "(a != b)"),
        ("a AND b", "(a && b)"),
        ("a OR b", "(a || b)"),
        ("NOT a", "!a"),
        ("-a", "-a"),
        ("(a)", "(a)"),
    ])
    def test_operators(self, algo, c):
        assert main_of(f"x <- {algo}", "VAR x, a, b : INTEGER") == [f"x = {c};"]

    def test_literals(self):
        body = main_of("b <- TRUE c <- 'q' s <- \"a\\\"b\"", "VAR b : BOOLEAN c : CHAR s : STRING")
        assert body == ["b = true;", "c = 'q';", 's = "a\\"b";']

    def test_array_and_field_access(self):
        body = main_of(
            "m[1, 2] <- p.x",
            "TYPE P = STRUCTURE BEGIN x : INTEGER END VAR m : ARRAY[3][3] OF INTEGER p : P",
        )
        assert body == ["m[1][2] = p.x;"]

    @pytest.mark.parametrize("algo,c", [
        ("ln(r)", "log(r)"),
        ("log(r)", "log10(r)"),
        ("abs(r)", "abs(r)"),
        ("sqrt(r)", "sqrt(r)"),
    ])
    def test_builtin_names(self, algo, c):
        assert main_of(f"r <- {algo}", "VAR r : REAL") == [f"r = {c};"]


# =============================================================================
# VAR Parameters
# =============================================================================

class TestReferenceParameters:
    """VAR parameters become pointers; uses and arguments stay as written."""

    SOURCE = (
        "ALGORITHM T\n"
        "VAR x, y : INTEGER\n"
        "PROCEDURE swap(VAR a : INTEGER, VAR b : INTEGER)\n"
        "VAR t : INTEGER\n"
        "BEGIN t <- a a <- b b <- t END\n"
        "BEGIN swap(x, y) END."
    )

    def test_pointer_parameters(self):
        assert "void swap(int *a, int *b);" in c_lines(self.SOURCE)

    def test_body_uses_names_as_written(self):
        lines = c_lines(self.SOURCE)
        assert "t = a;" in lines
        assert "a = b;" in lines
        assert "b = t;" in lines

    def test_no_address_of_at_call_site(self):
        assert "swap(x, y);" in c_lines(self.SOURCE)

    def test_user_routine_named_like_a_builtin(self):
        lines = c_lines(
            "ALGORITHM T VAR r : REAL FUNCTION ln(v : REAL) : REAL BEGIN RETURN(v) END "
            "BEGIN r <- ln(2.0) END."
        )
        assert "r = ln(2.0);" in lines

    def test_value_parameters_unchanged(self):
        lines = c_lines(
            "ALGORITHM T VAR x : INTEGER PROCEDURE show(n : INTEGER) BEGIN PRINT(n) END "
            "BEGIN show(x + 1) END."
        )
        assert "show((x + 1));" in lines


# =============================================================================
# Helpers
# =============================================================================

class TestHelpers:
    """Tests for module-level helpers."""

    @pytest.mark.parametrize("expr,expected", [
        (IntegerLiteral(value=-1), True),
        (UnaryExpression(operator=UnaryOperator.NEGATE, operand=IntegerLiteral(value=2)), True),
        (ParenExpression(expression=UnaryExpression(
            operator=UnaryOperator.NEGATE, operand=RealLiteral(value=0.5))), True),
        (IntegerLiteral(value=1), False),
        (BinaryExpression(operator=BinaryOperator.SUBTRACT,
                          left=IntegerLiteral(value=0), right=IntegerLiteral(value=1)), False),
    ])
    def test_is_negative_literal(self, expr, expected):
        assert is_negative_literal(expr) is expected

    def test_escape_string(self):
        assert escape_string('say "hi"\n') == 'say \\"hi\\"\\n'

    def test_empty_program(self):
        result = generate(Program(name="Empty"))
        assert result.errors == []
        assert "// Algorithm: Empty" in result.code
