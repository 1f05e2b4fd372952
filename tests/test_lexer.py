"""
Algo Lexer Test Suite
=====================

Tests for tokenization of USDB Algo source: keywords, literals,
operators, comments, positions and error collection.
"""

import pytest

from usdb_algo.errors import LexerError
from usdb_algo.lexer import AlgoLexer, Token, TokenType, tokenize


def token_types(source: str) -> list[TokenType]:
    """Token types of source, EOF included."""
    return [t.type for t in tokenize(source).tokens]


# =============================================================================
# Basic Tokens
# =============================================================================

class TestBasicTokens:
    """Tests for whitespace, EOF and simple token recognition."""

    def test_empty_source(self):
        """Empty source produces only EOF."""
        result = tokenize("")
        assert len(result.tokens) == 1
        assert result.tokens[0].type == TokenType.EOF
        assert result.errors == []

    def test_whitespace_only(self):
        """Whitespace-only source produces only EOF."""
        assert token_types("  \n\t \r\n ") == [TokenType.EOF]

    def test_assignment_statement(self):
        """x <- 42 produces identifier, assign and integer tokens."""
        tokens = tokenize("x <- 42").tokens
        assert [t.type for t in tokens] == [
            TokenType.IDENTIFIER,
            TokenType.ASSIGN,
            TokenType.INTEGER_LITERAL,
            TokenType.EOF,
        ]
        assert tokens[0].value == "x"
        assert tokens[2].value == "42"

    def test_eof_always_last(self):
        """The token list always ends with EOF, even after errors."""
        result = tokenize('x <- "unterminated')
        assert result.tokens[-1].type == TokenType.EOF


# =============================================================================
# Keywords and Identifiers
# =============================================================================

class TestKeywords:
    """Tests for case-insensitive keyword recognition."""

    @pytest.mark.parametrize("spelling", ["begin", "Begin", "BEGIN", "bEgIn"])
    def test_keyword_case_insensitive(self, spelling):
        """Keywords match in any casing."""
        tokens = tokenize(spelling).tokens
        assert tokens[0].type == TokenType.BEGIN

    def test_keyword_preserves_spelling(self):
        """The token value keeps the original casing."""
        tokens = tokenize("Algorithm").tokens
        assert tokens[0].type == TokenType.ALGORITHM
        assert tokens[0].value == "Algorithm"

    def test_control_keywords(self):
        """Control-flow keywords have their own token types."""
        assert token_types("IF THEN ELSE WHILE DO FOR TO STEP SWITCH CASE DEFAULT") == [
            TokenType.IF, TokenType.THEN, TokenType.ELSE, TokenType.WHILE,
            TokenType.DO, TokenType.FOR, TokenType.TO, TokenType.STEP,
            TokenType.SWITCH, TokenType.CASE, TokenType.DEFAULT, TokenType.EOF,
        ]

    def test_operator_keywords(self):
        """AND OR NOT DIV MOD are keywords."""
        assert token_types("and or not div mod") == [
            TokenType.AND, TokenType.OR, TokenType.NOT,
            TokenType.DIV, TokenType.MOD, TokenType.EOF,
        ]

    def test_identifier_with_digits_and_underscore(self):
        """Identifiers may contain digits and underscores after the first letter."""
        tokens = tokenize("total_2").tokens
        assert tokens[0].type == TokenType.IDENTIFIER
        assert tokens[0].value == "total_2"

    def test_keyword_prefix_is_identifier(self):
        """A word that only starts with a keyword is an identifier."""
        tokens = tokenize("ending").tokens
        assert tokens[0].type == TokenType.IDENTIFIER


# =============================================================================
# Literals
# =============================================================================

class TestLiterals:
    """Tests for numeric, string, character and boolean literals."""

    def test_integer_literal(self):
        tokens = tokenize("123").tokens
        assert tokens[0].type == TokenType.INTEGER_LITERAL
        assert tokens[0].value == "123"

    def test_real_literal(self):
        """Reals need a digit on both sides of the dot."""
        tokens = tokenize("3.14").tokens
        assert tokens[0].type == TokenType.REAL_LITERAL
        assert tokens[0].value == "3.14"

    def test_trailing_dot_not_consumed(self):
        """A bare trailing dot is a separate DOT token."""
        assert token_types("3.") == [
            TokenType.INTEGER_LITERAL, TokenType.DOT, TokenType.EOF,
        ]

    def test_string_literal(self):
        tokens = tokenize('"Hello, World"').tokens
        assert tokens[0].type == TokenType.STRING_LITERAL
        assert tokens[0].value == "Hello, World"

    @pytest.mark.parametrize("escape,expected", [
        ("\\n", "\n"),
        ("\\t", "\t"),
        ("\\r", "\r"),
        ("\\\\", "\\"),
        ('\\"', '"'),
        ("\\'", "'"),
    ])
    def test_string_escapes(self, escape, expected):
        """Escape sequences are decoded in string values."""
        tokens = tokenize(f'"a{escape}b"').tokens
        assert tokens[0].value == f"a{expected}b"

    def test_char_literal(self):
        tokens = tokenize("'x'").tokens
        assert tokens[0].type == TokenType.CHAR_LITERAL
        assert tokens[0].value == "x"

    def test_escaped_char_literal(self):
        tokens = tokenize("'\\n'").tokens
        assert tokens[0].type == TokenType.CHAR_LITERAL
        assert tokens[0].value == "\n"

    def test_boolean_literals(self):
        assert token_types("TRUE false") == [TokenType.TRUE, TokenType.FALSE, TokenType.EOF]


# =============================================================================
# Operators and Delimiters
# =============================================================================

class TestOperators:
    """Tests for operator and delimiter tokens."""

    def test_two_character_operators(self):
        assert token_types("<- <= >= <>") == [
            TokenType.ASSIGN, TokenType.LESS_EQUAL, TokenType.GREATER_EQUAL,
            TokenType.NOT_EQUAL, TokenType.EOF,
        ]

    def test_bang_equal_is_not_equal(self):
        """!= is accepted as an alternative spelling of <>."""
        assert token_types("a != b")[1] == TokenType.NOT_EQUAL

    def test_single_character_operators(self):
        assert token_types("+ - * / ^ = < >") == [
            TokenType.PLUS, TokenType.MINUS, TokenType.MULTIPLY, TokenType.DIVIDE,
            TokenType.POWER, TokenType.EQUAL, TokenType.LESS, TokenType.GREATER,
            TokenType.EOF,
        ]

    def test_arrow_power_alias(self):
        """The up-arrow is an alias for ^."""
        assert token_types("2 ↑ 3")[1] == TokenType.POWER

    def test_delimiters(self):
        assert token_types("; , : . ( ) [ ]") == [
            TokenType.SEMICOLON, TokenType.COMMA, TokenType.COLON, TokenType.DOT,
            TokenType.LPAREN, TokenType.RPAREN, TokenType.LBRACKET, TokenType.RBRACKET,
            TokenType.EOF,
        ]

    def test_less_minus_is_assign(self):
        """x<-1 is an assignment, not a comparison with -1."""
        assert token_types("x<-1") == [
            TokenType.IDENTIFIER, TokenType.ASSIGN, TokenType.INTEGER_LITERAL, TokenType.EOF,
        ]


# =============================================================================
# Comments
# =============================================================================

class TestComments:
    """Tests for the three comment styles."""

    def test_line_comment(self):
        assert token_types("// comment\nx") == [TokenType.IDENTIFIER, TokenType.EOF]

    def test_brace_comment(self):
        assert token_types("{ a comment\nover lines } x") == [TokenType.IDENTIFIER, TokenType.EOF]

    def test_c_block_comment(self):
        assert token_types("/* block\n comment */ x") == [TokenType.IDENTIFIER, TokenType.EOF]

    def test_line_tracking_after_comments(self):
        """Line numbers keep counting inside comments."""
        tokens = tokenize("// one\n{ two\n}\n/* four */ x").tokens
        assert tokens[0].line == 4


# =============================================================================
# Positions
# =============================================================================

class TestPositions:
    """Tests for token line, column and offset tracking."""

    def test_columns(self):
        tokens = tokenize("x <- 42").tokens
        assert (tokens[0].line, tokens[0].column) == (1, 1)
        assert (tokens[1].line, tokens[1].column) == (1, 3)
        assert (tokens[2].line, tokens[2].column) == (1, 6)

    def test_offsets_and_lines(self):
        tokens = tokenize("a\n  b").tokens
        assert tokens[1].line == 2
        assert tokens[1].column == 3
        assert tokens[1].offset == 4

    def test_end_location(self):
        """The end location points just past the token."""
        token = tokenize("count").tokens[0]
        assert token.length == 5
        assert token.end_location.column == 6

    def test_filename_carried(self):
        token = AlgoLexer("x", "prog.algo").tokenize()[0]
        assert token.filename == "prog.algo"
        assert str(token.location) == "prog.algo:1:1"


# =============================================================================
# Error Collection
# =============================================================================

class TestLexerErrors:
    """The lexer reports every problem and keeps scanning."""

    def test_invalid_character(self):
        result = tokenize("x @ y")
        assert len(result.errors) == 1
        error = result.errors[0]
        assert isinstance(error, LexerError)
        assert "Unexpected character '@'" in error.message
        assert error.location.column == 3

    def test_scanning_continues_after_error(self):
        """Tokens after an invalid character are still produced."""
        result = tokenize("x @ y")
        values = [t.value for t in result.tokens if t.type == TokenType.IDENTIFIER]
        assert values == ["x", "y"]

    def test_multiple_errors_collected(self):
        result = tokenize("@ # $")
        assert len(result.errors) == 3

    def test_unterminated_string(self):
        result = tokenize('"abc')
        assert len(result.errors) == 1
        assert "Unterminated string literal" in result.errors[0].message

    def test_string_cannot_span_lines(self):
        result = tokenize('"abc\ndef"')
        assert any("Unterminated" in e.message for e in result.errors)

    def test_empty_char_literal(self):
        result = tokenize("''")
        assert "Empty character literal" in result.errors[0].message

    def test_lone_bang(self):
        """'!' without '=' is not an operator."""
        result = tokenize("x ! y")
        assert len(result.errors) == 1
        assert result.errors[0].hint is not None

    def test_error_display(self):
        error = tokenize("\n  @").errors[0]
        assert error.display() == "[ERROR] Line 2, Column 3: Unexpected character '@'"

    def test_lexer_instance_errors(self):
        """AlgoLexer exposes the errors of its last run."""
        lexer = AlgoLexer("a $ b")
        tokens = lexer.tokenize()
        assert len(lexer.errors) == 1
        assert isinstance(tokens[0], Token)
