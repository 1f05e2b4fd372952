"""
USDB Algo Recursive Descent Parser
==================================

This module implements a recursive descent parser for the USDB Algo
language. It takes the token list from the lexer and builds the AST
defined in usdb_algo.ast.

Grammar (Simplified EBNF)
-------------------------
program     ::= ALGORITHM ident decls routine* BEGIN stmts END '.'
decls       ::= (CONST const* | TYPE typedecl* | VAR vardecl*)*
const       ::= ident '=' literal ';'?
typedecl    ::= ident '=' type ';'?
vardecl     ::= ident (',' ident)* ':' type ';'?
routine     ::= FUNCTION ident '(' params ')' ':' type decls BEGIN stmts END ';'?
              | PROCEDURE ident '(' params ')' decls BEGIN stmts END ';'?
params      ::= [param (',' param)*]
param       ::= [VAR] ident ':' type
type        ::= ARRAY ('[' expr ']')+ OF type
              | STRUCTURE BEGIN vardecl* END
              | '(' ident (',' ident)* ')'
              | INTEGER | REAL | BOOLEAN | CHAR | STRING | ident
block       ::= BEGIN stmts END | statement
stmts       ::= (statement | ';')*
statement   ::= IF '(' expr ')' THEN block [ELSE block]
              | WHILE '(' expr ')' DO block
              | DO block WHILE '(' expr ')'
              | FOR ident '<-' expr TO expr [STEP expr] DO block
              | SWITCH expr BEGIN case* [DEFAULT ':' block] END
              | RETURN '(' expr ')'
              | SCAN '(' lvalue (',' lvalue)* ')'
              | PRINT '(' expr (',' expr)* ')'
              | BEGIN stmts END
              | lvalue '<-' expr
              | ident ['(' args ')']

Operator Precedence (lowest to highest)
---------------------------------------
1. OR
2. AND
3. Relational: = <> < > <= >=
4. Additive: + -
5. Multiplicative: * / DIV MOD
6. Power: ^ (right-associative)
7. Unary: - NOT
8. Postfix: [i, j] [i][j] .field (args)

Error Policy
------------
The parser is fail-fast: the first unexpected token raises a ParserError.
parse() catches it and returns it as data, alongside any lexer errors
(which abort the parse before it starts).
"""

from dataclasses import dataclass, field
from typing import Callable, Optional
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
    CaseClause,
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
    LValue,
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
from usdb_algo.errors import CompilerError, ParserError, SourceSpan
from usdb_algo.lexer import AlgoLexer, Token, TokenType

logger = logging.getLogger(__name__)


# Tokens that end a statement list without being consumed by it
STATEMENT_LIST_TERMINATORS = frozenset({
    TokenType.END,
    TokenType.ELSE,
    TokenType.CASE,
    TokenType.DEFAULT,
    TokenType.EOF,
})

LITERAL_TOKENS = frozenset({
    TokenType.INTEGER_LITERAL,
    TokenType.REAL_LITERAL,
    TokenType.STRING_LITERAL,
    TokenType.CHAR_LITERAL,
    TokenType.TRUE,
    TokenType.FALSE,
})

PRIMITIVE_TYPE_TOKENS = {
    TokenType.INTEGER: "INTEGER",
    TokenType.REAL: "REAL",
    TokenType.BOOLEAN: "BOOLEAN",
    TokenType.CHAR: "CHAR",
    TokenType.STRING: "STRING",
}

RELATIONAL_OPERATORS = {
    TokenType.EQUAL: BinaryOperator.EQUAL,
    TokenType.NOT_EQUAL: BinaryOperator.NOT_EQUAL,
    TokenType.LESS: BinaryOperator.LESS,
    TokenType.GREATER: BinaryOperator.GREATER,
    TokenType.LESS_EQUAL: BinaryOperator.LESS_EQUAL,
    TokenType.GREATER_EQUAL: BinaryOperator.GREATER_EQUAL,
}

ADDITIVE_OPERATORS = {
    TokenType.PLUS: BinaryOperator.ADD,
    TokenType.MINUS: BinaryOperator.SUBTRACT,
}

MULTIPLICATIVE_OPERATORS = {
    TokenType.MULTIPLY: BinaryOperator.MULTIPLY,
    TokenType.DIVIDE: BinaryOperator.DIVIDE,
    TokenType.DIV: BinaryOperator.INT_DIVIDE,
    TokenType.MOD: BinaryOperator.MODULO,
}


@dataclass
class ParseResult:
    """
    Output of a parse() call.

    Attributes:
        ast: The Program root, or None when any error occurred
        errors: Lexer errors, or the single ParserError that stopped the parse
    """
    ast: Optional[Program] = None
    errors: list[CompilerError] = field(default_factory=list)

    @property
    def success(self) -> bool:
        return self.ast is not None and not self.errors


class AlgoParser:
    """
    Recursive descent parser for USDB Algo.

    Usage:
        parser = AlgoParser(tokens, source.splitlines())
        program = parser.parse()   # raises ParserError

    Attributes:
        tokens: Token list ending with EOF
        source_lines: Original source lines for error context
    """

    def __init__(self, tokens: list[Token], source_lines: Optional[list[str]] = None):
        self.tokens = tokens
        self.source_lines = source_lines or []
        self._pos = 0

    def parse(self) -> Program:
        """
        Parse the token list into a Program.

        Raises:
            ParserError: On the first syntax error
        """
        start = self._peek()
        self._expect(TokenType.ALGORITHM, "Expected 'ALGORITHM' at start of program")
        name = self._expect(TokenType.IDENTIFIER, "Expected algorithm name").value

        program = Program(name=name)
        self._parse_declarations(program)

        while self._check(TokenType.FUNCTION, TokenType.PROCEDURE):
            if self._check(TokenType.FUNCTION):
                program.functions.append(self._parse_function())
            else:
                program.procedures.append(self._parse_procedure())

        self._expect(TokenType.BEGIN, "Expected 'BEGIN'")
        program.body = self._parse_statement_list()
        self._expect(TokenType.END, "Expected 'END'")
        self._expect(TokenType.DOT, "Expected '.' at end of program")

        program.span = self._span_from(start)
        logger.debug(
            "Parsed algorithm %s: %d functions, %d procedures, %d statements",
            name, len(program.functions), len(program.procedures), len(program.body),
        )
        return program

    # =========================================================================
    # Token Access Methods
    # =========================================================================

    def _peek(self, offset: int = 0) -> Token:
        pos = self._pos + offset
        if pos >= len(self.tokens):
            return self.tokens[-1]
        return self.tokens[pos]

    def _previous(self) -> Token:
        return self.tokens[max(self._pos - 1, 0)]

    def _at_end(self) -> bool:
        return self._peek().type == TokenType.EOF

    def _advance(self) -> Token:
        """Consume and return the current token (EOF is never consumed)."""
        token = self._peek()
        if not self._at_end():
            self._pos += 1
        return token

    def _check(self, *types: TokenType) -> bool:
        return self._peek().type in types

    def _match(self, *types: TokenType) -> Optional[Token]:
        if self._check(*types):
            return self._advance()
        return None

    def _expect(self, token_type: TokenType, message: str) -> Token:
        """
        Consume a token of the given type.

        Raises:
            ParserError: "<message>, got '<token>'" when the type differs
        """
        if self._check(token_type):
            return self._advance()
        raise self._error(message)

    def _error(self, message: str) -> ParserError:
        current = self._peek()
        return ParserError(
            f"{message}, got '{current.describe()}'",
            current.location,
            source_line=self._get_source_line(current.line),
        )

    def _get_source_line(self, line: int) -> Optional[str]:
        if 0 < line <= len(self.source_lines):
            return self.source_lines[line - 1]
        return None

    def _span_from(self, start: Token) -> SourceSpan:
        """Span from the start token to the end of the last consumed token."""
        return SourceSpan(start.location, self._previous().end_location)

    # =========================================================================
    # Declarations
    # =========================================================================

    def _parse_declarations(self, owner) -> None:
        """Parse CONST/TYPE/VAR sections in any order into owner's lists."""
        while True:
            if self._match(TokenType.CONST):
                while self._check(TokenType.IDENTIFIER):
                    owner.constants.append(self._parse_const())
            elif self._match(TokenType.TYPE):
                while self._check(TokenType.IDENTIFIER):
                    owner.types.append(self._parse_type_declaration())
            elif self._match(TokenType.VAR):
                while self._check(TokenType.IDENTIFIER):
                    owner.variables.append(self._parse_var_declaration())
            else:
                return

    def _parse_const(self) -> ConstDeclaration:
        start = self._peek()
        name = self._advance().value
        self._expect(TokenType.EQUAL, "Expected '=' after constant name")
        value = self._parse_literal()
        self._match(TokenType.SEMICOLON)
        return ConstDeclaration(span=self._span_from(start), name=name, value=value)

    def _parse_literal(self) -> Literal:
        """Parse a literal value; '-' followed by a number gives a negative one."""
        start = self._peek()

        if self._match(TokenType.MINUS):
            if token := self._match(TokenType.INTEGER_LITERAL):
                return IntegerLiteral(span=self._span_from(start), value=-int(token.value))
            if token := self._match(TokenType.REAL_LITERAL):
                return RealLiteral(span=self._span_from(start), value=-float(token.value))
            raise self._error("Expected number after '-'")

        if start.type not in LITERAL_TOKENS:
            raise self._error("Expected literal value")

        token = self._advance()
        span = SourceSpan(token.location, token.end_location)
        if token.type == TokenType.INTEGER_LITERAL:
            return IntegerLiteral(span=span, value=int(token.value))
        if token.type == TokenType.REAL_LITERAL:
            return RealLiteral(span=span, value=float(token.value))
        if token.type == TokenType.STRING_LITERAL:
            return StringLiteral(span=span, value=token.value)
        if token.type == TokenType.CHAR_LITERAL:
            return CharLiteral(span=span, value=token.value)
        return BooleanLiteral(span=span, value=token.type == TokenType.TRUE)

    def _parse_type_declaration(self) -> TypeDeclaration:
        start = self._peek()
        name = self._advance().value
        self._expect(TokenType.EQUAL, "Expected '=' after type name")
        definition = self._parse_type()
        self._match(TokenType.SEMICOLON)
        return TypeDeclaration(span=self._span_from(start), name=name, definition=definition)

    def _parse_var_declaration(self) -> VarDeclaration:
        start = self._peek()
        names = [self._advance().value]
        while self._match(TokenType.COMMA):
            names.append(self._expect(TokenType.IDENTIFIER, "Expected variable name").value)
        self._expect(TokenType.COLON, "Expected ':' after variable names")
        var_type = self._parse_type()
        self._match(TokenType.SEMICOLON)
        return VarDeclaration(span=self._span_from(start), names=names, var_type=var_type)

    # =========================================================================
    # Types
    # =========================================================================

    def _parse_type(self) -> TypeExpression:
        start = self._peek()

        if start.type in PRIMITIVE_TYPE_TOKENS:
            self._advance()
            return PrimitiveType(span=self._span_from(start), name=PRIMITIVE_TYPE_TOKENS[start.type])

        if start.type == TokenType.ARRAY:
            return self._parse_array_type()

        if start.type == TokenType.STRUCTURE:
            return self._parse_structure_type()

        if start.type == TokenType.LPAREN:
            self._advance()
            values = [self._expect(TokenType.IDENTIFIER, "Expected enumeration value").value]
            while self._match(TokenType.COMMA):
                values.append(self._expect(TokenType.IDENTIFIER, "Expected enumeration value").value)
            self._expect(TokenType.RPAREN, "Expected ')' after enumeration values")
            return EnumType(span=self._span_from(start), values=values)

        if start.type == TokenType.IDENTIFIER:
            self._advance()
            return TypeReference(span=self._span_from(start), name=start.value)

        raise self._error("Expected type")

    def _parse_array_type(self) -> ArrayType:
        start = self._advance()
        dimensions = []
        self._expect(TokenType.LBRACKET, "Expected '[' after ARRAY")
        while True:
            dimensions.append(self._parse_expression())
            self._expect(TokenType.RBRACKET, "Expected ']'")
            if not self._match(TokenType.LBRACKET):
                break
        self._expect(TokenType.OF, "Expected 'OF' after array dimensions")
        element_type = self._parse_type()
        return ArrayType(
            span=self._span_from(start), dimensions=dimensions, element_type=element_type
        )

    def _parse_structure_type(self) -> StructureType:
        start = self._advance()
        self._expect(TokenType.BEGIN, "Expected 'BEGIN' after STRUCTURE")
        fields = []
        while self._check(TokenType.IDENTIFIER):
            fields.append(self._parse_var_declaration())
        self._expect(TokenType.END, "Expected 'END' after structure fields")
        return StructureType(span=self._span_from(start), fields=fields)

    # =========================================================================
    # Routines
    # =========================================================================

    def _parse_parameters(self) -> list[Parameter]:
        parameters = []
        if self._check(TokenType.RPAREN):
            return parameters

        while True:
            start = self._peek()
            by_reference = self._match(TokenType.VAR) is not None
            name = self._expect(TokenType.IDENTIFIER, "Expected parameter name").value
            self._expect(TokenType.COLON, "Expected ':' after parameter name")
            param_type = self._parse_type()
            parameters.append(Parameter(
                span=self._span_from(start),
                name=name,
                param_type=param_type,
                by_reference=by_reference,
            ))
            if not self._match(TokenType.COMMA):
                return parameters

    def _parse_function(self) -> FunctionDeclaration:
        start = self._advance()
        name = self._expect(TokenType.IDENTIFIER, "Expected function name").value
        self._expect(TokenType.LPAREN, "Expected '(' after function name")
        parameters = self._parse_parameters()
        self._expect(TokenType.RPAREN, "Expected ')' after parameters")
        self._expect(TokenType.COLON, "Expected ':' before return type")
        return_type = self._parse_type()

        function = FunctionDeclaration(name=name, parameters=parameters, return_type=return_type)
        self._parse_routine_tail(function)
        function.span = self._span_from(start)
        return function

    def _parse_procedure(self) -> ProcedureDeclaration:
        start = self._advance()
        name = self._expect(TokenType.IDENTIFIER, "Expected procedure name").value
        self._expect(TokenType.LPAREN, "Expected '(' after procedure name")
        parameters = self._parse_parameters()
        self._expect(TokenType.RPAREN, "Expected ')' after parameters")

        procedure = ProcedureDeclaration(name=name, parameters=parameters)
        self._parse_routine_tail(procedure)
        procedure.span = self._span_from(start)
        return procedure

    def _parse_routine_tail(self, routine) -> None:
        """Local declarations, then BEGIN body END with an optional ';'."""
        self._parse_declarations(routine)
        self._expect(TokenType.BEGIN, "Expected 'BEGIN'")
        routine.body = self._parse_statement_list()
        self._expect(TokenType.END, "Expected 'END'")
        self._match(TokenType.SEMICOLON)

    # =========================================================================
    # Statements
    # =========================================================================

    def _parse_statement_list(self) -> list[Statement]:
        statements = []
        while self._peek().type not in STATEMENT_LIST_TERMINATORS:
            if self._match(TokenType.SEMICOLON):
                continue
            statements.append(self._parse_statement())
        return statements

    def _parse_block(self) -> list[Statement]:
        """BEGIN ... END, or a single statement."""
        if self._match(TokenType.BEGIN):
            statements = self._parse_statement_list()
            self._expect(TokenType.END, "Expected 'END'")
            return statements
        return [self._parse_statement()]

    def _parse_statement(self) -> Statement:
        start = self._peek()

        parsers: dict[TokenType, Callable[[], Statement]] = {
            TokenType.IF: self._parse_if_statement,
            TokenType.WHILE: self._parse_while_statement,
            TokenType.DO: self._parse_do_while_statement,
            TokenType.FOR: self._parse_for_statement,
            TokenType.SWITCH: self._parse_switch_statement,
            TokenType.RETURN: self._parse_return_statement,
            TokenType.SCAN: self._parse_scan_statement,
            TokenType.PRINT: self._parse_print_statement,
            TokenType.BEGIN: self._parse_block_statement,
            TokenType.IDENTIFIER: self._parse_assignment_or_call,
        }

        parser = parsers.get(start.type)
        if parser is None:
            raise self._error("Expected statement")

        statement = parser()
        statement.span = self._span_from(start)
        return statement

    def _parse_condition(self, keyword: str) -> Expression:
        self._expect(TokenType.LPAREN, f"Expected '(' after {keyword}")
        condition = self._parse_expression()
        self._expect(TokenType.RPAREN, "Expected ')' after condition")
        return condition

    def _parse_if_statement(self) -> IfStatement:
        self._advance()
        condition = self._parse_condition("IF")
        self._expect(TokenType.THEN, "Expected 'THEN'")
        then_branch = self._parse_block()
        else_branch = None
        if self._match(TokenType.ELSE):
            else_branch = self._parse_block()
        return IfStatement(condition=condition, then_branch=then_branch, else_branch=else_branch)

    def _parse_while_statement(self) -> WhileStatement:
        self._advance()
        condition = self._parse_condition("WHILE")
        self._expect(TokenType.DO, "Expected 'DO'")
        return WhileStatement(condition=condition, body=self._parse_block())

    def _parse_do_while_statement(self) -> DoWhileStatement:
        self._advance()
        body = self._parse_block()
        self._expect(TokenType.WHILE, "Expected 'WHILE' after DO body")
        condition = self._parse_condition("WHILE")
        return DoWhileStatement(body=body, condition=condition)

    def _parse_for_statement(self) -> ForStatement:
        self._advance()
        variable = self._expect(TokenType.IDENTIFIER, "Expected loop variable").value
        self._expect(TokenType.ASSIGN, "Expected '<-' after loop variable")
        start = self._parse_expression()
        self._expect(TokenType.TO, "Expected 'TO'")
        end = self._parse_expression()
        step = None
        if self._match(TokenType.STEP):
            step = self._parse_expression()
        self._expect(TokenType.DO, "Expected 'DO'")
        return ForStatement(
            variable=variable, start=start, end=end, step=step, body=self._parse_block()
        )

    def _parse_switch_statement(self) -> SwitchStatement:
        self._advance()
        expression = self._parse_expression()
        self._expect(TokenType.BEGIN, "Expected 'BEGIN' after SWITCH expression")

        cases = []
        while self._check(TokenType.CASE):
            case_start = self._advance()
            values = [self._parse_expression()]
            while self._match(TokenType.COMMA):
                values.append(self._parse_expression())
            self._expect(TokenType.COLON, "Expected ':' after case values")
            body = self._parse_block()
            cases.append(CaseClause(span=self._span_from(case_start), values=values, body=body))

        default_case = None
        if self._match(TokenType.DEFAULT):
            self._expect(TokenType.COLON, "Expected ':' after DEFAULT")
            default_case = self._parse_block()

        self._expect(TokenType.END, "Expected 'END' after switch cases")
        return SwitchStatement(expression=expression, cases=cases, default_case=default_case)

    def _parse_return_statement(self) -> ReturnStatement:
        self._advance()
        self._expect(TokenType.LPAREN, "Expected '(' after RETURN")
        value = self._parse_expression()
        self._expect(TokenType.RPAREN, "Expected ')' after return value")
        return ReturnStatement(value=value)

    def _parse_scan_statement(self) -> ScanStatement:
        self._advance()
        self._expect(TokenType.LPAREN, "Expected '(' after SCAN")
        targets = [self._parse_lvalue()]
        while self._match(TokenType.COMMA):
            targets.append(self._parse_lvalue())
        self._expect(TokenType.RPAREN, "Expected ')' after SCAN arguments")
        return ScanStatement(targets=targets)

    def _parse_print_statement(self) -> PrintStatement:
        self._advance()
        self._expect(TokenType.LPAREN, "Expected '(' after PRINT")
        expressions = [self._parse_expression()]
        while self._match(TokenType.COMMA):
            expressions.append(self._parse_expression())
        self._expect(TokenType.RPAREN, "Expected ')' after PRINT arguments")
        return PrintStatement(expressions=expressions)

    def _parse_block_statement(self) -> BlockStatement:
        self._advance()
        statements = self._parse_statement_list()
        self._expect(TokenType.END, "Expected 'END'")
        return BlockStatement(statements=statements)

    def _parse_assignment_or_call(self) -> Statement:
        target = self._parse_lvalue()

        if self._match(TokenType.ASSIGN):
            return AssignmentStatement(target=target, value=self._parse_expression())

        if isinstance(target, Identifier):
            arguments = []
            if self._match(TokenType.LPAREN):
                arguments = self._parse_arguments()
            return CallStatement(name=target.name, arguments=arguments)

        raise self._error("Expected '<-' in assignment")

    def _parse_arguments(self) -> list[Expression]:
        """Comma-separated expressions up to ')'; the '(' is already consumed."""
        arguments = []
        if not self._check(TokenType.RPAREN):
            arguments.append(self._parse_expression())
            while self._match(TokenType.COMMA):
                arguments.append(self._parse_expression())
        self._expect(TokenType.RPAREN, "Expected ')' after arguments")
        return arguments

    # =========================================================================
    # Expressions
    # =========================================================================

    def _parse_expression(self) -> Expression:
        return self._parse_or()

    def _parse_or(self) -> Expression:
        return self._parse_binary(self._parse_and, {TokenType.OR: BinaryOperator.OR})

    def _parse_and(self) -> Expression:
        return self._parse_binary(self._parse_relational, {TokenType.AND: BinaryOperator.AND})

    def _parse_relational(self) -> Expression:
        return self._parse_binary(self._parse_additive, RELATIONAL_OPERATORS)

    def _parse_additive(self) -> Expression:
        return self._parse_binary(self._parse_multiplicative, ADDITIVE_OPERATORS)

    def _parse_multiplicative(self) -> Expression:
        return self._parse_binary(self._parse_power, MULTIPLICATIVE_OPERATORS)

    def _parse_binary(
        self,
        operand_parser: Callable[[], Expression],
        operators: dict[TokenType, BinaryOperator],
    ) -> Expression:
        """
        Generic left-associative binary expression parser.

        Args:
            operand_parser: Function to parse operands
            operators: Map of token types to binary operators
        """
        expr = operand_parser()

        while self._peek().type in operators:
            op_token = self._advance()
            right = operand_parser()
            expr = BinaryExpression(
                span=self._join(expr, right),
                operator=operators[op_token.type],
                left=expr,
                right=right,
            )

        return expr

    def _parse_power(self) -> Expression:
        """Power binds right: 2 ^ 3 ^ 2 is 2 ^ (3 ^ 2)."""
        left = self._parse_unary()
        if self._match(TokenType.POWER):
            right = self._parse_power()
            return BinaryExpression(
                span=self._join(left, right),
                operator=BinaryOperator.POWER,
                left=left,
                right=right,
            )
        return left

    def _parse_unary(self) -> Expression:
        start = self._peek()
        if self._match(TokenType.MINUS):
            operand = self._parse_unary()
            return UnaryExpression(
                span=self._span_from(start), operator=UnaryOperator.NEGATE, operand=operand
            )
        if self._match(TokenType.NOT):
            operand = self._parse_unary()
            return UnaryExpression(
                span=self._span_from(start), operator=UnaryOperator.NOT, operand=operand
            )
        return self._parse_primary()

    def _parse_primary(self) -> Expression:
        token = self._peek()

        if self._match(TokenType.LPAREN):
            expr = self._parse_expression()
            self._expect(TokenType.RPAREN, "Expected ')' after expression")
            return ParenExpression(span=self._span_from(token), expression=expr)

        if token.type in LITERAL_TOKENS:
            return self._parse_literal()

        if token.type == TokenType.IDENTIFIER:
            self._advance()
            if self._match(TokenType.LPAREN):
                arguments = self._parse_arguments()
                call = FunctionCall(
                    span=self._span_from(token), name=token.value, arguments=arguments
                )
                return self._parse_postfix(call, token)
            identifier = Identifier(span=self._span_from(token), name=token.value)
            return self._parse_postfix(identifier, token)

        raise self._error("Expected expression")

    def _parse_lvalue(self) -> LValue:
        token = self._expect(TokenType.IDENTIFIER, "Expected identifier")
        identifier = Identifier(span=self._span_from(token), name=token.value)
        return self._parse_postfix(identifier, token)

    def _parse_postfix(self, expr: Expression, start: Token) -> Expression:
        """
        Fold indexing and field selection onto an identifier or a call.

        t[i, j] and t[i][j] both become one ArrayAccess with two indices.
        """
        while True:
            if self._match(TokenType.LBRACKET):
                indices = [self._parse_expression()]
                while self._match(TokenType.COMMA):
                    indices.append(self._parse_expression())
                self._expect(TokenType.RBRACKET, "Expected ']' after index")
                if isinstance(expr, ArrayAccess):
                    expr.indices.extend(indices)
                    expr.span = self._span_from(start)
                else:
                    expr = ArrayAccess(span=self._span_from(start), array=expr, indices=indices)
            elif self._match(TokenType.DOT):
                name = self._expect(TokenType.IDENTIFIER, "Expected field name after '.'").value
                expr = FieldAccess(span=self._span_from(start), object=expr, field=name)
            else:
                return expr

    @staticmethod
    def _join(left: Expression, right: Expression) -> Optional[SourceSpan]:
        if left.span and right.span:
            return SourceSpan(left.span.start, right.span.end)
        return left.span or right.span


# =============================================================================
# Convenience Functions
# =============================================================================

def parse(source: str, filename: str = "<input>") -> ParseResult:
    """
    Parse Algo source code into an AST.

    Combines lexing and parsing. Lexer errors stop the parse and are
    returned as ParserErrors; otherwise the first syntax error is returned.

    Args:
        source: The Algo source text
        filename: Source name for error messages

    Returns:
        ParseResult with the Program (or None) and any errors
    """
    lexer = AlgoLexer(source, filename)
    tokens = lexer.tokenize()

    if lexer.errors:
        errors = [
            ParserError(e.message, e.location, hint=e.hint, source_line=e.source_line)
            for e in lexer.errors
        ]
        logger.debug("Parse of %s aborted by %d lexer errors", filename, len(errors))
        return ParseResult(ast=None, errors=errors)

    parser = AlgoParser(tokens, source.splitlines())
    try:
        program = parser.parse()
    except ParserError as e:
        logger.debug("Parse of %s failed: %s", filename, e.display())
        return ParseResult(ast=None, errors=[e])

    return ParseResult(ast=program, errors=[])
