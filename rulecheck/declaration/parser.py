"""
rulecheck/declaration/parser.py
===============================
Recursive-descent parser for rule expression text (``when`` / ``then``
fields of a declaration, ``--constraint`` on the command line).

Grammar::

    expr        → implication
    implication → disjunction (('implies' | '=>') implication)?
    disjunction → conjunction (('or' | '||') conjunction)*
    conjunction → negation (('and' | '&&') negation)*
    negation    → ('not' | '!') negation | comparison
    comparison  → operand (op operand)?
    op          → '==' | '=' | '!=' | '<' | '<=' | '>' | '>='
    operand     → NUMBER | '-' NUMBER | 'true' | 'false'
                | IDENT | IDENT '.' IDENT | '(' expr ')'

Name resolution:
    * an IDENT naming a declared variable is a variable reference;
    * ``TYPE.VALUE`` is an enumeration literal;
    * any other IDENT is an enumeration value — of the other comparison
      operand's type if it has one, else the single enumeration declaring it.

Numbers take the type of the other comparison operand: ``motion < 1``
with a Real ``motion`` is a Real comparison. Decimals (``0.1``) and
ratios (``1/3``) are Real; a bare integer with nothing to match is
Integer. The result is always a well-typed Expression built through the
``make_*`` constructors, so type errors surface as TypeMismatchError.
"""

from __future__ import annotations

import enum
import re
from dataclasses import dataclass
from fractions import Fraction
from typing import Iterable, List, Mapping, Optional, Union

from rulecheck.core.exceptions import ExpressionSyntaxError, TypeMismatchError
from rulecheck.core.expressions import (
    BinaryOperator,
    Expression,
    make_binary,
    make_false,
    make_literal,
    make_not,
    make_true,
    make_var,
)
from rulecheck.core.types import (
    Type,
    TypeKind,
    TypeRegistry,
    Variable,
    enum_value,
    int_value,
    real_value,
)


# ===================================================================
#  TOKENS
# ===================================================================

class TokType(enum.Enum):
    NUMBER  = "number"
    IDENT   = "ident"
    DOT     = "."
    LPAREN  = "("
    RPAREN  = ")"
    MINUS   = "-"
    AND     = "and"
    OR      = "or"
    NOT     = "not"
    IMPLIES = "implies"
    TRUE    = "true"
    FALSE   = "false"
    CMP     = "cmp"
    EOF     = "eof"


@dataclass(frozen=True)
class Tok:
    type:  TokType
    value: str
    pos:   int


_TOKEN_RE = re.compile(
    r"""
      (?P<ws>\s+)
    | (?P<number>\d+(?:\.\d+|/\d+)?)
    | (?P<ident>[A-Za-z_][A-Za-z0-9_]*)
    | (?P<op>=>|==|!=|<=|>=|&&|\|\||[<>=!().-])
    """,
    re.VERBOSE,
)

_KEYWORDS = {
    "and":     TokType.AND,
    "or":      TokType.OR,
    "not":     TokType.NOT,
    "implies": TokType.IMPLIES,
    "true":    TokType.TRUE,
    "false":   TokType.FALSE,
}

_SYMBOLS = {
    "=>": TokType.IMPLIES,
    "&&": TokType.AND,
    "||": TokType.OR,
    "!":  TokType.NOT,
    "(":  TokType.LPAREN,
    ")":  TokType.RPAREN,
    ".":  TokType.DOT,
    "-":  TokType.MINUS,
}

_COMPARISONS = {
    "==": BinaryOperator.EQ,
    "=":  BinaryOperator.EQ,
    "!=": BinaryOperator.NE,
    "<":  BinaryOperator.LT,
    "<=": BinaryOperator.LE,
    ">":  BinaryOperator.GT,
    ">=": BinaryOperator.GE,
}


def tokenize(text: str) -> List[Tok]:
    tokens: List[Tok] = []
    pos = 0
    while pos < len(text):
        match = _TOKEN_RE.match(text, pos)
        if match is None:
            raise ExpressionSyntaxError(f"Unexpected character {text[pos]!r}", text, pos)
        kind = match.lastgroup
        value = match.group()
        if kind == "number":
            tokens.append(Tok(TokType.NUMBER, value, pos))
        elif kind == "ident":
            tokens.append(Tok(_KEYWORDS.get(value.lower(), TokType.IDENT), value, pos))
        elif kind == "op":
            if value in _COMPARISONS:
                tokens.append(Tok(TokType.CMP, value, pos))
            else:
                tokens.append(Tok(_SYMBOLS[value], value, pos))
        pos = match.end()
    tokens.append(Tok(TokType.EOF, "", len(text)))
    return tokens


# ===================================================================
#  PENDING OPERANDS (typed once the other comparison side is known)
# ===================================================================

@dataclass(frozen=True)
class _Number:
    text:     str
    value:    Fraction
    integral: bool
    pos:      int


@dataclass(frozen=True)
class _Name:
    name: str
    pos:  int


_Operand = Union[Expression, _Number, _Name]


# ===================================================================
#  PARSER
# ===================================================================

class ExpressionParser:
    """Parse expression text against a registry and a variable scope.

    Usage:
        parser = ExpressionParser(registry, rule_set.variables)
        expr = parser.parse("temperature > 23 and motion < 0.3")
    """

    def __init__(self, registry: TypeRegistry, variables: Iterable[Variable]):
        self.registry = registry
        self.variables: Mapping[str, Variable] = {v.name: v for v in variables}
        self._text = ""
        self._tokens: List[Tok] = []
        self._pos = 0

    def parse(self, text: str) -> Expression:
        if not isinstance(text, str) or not text.strip():
            raise ExpressionSyntaxError("Empty expression", str(text), 0)
        self._text = text
        self._tokens = tokenize(text)
        self._pos = 0
        expr = self._parse_implication()
        tok = self._peek()
        if tok.type is not TokType.EOF:
            raise ExpressionSyntaxError(f"Unexpected token {tok.value!r}", text, tok.pos)
        return expr

    # ---- token helpers ----

    def _peek(self) -> Tok:
        return self._tokens[self._pos]

    def _advance(self) -> Tok:
        tok = self._tokens[self._pos]
        self._pos += 1
        return tok

    def _at(self, *types: TokType) -> bool:
        return self._peek().type in types

    def _expect(self, tt: TokType) -> Tok:
        tok = self._peek()
        if tok.type is not tt:
            found = tok.value or "end of input"
            raise ExpressionSyntaxError(
                f"Expected {tt.value!r}, got {found!r}", self._text, tok.pos
            )
        return self._advance()

    def _error(self, message: str, pos: int) -> ExpressionSyntaxError:
        return ExpressionSyntaxError(message, self._text, pos)

    # ---- boolean layers ----

    def _parse_implication(self) -> Expression:
        left = self._parse_disjunction()
        if self._at(TokType.IMPLIES):
            self._advance()
            right = self._parse_implication()
            return make_binary(self.registry, BinaryOperator.IMPLIES, left, right)
        return left

    def _parse_disjunction(self) -> Expression:
        left = self._parse_conjunction()
        while self._at(TokType.OR):
            self._advance()
            right = self._parse_conjunction()
            left = make_binary(self.registry, BinaryOperator.OR, left, right)
        return left

    def _parse_conjunction(self) -> Expression:
        left = self._parse_negation()
        while self._at(TokType.AND):
            self._advance()
            right = self._parse_negation()
            left = make_binary(self.registry, BinaryOperator.AND, left, right)
        return left

    def _parse_negation(self) -> Expression:
        if self._at(TokType.NOT):
            self._advance()
            return make_not(self.registry, self._parse_negation())
        return self._parse_comparison()

    def _parse_comparison(self) -> Expression:
        left = self._parse_operand()
        if not self._at(TokType.CMP):
            return self._resolve(left, None)
        op = _COMPARISONS[self._advance().value]
        right = self._parse_operand()

        if not isinstance(left, (_Number, _Name)):
            right_expr = self._resolve(right, left.type)
            left_expr = left
        elif not isinstance(right, (_Number, _Name)):
            left_expr = self._resolve(left, right.type)
            right_expr = right
        else:
            left_expr = self._resolve(left, None)
            right_expr = self._resolve(right, left_expr.type)
        return make_binary(self.registry, op, left_expr, right_expr)

    # ---- operands ----

    def _parse_operand(self) -> _Operand:
        tok = self._peek()
        if tok.type is TokType.LPAREN:
            self._advance()
            expr = self._parse_implication()
            self._expect(TokType.RPAREN)
            return expr
        if tok.type is TokType.TRUE:
            self._advance()
            return make_true(self.registry)
        if tok.type is TokType.FALSE:
            self._advance()
            return make_false(self.registry)
        if tok.type is TokType.MINUS:
            self._advance()
            number = self._expect(TokType.NUMBER)
            return self._number(number, negate=True)
        if tok.type is TokType.NUMBER:
            return self._number(self._advance())
        if tok.type is TokType.IDENT:
            self._advance()
            if self._at(TokType.DOT):
                self._advance()
                value_tok = self._expect(TokType.IDENT)
                return self._qualified_literal(tok, value_tok)
            variable = self.variables.get(tok.value)
            if variable is not None:
                return make_var(variable)
            return _Name(tok.value, tok.pos)
        found = tok.value or "end of input"
        raise self._error(f"Expected an operand, got {found!r}", tok.pos)

    def _number(self, tok: Tok, negate: bool = False) -> _Number:
        try:
            value = Fraction(tok.value)
        except ZeroDivisionError:
            raise self._error(f"Division by zero in literal {tok.value!r}", tok.pos)
        except ValueError:
            raise self._error(f"Malformed number {tok.value!r}", tok.pos)
        integral = "." not in tok.value and "/" not in tok.value
        return _Number(tok.value, -value if negate else value, integral, tok.pos)

    def _qualified_literal(self, type_tok: Tok, value_tok: Tok) -> Expression:
        try:
            enum_type = self.registry.get(type_tok.value)
        except KeyError:
            raise self._error(f"Unknown type '{type_tok.value}'", type_tok.pos)
        return make_literal(enum_value(enum_type, value_tok.value))

    # ---- resolution ----

    def _resolve(self, operand: _Operand, expected: Optional[Type]) -> Expression:
        if isinstance(operand, _Number):
            return self._resolve_number(operand, expected)
        if isinstance(operand, _Name):
            return self._resolve_name(operand, expected)
        return operand

    def _resolve_number(self, number: _Number, expected: Optional[Type]) -> Expression:
        if expected is None:
            if number.integral:
                return make_literal(int_value(self.registry, int(number.value)))
            return make_literal(real_value(self.registry, number.value))
        if expected.kind is TypeKind.REAL:
            return make_literal(real_value(self.registry, number.value))
        if expected.kind is TypeKind.INTEGER:
            if not number.integral:
                raise TypeMismatchError(
                    f"Real literal {number.text} compared with an Integer operand.",
                    expected=expected,
                    actual=self.registry.real,
                    expression=number.text,
                )
            return make_literal(int_value(self.registry, int(number.value)))
        raise TypeMismatchError(
            f"Number {number.text} compared with a {expected.name} operand.",
            expected=expected,
            actual=self.registry.real if not number.integral else self.registry.integer,
            expression=number.text,
        )

    def _resolve_name(self, name: _Name, expected: Optional[Type]) -> Expression:
        if expected is not None and expected.is_enumeration and expected.has_value(name.name):
            return make_literal(enum_value(expected, name.name))
        candidates = self.registry.enumerations_with_value(name.name)
        if len(candidates) == 1:
            return make_literal(enum_value(candidates[0], name.name))
        if not candidates:
            raise self._error(
                f"Unknown identifier '{name.name}' (not a variable or enumeration value)",
                name.pos,
            )
        raise self._error(
            f"Ambiguous value '{name.name}' declared by "
            f"{sorted(t.name for t in candidates)}; qualify it as TYPE.{name.name}",
            name.pos,
        )


def parse_expression(
    text: str, registry: TypeRegistry, variables: Iterable[Variable]
) -> Expression:
    """Parse ``text`` into a typed Expression over ``variables``."""
    return ExpressionParser(registry, variables).parse(text)
