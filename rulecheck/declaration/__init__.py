"""rulecheck/declaration — Declaration files and expression syntax."""

from rulecheck.declaration.loader import DeclarationLoader
from rulecheck.declaration.parser import ExpressionParser, parse_expression, tokenize

__all__ = [
    "DeclarationLoader",
    "ExpressionParser",
    "parse_expression",
    "tokenize",
]
