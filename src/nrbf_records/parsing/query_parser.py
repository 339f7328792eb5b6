"""Parser for the record query language."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

import ply.yacc as yacc

from nrbf_records.parsing.query_lexer import QueryLexer


@dataclass
class SelectField:
    """A field in a SELECT clause."""

    name: str  # Field name or "*" or dotted path like "Members.Name"

    @property
    def path(self) -> list[str]:
        """Return the field path as a list (e.g., ['Members', 'Name'])."""
        if self.name == "*":
            return ["*"]
        return self.name.split(".")


@dataclass
class NullValue:
    """The null literal value."""

    pass


@dataclass
class Condition:
    """A WHERE condition."""

    field: str
    operator: str  # eq, neq, lt, lte, gt, gte, starts_with
    value: Any
    negate: bool = False


@dataclass
class CompoundCondition:
    """A compound condition (AND/OR)."""

    left: Condition | CompoundCondition | NotCondition
    operator: str  # and, or
    right: Condition | CompoundCondition | NotCondition


@dataclass
class NotCondition:
    """A negated compound condition."""

    operand: CompoundCondition | NotCondition


@dataclass
class RecordQuery:
    """A FROM query over a decoded record log."""

    kind: str | None = None  # None matches every record kind
    fields: list[SelectField] = field(default_factory=list)
    where: Condition | CompoundCondition | NotCondition | None = None
    offset: int = 0
    limit: int | None = None

    @property
    def selects_all(self) -> bool:
        return not self.fields or any(f.name == "*" for f in self.fields)


class QueryParser:
    """Parser for record queries."""

    tokens = QueryLexer.tokens

    # Operator precedence
    precedence = (
        ("left", "OR"),
        ("left", "AND"),
        ("right", "NOT"),
    )

    def __init__(self) -> None:
        self.lexer = QueryLexer()
        self.lexer.build()
        self.parser: yacc.LRParser = None  # type: ignore

    def p_statement(self, p: yacc.YaccProduction) -> None:
        """statement : query SEMICOLON
                     | query"""
        p[0] = p[1]

    def p_query(self, p: yacc.YaccProduction) -> None:
        """query : FROM source select_clause where_clause offset_clause limit_clause"""
        p[0] = RecordQuery(kind=p[2], fields=p[3], where=p[4], offset=p[5], limit=p[6])

    def p_source_kind(self, p: yacc.YaccProduction) -> None:
        """source : IDENTIFIER"""
        p[0] = p[1]

    def p_source_star(self, p: yacc.YaccProduction) -> None:
        """source : STAR"""
        p[0] = None

    def p_select_clause_empty(self, p: yacc.YaccProduction) -> None:
        """select_clause : """
        p[0] = []

    def p_select_clause_star(self, p: yacc.YaccProduction) -> None:
        """select_clause : SELECT STAR"""
        p[0] = [SelectField(name="*")]

    def p_select_clause_fields(self, p: yacc.YaccProduction) -> None:
        """select_clause : SELECT field_list"""
        p[0] = p[2]

    def p_field_list_single(self, p: yacc.YaccProduction) -> None:
        """field_list : field_path"""
        p[0] = [SelectField(name=p[1])]

    def p_field_list_multiple(self, p: yacc.YaccProduction) -> None:
        """field_list : field_list COMMA field_path"""
        p[0] = p[1] + [SelectField(name=p[3])]

    def p_field_path_single(self, p: yacc.YaccProduction) -> None:
        """field_path : IDENTIFIER"""
        p[0] = p[1]

    def p_field_path_dotted(self, p: yacc.YaccProduction) -> None:
        """field_path : field_path DOT IDENTIFIER"""
        p[0] = f"{p[1]}.{p[3]}"

    def p_where_clause_empty(self, p: yacc.YaccProduction) -> None:
        """where_clause : """
        p[0] = None

    def p_where_clause(self, p: yacc.YaccProduction) -> None:
        """where_clause : WHERE condition"""
        p[0] = p[2]

    def p_condition_comparison(self, p: yacc.YaccProduction) -> None:
        """condition : field_path EQ value
                     | field_path NEQ value
                     | field_path LT value
                     | field_path LTE value
                     | field_path GT value
                     | field_path GTE value"""
        op_map = {"=": "eq", "!=": "neq", "<": "lt", "<=": "lte", ">": "gt", ">=": "gte"}
        p[0] = Condition(field=p[1], operator=op_map[p[2]], value=p[3])

    def p_condition_starts_with(self, p: yacc.YaccProduction) -> None:
        """condition : field_path STARTS WITH STRING"""
        p[0] = Condition(field=p[1], operator="starts_with", value=p[4])

    def p_condition_not(self, p: yacc.YaccProduction) -> None:
        """condition : NOT condition"""
        cond = p[2]
        if isinstance(cond, Condition):
            cond.negate = not cond.negate
            p[0] = cond
        else:
            p[0] = NotCondition(operand=cond)

    def p_condition_and(self, p: yacc.YaccProduction) -> None:
        """condition : condition AND condition"""
        p[0] = CompoundCondition(left=p[1], operator="and", right=p[3])

    def p_condition_or(self, p: yacc.YaccProduction) -> None:
        """condition : condition OR condition"""
        p[0] = CompoundCondition(left=p[1], operator="or", right=p[3])

    def p_condition_paren(self, p: yacc.YaccProduction) -> None:
        """condition : LPAREN condition RPAREN"""
        p[0] = p[2]

    def p_value_integer(self, p: yacc.YaccProduction) -> None:
        """value : INTEGER"""
        p[0] = p[1]

    def p_value_float(self, p: yacc.YaccProduction) -> None:
        """value : FLOAT"""
        p[0] = p[1]

    def p_value_string(self, p: yacc.YaccProduction) -> None:
        """value : STRING"""
        p[0] = p[1]

    def p_value_true(self, p: yacc.YaccProduction) -> None:
        """value : TRUE"""
        p[0] = True

    def p_value_false(self, p: yacc.YaccProduction) -> None:
        """value : FALSE"""
        p[0] = False

    def p_value_null(self, p: yacc.YaccProduction) -> None:
        """value : NULL"""
        p[0] = NullValue()

    def p_offset_clause_empty(self, p: yacc.YaccProduction) -> None:
        """offset_clause : """
        p[0] = 0

    def p_offset_clause(self, p: yacc.YaccProduction) -> None:
        """offset_clause : OFFSET INTEGER"""
        p[0] = p[2]

    def p_limit_clause_empty(self, p: yacc.YaccProduction) -> None:
        """limit_clause : """
        p[0] = None

    def p_limit_clause(self, p: yacc.YaccProduction) -> None:
        """limit_clause : LIMIT INTEGER"""
        p[0] = p[2]

    def p_error(self, p: yacc.YaccProduction) -> None:
        if p:
            raise SyntaxError(f"Syntax error at '{p.value}' (position {p.lexpos})")
        else:
            raise SyntaxError("Syntax error at end of input")

    def build(self, **kwargs: Any) -> None:
        """Build the parser."""
        self.parser = yacc.yacc(module=self, start="statement", **kwargs)

    def parse(self, data: str) -> RecordQuery:
        """Parse a query string."""
        if self.parser is None:
            self.build(debug=False, write_tables=False)

        return self.parser.parse(data, lexer=self.lexer.lexer)
