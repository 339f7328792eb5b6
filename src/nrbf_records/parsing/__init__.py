"""Parsing module for the record query language."""

from nrbf_records.parsing.query_parser import (
    CompoundCondition,
    Condition,
    NotCondition,
    NullValue,
    QueryParser,
    RecordQuery,
    SelectField,
)

__all__ = [
    "CompoundCondition",
    "Condition",
    "NotCondition",
    "NullValue",
    "QueryParser",
    "RecordQuery",
    "SelectField",
]
