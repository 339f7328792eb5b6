"""Query execution over a decoded record log."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from nrbf_records.parsing.query_parser import (
    CompoundCondition,
    Condition,
    NotCondition,
    NullValue,
    QueryParser,
    RecordQuery,
)
from nrbf_records.records import (
    ArraySinglePrimitive,
    BinaryArray,
    BinaryLibrary,
    ClassWithId,
    ClassWithMembersAndTypes,
    DecodeResult,
    MemberReference,
    StreamEnd,
    StreamHeader,
)
from nrbf_records.render import RecordRenderer

RECORD_KINDS = {
    cls.__name__.lower(): cls.__name__
    for cls in (
        StreamHeader,
        BinaryLibrary,
        ClassWithMembersAndTypes,
        ClassWithId,
        MemberReference,
        BinaryArray,
        ArraySinglePrimitive,
        StreamEnd,
    )
}

INDEX_COLUMN = "_index"

_MISSING = object()


@dataclass
class QueryResult:
    """Result of a query execution."""

    columns: list[str]
    rows: list[dict[str, Any]]
    message: str | None = None


def get_path(data: Any, path: list[str]) -> Any:
    """Follow a dotted field path through nested dictionaries.

    Returns a sentinel object (not None) when any step is missing, so that a
    present null value can be told apart from an absent field.
    """
    for key in path:
        if not isinstance(data, dict) or key not in data:
            return _MISSING
        data = data[key]
    return data


class QueryExecutor:
    """Executes record queries against one DecodeResult."""

    def __init__(self, result: DecodeResult) -> None:
        self.result = result
        self.renderer = RecordRenderer(result)

    def execute(self, query: RecordQuery) -> QueryResult:
        """Execute a query and return results."""
        kind = None
        if query.kind is not None:
            kind = RECORD_KINDS.get(query.kind.lower())
            if kind is None:
                return QueryResult(
                    columns=[],
                    rows=[],
                    message=f"Unknown record kind: {query.kind}",
                )

        records: list[dict[str, Any]] = []
        for index, record in enumerate(self.result.records):
            if kind is not None and record.kind != kind:
                continue
            rendered = self.renderer.render_record(index, record)
            if query.where and not self._evaluate_condition(rendered, query.where):
                continue
            records.append({INDEX_COLUMN: index, **rendered})

        # Apply OFFSET and LIMIT
        if query.offset:
            records = records[query.offset:]
        if query.limit is not None:
            records = records[: query.limit]

        if query.selects_all:
            columns: list[str] = []
            for row in records:
                for key in row:
                    if key not in columns:
                        columns.append(key)
            return QueryResult(columns=columns, rows=records)

        columns = [INDEX_COLUMN] + [f.name for f in query.fields]
        rows = []
        for record in records:
            row: dict[str, Any] = {INDEX_COLUMN: record[INDEX_COLUMN]}
            for select_field in query.fields:
                value = get_path(record, select_field.path)
                row[select_field.name] = None if value is _MISSING else value
            rows.append(row)
        return QueryResult(columns=columns, rows=rows)

    def _evaluate_condition(
        self, record: dict[str, Any], condition: Condition | CompoundCondition | NotCondition
    ) -> bool:
        """Evaluate a condition against a rendered record."""
        if isinstance(condition, NotCondition):
            return not self._evaluate_condition(record, condition.operand)
        if isinstance(condition, CompoundCondition):
            left = self._evaluate_condition(record, condition.left)
            right = self._evaluate_condition(record, condition.right)
            if condition.operator == "and":
                return left and right
            else:  # or
                return left or right

        field_value = get_path(record, condition.field.split("."))
        if field_value is _MISSING:
            return condition.negate
        if field_value is None:
            # Allow null comparisons: field = null, field != null
            if isinstance(condition.value, NullValue):
                result = condition.operator == "eq"
                return not result if condition.negate else result
            return condition.negate

        result = self._compare(field_value, condition.operator, condition.value)
        return not result if condition.negate else result

    def _compare(self, field_value: Any, operator: str, value: Any) -> bool:
        """Compare a field value against a condition value."""
        try:
            if isinstance(value, NullValue):
                if operator == "eq":
                    return field_value is None
                elif operator == "neq":
                    return field_value is not None
                return False
            if operator == "eq":
                return field_value == value
            elif operator == "neq":
                return field_value != value
            elif operator == "lt":
                return field_value < value
            elif operator == "lte":
                return field_value <= value
            elif operator == "gt":
                return field_value > value
            elif operator == "gte":
                return field_value >= value
            elif operator == "starts_with":
                if isinstance(field_value, str):
                    return field_value.startswith(value)
                elif isinstance(field_value, list):
                    return any(isinstance(v, str) and v.startswith(value) for v in field_value)
                return False
        except TypeError:
            return False
        return False


def run_query(result: DecodeResult, query: str | RecordQuery) -> QueryResult:
    """Parse (if needed) and execute a query against ``result``."""
    if isinstance(query, str):
        query = QueryParser().parse(query)
    return QueryExecutor(result).execute(query)
