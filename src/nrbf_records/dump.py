"""Tool for dumping decoded record streams to the console or to JSON files."""

from __future__ import annotations

import argparse
import codecs
import json
import logging
import sys
from pathlib import Path
from typing import Any

from nrbf_records.errors import DecodeError
from nrbf_records.parsing import QueryParser, RecordQuery
from nrbf_records.query import QueryResult, run_query
from nrbf_records.records import DecodeResult
from nrbf_records.render import RecordRenderer, to_data
from nrbf_records.stream import DecoderOptions, decode

DEFAULT_PATTERN = "*.dat"


def decode_file(path: Path | str, options: DecoderOptions | None = None) -> DecodeResult:
    """Read a whole file and decode it."""
    return decode(Path(path).read_bytes(), options)


def collect_inputs(paths: list[Path], pattern: str = DEFAULT_PATTERN, exclude: list[str] | None = None) -> list[Path]:
    """Expand directories into the matching files they contain.

    Files named explicitly are kept even if they do not match ``pattern``.
    Subdirectories are not searched.
    """
    excluded = set(exclude or [])
    inputs: list[Path] = []
    for path in paths:
        if path.is_dir():
            for entry in sorted(path.glob(pattern)):
                if entry.is_file() and entry.name not in excluded:
                    inputs.append(entry)
        else:
            inputs.append(path)
    return inputs


def format_value(value: Any, indent: int) -> list[str]:
    """Format a rendered value as indented text lines."""
    pad = "    " * indent
    lines = []
    if isinstance(value, dict):
        for key, item in value.items():
            if isinstance(item, dict) and item:
                lines.append(f"{pad}{key}:")
                lines.extend(format_value(item, indent + 1))
            else:
                lines.append(f"{pad}{key}: {format_scalar(item)}")
    else:
        lines.append(f"{pad}{format_scalar(value)}")
    return lines


def format_scalar(value: Any) -> str:
    if value is None:
        return "NULL"
    if isinstance(value, str):
        return repr(value)
    if isinstance(value, list):
        return "[" + ", ".join(format_scalar(v) for v in value) + "]"
    if isinstance(value, dict):
        return "{" + ", ".join(f"{k}: {format_scalar(v)}" for k, v in value.items()) + "}"
    return str(value)


def dump_records(result: DecodeResult, name: str, limit: int | None = None) -> None:
    """Print every record of a decoded stream."""
    renderer = RecordRenderer(result)
    count = len(result.records)

    print(f"File: {name}")
    print(f"Records: {count}  References: {len(result.references)}  Libraries: {len(result.libraries)}")
    print("-" * 60)

    display_count = min(count, limit) if limit else count
    for i in range(display_count):
        data = renderer.render_record(i, result.records[i])
        print(f"[{i}] {data.pop('RecordType')}")
        for line in format_value(data, 1):
            print(line)
    print()


def dump_query(query_result: QueryResult, name: str) -> None:
    """Print the rows of a query result."""
    print(f"File: {name}")
    if query_result.message:
        print(query_result.message)
        print()
        return
    print(f"Rows: {len(query_result.rows)}")
    print("-" * 60)
    for row in query_result.rows:
        print(f"[{row['_index']}]")
        for line in format_value({k: v for k, v in row.items() if k != "_index"}, 1):
            print(line)
    print()


def build_output(result: DecodeResult, query: str | RecordQuery | None, limit: int | None) -> Any:
    """Build JSON-compatible output for one decoded stream."""
    if query is not None:
        query_result = run_query(result, query)
        if query_result.message:
            raise ValueError(query_result.message)
        rows = query_result.rows
        return rows[:limit] if limit else rows

    data = to_data(result)
    if limit:
        data["records"] = data["records"][:limit]
    return data


def main(argv: list[str] | None = None) -> int:
    """Main entry point."""
    parser = argparse.ArgumentParser(
        description="Decode binary-serialized record streams and dump their contents"
    )
    parser.add_argument(
        "paths",
        type=Path,
        nargs="+",
        help="Stream files, or directories to search for stream files",
    )
    parser.add_argument(
        "--pattern",
        default=DEFAULT_PATTERN,
        help=f"Glob pattern for files inside directories (default: {DEFAULT_PATTERN})",
    )
    parser.add_argument(
        "--exclude",
        action="append",
        default=[],
        metavar="NAME",
        help="File name to skip inside directories (may be repeated)",
    )
    parser.add_argument(
        "-j", "--json",
        action="store_true",
        help="Output as JSON",
    )
    parser.add_argument(
        "-o", "--output-dir",
        type=Path,
        default=None,
        help="Write <name>.json for each input into this directory",
    )
    parser.add_argument(
        "-q", "--query",
        default=None,
        help="Query to run against each decoded stream, e.g. 'from ClassWithMembersAndTypes select Name'",
    )
    parser.add_argument(
        "-n", "--limit",
        type=int,
        default=None,
        help="Limit number of records to display",
    )
    parser.add_argument(
        "--read-array-elements",
        action="store_true",
        help="Decode primitive array payloads",
    )
    parser.add_argument(
        "--encoding",
        default="latin-1",
        help="Text encoding for strings (default: latin-1)",
    )
    parser.add_argument(
        "--allow-headerless",
        action="store_true",
        help="Accept streams that do not start with a header record",
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Trace each record as it is decoded",
    )

    args = parser.parse_args(argv)

    if args.verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(name)s: %(message)s", stream=sys.stderr)

    try:
        codecs.lookup(args.encoding)
    except LookupError:
        print(f"Error: Unknown encoding: {args.encoding}", file=sys.stderr)
        return 1

    options = DecoderOptions(
        read_array_elements=args.read_array_elements,
        string_encoding=args.encoding,
        require_header=not args.allow_headerless,
    )

    query: RecordQuery | None = None
    if args.query is not None:
        try:
            query = QueryParser().parse(args.query)
        except SyntaxError as e:
            print(f"Error: Invalid query: {e}", file=sys.stderr)
            return 1

    inputs = collect_inputs(args.paths, args.pattern, args.exclude)
    if not inputs:
        print("Error: No input files found", file=sys.stderr)
        return 1

    if args.output_dir is not None:
        args.output_dir.mkdir(parents=True, exist_ok=True)

    failed = 0
    for path in inputs:
        try:
            result = decode_file(path, options)
            if args.output_dir is not None:
                output = build_output(result, query, args.limit)
                out_file = args.output_dir / f"{path.name}.json"
                out_file.write_text(json.dumps(output, indent="\t", allow_nan=False))
                print(f"{path} -> {out_file}")
            elif args.json:
                output = build_output(result, query, args.limit)
                print(json.dumps({"file": str(path), "data": output}, indent="\t", allow_nan=False))
            elif query is not None:
                query_result = run_query(result, query)
                if args.limit:
                    query_result.rows = query_result.rows[: args.limit]
                dump_query(query_result, str(path))
            else:
                dump_records(result, str(path), args.limit)
        except (DecodeError, OSError, ValueError) as e:
            print(f"Error: {path}: {e}", file=sys.stderr)
            failed += 1

    if failed:
        print(f"{failed} of {len(inputs)} files failed", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
