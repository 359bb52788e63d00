import csv
import json
import logging
import os

import pandas as pd

from cell_coercion import cell_text, coerce_ingested_value
from csv_codec import parse_delimited
from errors import IngestionError
from file_size import format_file_size
from record_model import FileInfo, Line, LineSet, Table, Workbook
from windowing import WindowingPolicy

logger = logging.getLogger(__name__)


def _checked_size(path: str) -> int:
    if not os.path.exists(path):
        raise IngestionError(f"File not found: {path}", path=path)
    try:
        size = os.path.getsize(path)
    except OSError as exc:
        raise IngestionError(f"Cannot read {path}: {exc}", path=path) from exc
    if size == 0:
        raise IngestionError(f"File is empty: {os.path.basename(path)}", path=path)
    return size


def read_text(path: str) -> tuple[str, int]:
    size = _checked_size(path)
    try:
        with open(path, "r", encoding="utf-8-sig", newline="") as fh:
            return fh.read(), size
    except UnicodeDecodeError as exc:
        raise IngestionError(f"{os.path.basename(path)} is not valid UTF-8 text", path=path) from exc
    except OSError as exc:
        raise IngestionError(f"Cannot read {path}: {exc}", path=path) from exc


def _reject_constant(name):
    raise ValueError(f"{name} is not valid JSON")


def parse_record(text: str):
    """Parse one structured record; raises ValueError when it is not strict JSON."""
    return json.loads(text, parse_constant=_reject_constant)


def make_line(line_number: int, content: str) -> Line:
    try:
        parsed = parse_record(content)
    except ValueError:
        return Line(line_number=line_number, content=content, is_valid=False, parsed=None)
    return Line(line_number=line_number, content=content, is_valid=True, parsed=parsed)


def split_record_lines(text: str) -> list[str]:
    """Split on line feeds only; JSON strings may hold other line separators."""
    return [piece[:-1] if piece.endswith("\r") else piece for piece in text.split("\n")]


def build_line_set(text: str) -> LineSet:
    lines = []
    for raw in split_record_lines(text):
        if not raw.strip():
            continue
        lines.append(make_line(len(lines) + 1, raw))
    return LineSet(lines=lines)


class CsvReader:
    def __init__(self, delimiter: str = ","):
        self.delimiter = delimiter

    def read(self, path: str) -> Table:
        text, size = read_text(path)
        try:
            headers, rows = parse_delimited(text, self.delimiter)
        except csv.Error as exc:
            raise IngestionError(
                f"Failed to parse {os.path.basename(path)}: {exc}", path=path
            ) from exc
        table = Table(
            headers=headers,
            rows=rows,
            info=FileInfo(
                file_size=format_file_size(size),
                total_rows=len(rows),
                total_columns=len(headers),
            ),
        )
        logger.debug("Read %s: %d rows x %d columns", path, len(rows), len(headers))
        return table


class JsonlReader:
    def read(self, path: str) -> LineSet:
        text, size = read_text(path)
        line_set = build_line_set(text)
        line_set.file_size = format_file_size(size)
        logger.debug(
            "Read %s: %d lines (%d valid, %d invalid)",
            path,
            len(line_set),
            line_set.valid_count,
            line_set.invalid_count,
        )
        return line_set


def _ensure_parquet_engine():
    try:
        import pyarrow  # noqa: F401
    except ImportError as exc:
        raise IngestionError(
            "Parquet support requires pyarrow. Install via: pip install pyarrow"
        ) from exc


def _ensure_excel_engine():
    try:
        import openpyxl  # noqa: F401
    except ImportError as exc:
        raise IngestionError(
            "XLSX support requires openpyxl. Install via: pip install openpyxl"
        ) from exc


def _coerce_frame(df: pd.DataFrame) -> list[list]:
    return [
        [coerce_ingested_value(value) for value in row]
        for row in df.itertuples(index=False, name=None)
    ]


class ParquetReader:
    def __init__(self, policy: WindowingPolicy | None = None):
        self.policy = policy or WindowingPolicy()

    def read(self, path: str) -> Table:
        size = _checked_size(path)
        decision = self.policy.decide(size, path=path)
        _ensure_parquet_engine()
        import pyarrow as pa
        import pyarrow.parquet as pq

        try:
            pf = pq.ParquetFile(path)
            arrow_schema = pf.schema_arrow
            decision.total_rows_if_known = pf.metadata.num_rows
            if decision.row_cap is None:
                arrow_table = pf.read()
            else:
                batches = []
                collected = 0
                for batch in pf.iter_batches(batch_size=min(decision.row_cap, 65536)):
                    batches.append(batch)
                    collected += batch.num_rows
                    if collected >= decision.row_cap:
                        break
                arrow_table = pa.Table.from_batches(batches, schema=arrow_schema)
                arrow_table = arrow_table.slice(0, decision.row_cap)
            df = arrow_table.to_pandas(
                integer_object_nulls=True,
                date_as_object=True,
                timestamp_as_object=True,
            )
        except (OSError, pa.ArrowException) as exc:
            raise IngestionError(f"Failed to read Parquet file: {exc}", path=path) from exc

        schema = [{"name": f.name, "type": str(f.type)} for f in arrow_schema]
        if len(df) > 0:
            headers = [str(c) for c in df.columns]
        else:
            headers = [entry["name"] for entry in schema]
        if not headers:
            raise IngestionError("No columns found in Parquet file", path=path)

        rows = _coerce_frame(df)
        info = FileInfo(
            file_size=format_file_size(size),
            total_rows=len(rows),
            total_columns=len(headers),
            windowing=decision,
            schema=schema,
            arrow_schema=arrow_schema,
        )
        if decision.truncated:
            logger.info("%s: %s", path, decision.notice)
        return Table(headers=headers, rows=rows, info=info)


def normalize_sheet(records: list[list]) -> tuple[list[str], list[list]]:
    """Pad/truncate a sheet's records to its max column count, header first."""
    if not records:
        return [], []
    width = max(len(r) for r in records)
    padded = [list(r[:width]) + [""] * (width - len(r)) for r in records]
    headers = []
    for idx, value in enumerate(padded[0]):
        text = cell_text(value).strip()
        headers.append(text if text else f"Column {idx + 1}")
    return headers, padded[1:]


class ExcelReader:
    def read(self, path: str) -> Workbook:
        size = _checked_size(path)
        _ensure_excel_engine()
        try:
            frames = pd.read_excel(
                path, sheet_name=None, header=None, dtype=object, engine="openpyxl"
            )
        except (OSError, ValueError, KeyError) as exc:
            raise IngestionError(f"Failed to read Excel file: {exc}", path=path) from exc

        if not frames:
            raise IngestionError("No sheets found in Excel file", path=path)

        file_size = format_file_size(size)
        sheets = {}
        for name, df in frames.items():
            headers, rows = normalize_sheet(_coerce_frame(df))
            sheets[str(name)] = Table(
                headers=headers,
                rows=rows,
                info=FileInfo(
                    file_size=file_size,
                    total_rows=len(rows),
                    total_columns=len(headers),
                ),
                name=str(name),
            )
        first = next(iter(sheets.values()))
        return Workbook(
            sheets=sheets,
            info=FileInfo(
                file_size=file_size,
                total_rows=first.info.total_rows,
                total_columns=first.info.total_columns,
            ),
        )
