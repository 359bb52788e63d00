import logging
import os

import pandas as pd

from cell_coercion import cell_text
from csv_codec import serialize_delimited
from errors import IngestionError, PersistenceError
from file_readers import CsvReader, ExcelReader, JsonlReader, ParquetReader
from record_model import FileInfo, LineSet, Table, Workbook
from windowing import WindowingPolicy

logger = logging.getLogger(__name__)


class FileTypeHandler:
    DEFAULT_SHEET_NAME = "Sheet1"
    DELIMITED = {".csv": ",", ".tsv": "\t"}
    LINES = {".jsonl", ".ndjson"}
    COLUMNAR = {".parquet"}
    WORKBOOK = {".xlsx"}
    SUPPORTED = set(DELIMITED) | LINES | COLUMNAR | WORKBOOK

    def __init__(self, path: str, config: dict | None = None):
        self.path = path
        _, ext = os.path.splitext(path)
        self.ext = ext.lower()
        self.config = config or {}

        if self.ext not in self.SUPPORTED:
            raise IngestionError(
                "Unsupported file type (use .csv, .tsv, .jsonl, .ndjson, .parquet or .xlsx)",
                path=path,
            )

    @property
    def kind(self) -> str:
        if self.ext in self.DELIMITED:
            return "delimited"
        if self.ext in self.LINES:
            return "lines"
        if self.ext in self.COLUMNAR:
            return "columnar"
        return "workbook"

    @property
    def delimiter(self) -> str:
        return self.DELIMITED.get(self.ext, ",")

    def load(self) -> Table | LineSet | Workbook:
        logger.info("Opening %s", self.path)
        if self.kind == "delimited":
            return CsvReader(self.delimiter).read(self.path)
        if self.kind == "lines":
            return JsonlReader().read(self.path)
        if self.kind == "columnar":
            return ParquetReader(WindowingPolicy.from_config(self.config)).read(self.path)
        return ExcelReader().read(self.path)

    # ---------- writing ----------
    def write(self, payload, target_path: str) -> None:
        """Serialize a persistence payload into ``target_path``."""
        kind = getattr(payload, "kind", None)
        if kind == "raw-text":
            if self.kind not in ("delimited", "lines"):
                raise PersistenceError(f"Cannot save raw text as {self.ext}")
            self._write_text(target_path, payload.content)
        elif kind == "tabular":
            table = Table(
                headers=payload.headers,
                rows=payload.rows,
                info=FileInfo(arrow_schema=getattr(payload, "arrow_schema", None)),
            )
            self._write_table(table, target_path)
        elif kind == "workbook":
            if self.kind == "workbook":
                self._write_excel(payload.sheets, target_path)
            else:
                first = next(iter(payload.sheets.values()), Table())
                self._write_table(first, target_path)
        else:
            raise PersistenceError(f"Unknown persistence payload: {kind!r}")

    def _write_text(self, target_path: str, content: str):
        with open(target_path, "w", encoding="utf-8", newline="") as fh:
            fh.write(content)

    def _write_table(self, table: Table, target_path: str):
        if self.kind == "delimited":
            self._write_text(
                target_path, serialize_delimited(table.headers, table.rows, self.delimiter)
            )
        elif self.kind == "columnar":
            self._write_parquet(table, target_path)
        elif self.kind == "workbook":
            self._write_excel({self.DEFAULT_SHEET_NAME: table}, target_path)
        else:
            raise PersistenceError(f"Cannot save a table as {self.ext}")

    def _write_parquet(self, table: Table, target_path: str):
        import pyarrow as pa
        import pyarrow.parquet as pq

        df = self._frame_for_write(table)
        original = table.info.arrow_schema
        types = {f.name: f.type for f in original} if original is not None else {}
        names = [str(h) for h in table.headers]
        try:
            arrays = [
                _arrow_column(df.iloc[:, pos].tolist(), types.get(name), name)
                for pos, name in enumerate(names)
            ]
            pq.write_table(pa.Table.from_arrays(arrays, names=names), target_path)
        except (pa.ArrowException, ValueError, TypeError, OverflowError) as exc:
            raise PersistenceError(f"Parquet write failed: {exc}") from exc

    def _write_excel(self, sheets: dict, target_path: str):
        try:
            with pd.ExcelWriter(target_path, engine="openpyxl") as writer:
                for name, table in sheets.items():
                    df = self._frame_for_write(table)
                    df.to_excel(writer, index=False, sheet_name=str(name)[:31] or self.DEFAULT_SHEET_NAME)
        except (ValueError, TypeError, ImportError) as exc:
            raise PersistenceError(f"Excel write failed: {exc}") from exc

    @staticmethod
    def _frame_for_write(table: Table) -> pd.DataFrame:
        """Build a frame whose columns each hold one storable type."""
        df = table.to_dataframe()
        for pos in range(df.shape[1]):
            series = df.iloc[:, pos]
            values = [v for v in series if v is not None and v != ""]
            numeric = bool(values) and all(
                isinstance(v, (int, float)) and not isinstance(v, bool) for v in values
            )
            if numeric:
                cleaned = [None if v == "" else v for v in series]
            else:
                cleaned = [None if v is None else cell_text(v) for v in series]
            df.isetitem(pos, pd.Series(cleaned, index=df.index, dtype=object))
        return df


def _arrow_column(values: list, arrow_type=None, name: str = ""):
    """Build one Parquet column, restoring the type it was read with.

    Cells were coerced to text on read (booleans, dates, wide integers), so
    they are cast back from their text form. A column whose edited values no
    longer cast keeps the inferred type instead.
    """
    import pyarrow as pa

    if arrow_type is None or pa.types.is_string(arrow_type) or pa.types.is_large_string(arrow_type):
        return pa.array(values)
    texts = [None if v is None or v == "" else cell_text(v) for v in values]
    try:
        return pa.array(texts, type=pa.string()).cast(arrow_type)
    except pa.ArrowException as exc:
        logger.warning("Column %r no longer fits %s, saving as inferred type: %s", name, arrow_type, exc)
        return pa.array(values)
