import itertools
from dataclasses import dataclass, field
from typing import Any, Optional


@dataclass
class WindowingDecision:
    included: bool = True
    row_cap: Optional[int] = None
    total_rows_if_known: Optional[int] = None

    @property
    def truncated(self) -> bool:
        if not self.included or self.row_cap is None:
            return False
        if self.total_rows_if_known is None:
            return True
        return self.total_rows_if_known > self.row_cap

    @property
    def notice(self) -> str:
        if not self.truncated:
            return ""
        if self.total_rows_if_known is not None:
            return (
                f"Showing first {self.row_cap:,} of {self.total_rows_if_known:,} rows"
            )
        return f"Showing first {self.row_cap:,} rows"


@dataclass
class FileInfo:
    file_size: str = "0 Bytes"
    total_rows: int = 0
    total_columns: int = 0
    windowing: Optional[WindowingDecision] = None
    schema: Optional[list[dict]] = None
    arrow_schema: Any = field(default=None, repr=False)


@dataclass
class Table:
    headers: list[str] = field(default_factory=list)
    rows: list[list[Any]] = field(default_factory=list)
    info: FileInfo = field(default_factory=FileInfo)
    name: Optional[str] = None

    @property
    def column_count(self) -> int:
        return len(self.headers)

    @property
    def truncated(self) -> bool:
        return bool(self.info.windowing and self.info.windowing.truncated)

    def normalize(self) -> "Table":
        width = len(self.headers)
        for i, row in enumerate(self.rows):
            if len(row) < width:
                row.extend([""] * (width - len(row)))
            elif len(row) > width:
                del row[width:]
        self.refresh_counts()
        return self

    def refresh_counts(self):
        self.info.total_rows = len(self.rows)
        self.info.total_columns = len(self.headers)

    def copy(self) -> "Table":
        return Table(
            headers=list(self.headers),
            rows=[list(r) for r in self.rows],
            info=self.info,
            name=self.name,
        )

    def to_dataframe(self):
        import pandas as pd

        width = len(self.headers)
        rows = [list(r[:width]) + [""] * (width - len(r)) for r in self.rows]
        df = pd.DataFrame(rows, columns=range(width), dtype=object)
        df.columns = list(self.headers)
        return df


@dataclass
class Workbook:
    sheets: dict[str, Table] = field(default_factory=dict)
    info: FileInfo = field(default_factory=FileInfo)

    @property
    def sheet_names(self) -> list[str]:
        return list(self.sheets.keys())

    def sheet(self, key) -> Optional[Table]:
        if isinstance(key, int):
            names = self.sheet_names
            if 0 <= key < len(names):
                return self.sheets[names[key]]
            return None
        return self.sheets.get(key)


_line_ids = itertools.count(1)


@dataclass
class Line:
    line_number: int
    content: str
    is_valid: bool = False
    parsed: Any = None
    uid: int = field(default_factory=lambda: next(_line_ids), compare=False)


@dataclass
class LineSet:
    lines: list[Line] = field(default_factory=list)
    file_size: str = "0 Bytes"

    def __len__(self):
        return len(self.lines)

    def renumber(self):
        for idx, line in enumerate(self.lines):
            line.line_number = idx + 1

    def index_of(self, line_number: int) -> int:
        for idx, line in enumerate(self.lines):
            if line.line_number == line_number:
                return idx
        return -1

    def get(self, line_number: int) -> Optional[Line]:
        idx = self.index_of(line_number)
        return self.lines[idx] if idx != -1 else None

    @property
    def line_numbers(self) -> list[int]:
        return [line.line_number for line in self.lines]

    @property
    def valid_count(self) -> int:
        return sum(1 for line in self.lines if line.is_valid)

    @property
    def invalid_count(self) -> int:
        return len(self.lines) - self.valid_count

    def to_text(self) -> str:
        return "\n".join(line.content for line in self.lines)
