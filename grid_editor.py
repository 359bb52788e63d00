import csv
import json
import logging
from dataclasses import dataclass, field
from functools import cmp_to_key
from typing import Any, Optional

import pandas as pd

import config_paths
from cell_coercion import cell_text, parse_number
from csv_codec import parse_delimited, serialize_delimited
from errors import ClipboardError, PersistenceError
from message_handler import MessageHandler
from pagination import Paginator
from persistence import tabular_payload, workbook_payload
from record_model import Table, Workbook

logger = logging.getLogger(__name__)

EXPORT_JSON_MAX_BYTES = 1024 * 1024


def compare_cells(a, b) -> int:
    """Numeric comparison when both cells parse as numbers, else text."""
    a_num = parse_number(a)
    b_num = parse_number(b)
    if a_num is not None and b_num is not None:
        return (a_num > b_num) - (a_num < b_num)
    a_text = cell_text(a)
    b_text = cell_text(b)
    a_key = (a_text.casefold(), a_text)
    b_key = (b_text.casefold(), b_text)
    return (a_key > b_key) - (a_key < b_key)


def _coerce_like(previous, text: str):
    """Keep a numeric cell numeric when the edited text still reads as one."""
    if isinstance(previous, bool) or not isinstance(previous, (int, float)):
        return text
    stripped = text.strip()
    if stripped == "":
        return None
    try:
        return int(stripped) if isinstance(previous, int) else float(stripped)
    except ValueError:
        return text


@dataclass
class GridEditorState:
    table: Table
    paginator: Paginator
    filtered_rows: list = field(default_factory=list)
    sort_column: Optional[int] = None
    sort_direction: str = "asc"  # asc | desc
    search_term: str = ""
    view_mode: str = "table"  # table | raw
    workbook: Optional[Workbook] = None
    sheet_name: Optional[str] = None


class GridEditor:
    """Paging, sorting, searching and in-place mutation over a Table."""

    def __init__(
        self,
        document: Table | Workbook,
        host=None,
        notifier: MessageHandler | None = None,
        clipboard=None,
        rows_per_page: int = config_paths.ROWS_PER_PAGE_DEFAULT,
        delimiter: str = ",",
    ):
        self.host = host
        self.notifier = notifier or MessageHandler()
        self.clipboard = clipboard
        self.delimiter = delimiter

        workbook = document if isinstance(document, Workbook) else None
        if workbook is not None:
            sheet_name = workbook.sheet_names[0] if workbook.sheets else None
            table = workbook.sheet(0) if workbook.sheets else Table(info=workbook.info)
        else:
            sheet_name = None
            table = document
        table.normalize()

        self.state = GridEditorState(
            table=table,
            paginator=Paginator(len(table.rows), rows_per_page),
            workbook=workbook,
            sheet_name=sheet_name,
        )
        self._apply_view()

    # ---------- read-only accessors ----------
    @property
    def table(self) -> Table:
        return self.state.table

    @property
    def headers(self) -> list:
        return self.state.table.headers

    @property
    def filtered_rows(self) -> list:
        return self.state.filtered_rows

    @property
    def current_page(self) -> int:
        return self.state.paginator.current_page

    @property
    def rows_per_page(self) -> int:
        return self.state.paginator.page_size

    @property
    def total_pages(self) -> int:
        return self.state.paginator.page_count

    def page_rows(self) -> list:
        return self.state.paginator.page_slice(self.state.filtered_rows)

    # ---------- view ----------
    def row_matches_search(self, row) -> bool:
        term = self.state.search_term
        if not term:
            return True
        return any(term in cell_text(cell).lower() for cell in row)

    def _sorted(self, rows: list) -> list:
        col = self.state.sort_column
        if col is None:
            return rows
        key = cmp_to_key(
            lambda a, b: compare_cells(
                a[col] if col < len(a) else None, b[col] if col < len(b) else None
            )
        )
        return sorted(rows, key=key, reverse=self.state.sort_direction == "desc")

    def _apply_view(self, reset_page: bool = False):
        rows = [row for row in self.state.table.rows if self.row_matches_search(row)]
        self.state.filtered_rows = self._sorted(rows)
        self.state.paginator.update_total_rows(len(self.state.filtered_rows))
        if reset_page:
            self.state.paginator.reset()

    def sort(self, column: int) -> bool:
        if not 0 <= column < self.table.column_count:
            self.notifier.error(f"No column {column + 1}")
            return False
        if self.state.sort_column == column:
            self.state.sort_direction = "desc" if self.state.sort_direction == "asc" else "asc"
        else:
            self.state.sort_column = column
            self.state.sort_direction = "asc"
        self.state.filtered_rows = self._sorted(self.state.filtered_rows)
        self.state.paginator.reset()
        return True

    def search(self, term: str):
        self.state.search_term = (term or "").lower()
        self._apply_view(reset_page=True)

    def clear_search(self):
        self.search("")

    def go_to_page(self, page: int) -> bool:
        return self.state.paginator.go_to_page(page)

    def next_page(self) -> bool:
        return self.state.paginator.next_page()

    def prev_page(self) -> bool:
        return self.state.paginator.prev_page()

    # ---------- mutation ----------
    def _canonical_index(self, view_row: int) -> int:
        if not 0 <= view_row < len(self.state.filtered_rows):
            return -1
        target = self.state.filtered_rows[view_row]
        rows = self.state.table.rows
        for idx, row in enumerate(rows):
            if row is target:
                return idx
        for idx, row in enumerate(rows):
            if row == target:
                return idx
        return -1

    def edit_cell(self, view_row: int, col: int, new_value) -> bool:
        idx = self._canonical_index(view_row)
        if idx == -1 or not 0 <= col < self.table.column_count:
            self.notifier.error("Cell out of range")
            return False
        row = self.state.table.rows[idx]
        text = new_value if isinstance(new_value, str) else cell_text(new_value)
        row[col] = _coerce_like(row[col], text)
        self.state.filtered_rows[view_row] = row
        self._persist()
        return True

    def insert_row(self, position: Optional[int] = None) -> int:
        """Insert a blank row at a table position.

        Returns the row's index in the current view, the index ``delete_row``
        takes, or -1 when the active search hides it.
        """
        rows = self.state.table.rows
        if position is None or not 0 <= position <= len(rows):
            position = len(rows)
        row = [""] * self.table.column_count
        rows.insert(position, row)
        self.notifier.info(f"Inserted row {position + 1}")
        self._after_structure_change()
        for view_row, candidate in enumerate(self.state.filtered_rows):
            if candidate is row:
                return view_row
        return -1

    def delete_row(self, view_row: int) -> bool:
        if len(self.state.table.rows) <= 1:
            self.notifier.warning("Cannot delete the last remaining row")
            return False
        idx = self._canonical_index(view_row)
        if idx == -1:
            self.notifier.error("Row out of range")
            return False
        del self.state.table.rows[idx]
        self.notifier.info(f"Deleted row {idx + 1}")
        self._after_structure_change()
        return True

    def _generated_column_name(self) -> str:
        taken = set(self.headers)
        n = len(self.headers) + 1
        while f"Column {n}" in taken:
            n += 1
        return f"Column {n}"

    def insert_column(self, name: Optional[str] = None, position: Optional[int] = None) -> int:
        headers = self.state.table.headers
        if position is None or not 0 <= position <= len(headers):
            position = len(headers)
        name = name.strip() if name and name.strip() else self._generated_column_name()
        headers.insert(position, name)
        for row in self.state.table.rows:
            row.insert(position, "")
        if self.state.sort_column is not None and self.state.sort_column >= position:
            self.state.sort_column += 1
        self.notifier.info(f"Inserted column '{name}'")
        self._after_structure_change()
        return position

    def delete_column(self, col: int) -> bool:
        headers = self.state.table.headers
        if len(headers) <= 1:
            self.notifier.warning("Cannot delete the last remaining column")
            return False
        if not 0 <= col < len(headers):
            self.notifier.error(f"No column {col + 1}")
            return False
        name = headers.pop(col)
        for row in self.state.table.rows:
            del row[col]
        if self.state.sort_column == col:
            self.state.sort_column = None
            self.state.sort_direction = "asc"
        elif self.state.sort_column is not None and self.state.sort_column > col:
            self.state.sort_column -= 1
        self.notifier.info(f"Deleted column '{name}'")
        self._after_structure_change()
        return True

    def _after_structure_change(self):
        self.state.table.refresh_counts()
        self._apply_view()
        self._persist()

    # ---------- raw view ----------
    def raw_text(self) -> str:
        return serialize_delimited(self.headers, self.state.table.rows, self.delimiter)

    def set_raw_text(self, text: str) -> bool:
        """Re-parse the whole raw serialization into the table."""
        try:
            headers, rows = parse_delimited(text, self.delimiter)
        except csv.Error as exc:
            logger.debug("Ignoring raw text that does not parse: %s", exc)
            return False
        if not headers:
            logger.debug("Ignoring raw text with no usable lines")
            return False
        table = self.state.table
        table.headers = headers
        table.rows = rows
        table.normalize()
        if self.state.sort_column is not None and self.state.sort_column >= len(headers):
            self.state.sort_column = None
            self.state.sort_direction = "asc"
        self._apply_view()
        self._persist()
        return True

    def toggle_view(self) -> str:
        if self.state.view_mode == "table":
            self.state.view_mode = "raw"
        else:
            self.state.view_mode = "table"
            self.state.table.normalize()
            self._apply_view(reset_page=True)
        return self.state.view_mode

    # ---------- workbook ----------
    def switch_sheet(self, key) -> bool:
        workbook = self.state.workbook
        if workbook is None:
            self.notifier.warning("Not a workbook")
            return False
        table = workbook.sheet(key)
        if table is None:
            self.notifier.error(f"No sheet {key!r}")
            return False
        table.normalize()
        self.state.table = table
        self.state.sheet_name = table.name or str(key)
        self.state.search_term = ""
        self.state.sort_column = None
        self.state.sort_direction = "asc"
        self._apply_view(reset_page=True)
        return True

    # ---------- clipboard / export ----------
    def _copy(self, text: str, success: str) -> bool:
        if self.clipboard is None:
            self.notifier.error("Clipboard unavailable")
            return False
        try:
            self.clipboard.copy(text)
        except ClipboardError as exc:
            self.notifier.error(str(exc))
            return False
        self.notifier.info(success)
        return True

    def tsv_text(self) -> str:
        df = pd.DataFrame(
            [[cell_text(cell) for cell in row] for row in self.state.filtered_rows],
            columns=range(len(self.headers)),
            dtype=object,
        )
        df.columns = [cell_text(h) for h in self.headers]
        return df.to_csv(sep="\t", index=False, lineterminator="\n")

    def copy_to_clipboard(self) -> bool:
        return self._copy(self.tsv_text(), "Data copied to clipboard")

    def copy_cell(self, view_row: int, col: int) -> bool:
        if not 0 <= view_row < len(self.state.filtered_rows) or not 0 <= col < len(self.headers):
            self.notifier.error("Cell out of range")
            return False
        return self._copy(cell_text(self.state.filtered_rows[view_row][col]), "Cell copied")

    def stats(self) -> dict[str, Any]:
        info = self.state.table.info
        return {
            "total_rows": len(self.state.table.rows),
            "filtered_rows": len(self.state.filtered_rows),
            "columns": self.table.column_count,
            "file_size": info.file_size,
            "search_active": self.state.search_term != "",
            "sort_active": self.state.sort_column is not None,
            "sort_column": self.state.sort_column,
            "sort_direction": self.state.sort_direction,
            "truncation_notice": info.windowing.notice if info.windowing else "",
        }

    def stats_text(self) -> str:
        s = self.stats()
        if s["sort_active"]:
            sort = f"Column {s['sort_column'] + 1} ({s['sort_direction']})"
        else:
            sort = "No"
        lines = [
            f"Total Rows: {s['total_rows']}",
            f"Filtered Rows: {s['filtered_rows']}",
            f"Columns: {s['columns']}",
            f"File Size: {s['file_size']}",
            f"Search Active: {'Yes' if s['search_active'] else 'No'}",
            f"Sort Active: {sort}",
        ]
        if s["truncation_notice"]:
            lines.append(s["truncation_notice"])
        return "\n".join(lines)

    def export_json_text(self) -> str:
        info = self.state.table.info
        windowing = info.windowing
        data = {
            "headers": list(self.headers),
            "rows": self.state.filtered_rows,
            "schema": info.schema,
            "metadata": {
                "totalRows": len(self.state.table.rows),
                "filteredRows": len(self.state.filtered_rows),
                "columns": self.table.column_count,
                "fileSize": info.file_size,
                "searchActive": self.state.search_term != "",
                "isLimited": bool(windowing and windowing.truncated),
                "actualTotalRows": windowing.total_rows_if_known if windowing else None,
            },
        }
        return json.dumps(data, indent=2, ensure_ascii=False)

    def export_json(self) -> Optional[str]:
        text = self.export_json_text()
        size = len(text.encode("utf-8"))
        if size > EXPORT_JSON_MAX_BYTES:
            self.notifier.error(
                f"JSON data is too large ({size / 1024 / 1024:.2f}MB). Cannot copy to clipboard."
            )
            return None
        if not self._copy(text, f"JSON data copied to clipboard! ({size / 1024:.1f}KB)"):
            return None
        return text

    # ---------- persistence ----------
    def _persist(self) -> bool:
        if self.host is None:
            return False
        table = self.state.table
        if table.truncated:
            self.notifier.warning(
                f"Not saved: {table.info.windowing.notice}; saving would drop rows"
            )
            return False
        if self.state.workbook is not None:
            payload = workbook_payload(self.state.workbook)
        else:
            payload = tabular_payload(table)
        try:
            self.host.request(payload)
        except PersistenceError:
            return False
        return True
