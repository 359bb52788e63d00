import argparse
import logging
import shutil
import sys

import pandas as pd

import config_paths
from _version import __version__
from cell_coercion import cell_text
from clipboard import Clipboard
from errors import IngestionError
from file_type_handler import FileTypeHandler
from grid_editor import GridEditor
from message_handler import MessageHandler
from record_model import LineSet
from status_bar import grid_status_context, render_status

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def setup_logging(level: str = config_paths.LOG_LEVEL_DEFAULT):
    try:
        config_paths.ensure_config_dirs()
        handlers = [logging.FileHandler(config_paths.LOG_PATH, encoding="utf-8")]
    except OSError:
        handlers = [logging.StreamHandler(sys.stderr)]
    logging.basicConfig(level=level, format=LOG_FORMAT, handlers=handlers, force=True)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="tabline",
        description="tabline - view and edit CSV, JSONL, Parquet and XLSX files",
    )
    parser.add_argument("path", nargs="?")
    parser.add_argument("-v", "--version", action="store_true", help="print version")
    parser.add_argument("--page", type=int, default=1, help="1-based page to show")
    parser.add_argument("--raw", action="store_true", help="print the raw view")
    parser.add_argument("--stats", action="store_true", help="print statistics")
    parser.add_argument("--json", action="store_true", help="print the JSON export")
    parser.add_argument("--sheet", help="workbook sheet name or 1-based index")
    return parser


def render_page(editor: GridEditor) -> str:
    paginator = editor.state.paginator
    rows = [[cell_text(cell) for cell in row] for row in editor.page_rows()]
    df = pd.DataFrame(rows, columns=range(len(editor.headers)), dtype=object)
    df.columns = [cell_text(h) for h in editor.headers]
    df.index = range(paginator.page_start + 1, paginator.page_start + 1 + len(rows))
    return df.to_string()


def render_lines(line_set: LineSet) -> str:
    width = len(str(len(line_set))) if len(line_set) else 1
    out = []
    for line in line_set.lines:
        marker = " " if line.is_valid else "!"
        out.append(f"{line.line_number:>{width}} {marker} {line.content}")
    out.append(
        f"{len(line_set)} lines, {line_set.valid_count} valid, "
        f"{line_set.invalid_count} invalid ({line_set.file_size})"
    )
    return "\n".join(out)


def _sheet_key(value: str):
    if value.isdigit():
        return int(value) - 1
    return value


def main(argv=None):
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.version:
        print(__version__)
        return 0

    if not args.path:
        parser.print_help()
        return 0

    cfg = config_paths.load_config()
    setup_logging(cfg["LOG_LEVEL"])

    try:
        handler = FileTypeHandler(args.path, cfg)
        document = handler.load()
    except IngestionError as exc:
        print(f"Load failed: {exc}", file=sys.stderr)
        return 1

    notifier = MessageHandler(lambda msg, _seconds: print(msg, file=sys.stderr))

    if isinstance(document, LineSet):
        if args.raw:
            print(document.to_text())
        else:
            print(render_lines(document))
        return 0

    editor = GridEditor(
        document,
        notifier=notifier,
        clipboard=Clipboard(cfg),
        rows_per_page=cfg["ROWS_PER_PAGE"],
        delimiter=handler.delimiter,
    )

    if args.sheet:
        workbook = editor.state.workbook
        key = args.sheet
        if workbook is not None and key not in workbook.sheets:
            key = _sheet_key(key)
        if not editor.switch_sheet(key):
            return 1

    if args.stats:
        print(editor.stats_text())
        return 0
    if args.json:
        print(editor.export_json_text())
        return 0
    if args.raw:
        sys.stdout.write(editor.raw_text())
        return 0

    if not editor.go_to_page(args.page):
        notifier.warning(f"Page {args.page} out of range (1-{editor.total_pages})")
    print(render_page(editor))
    width = shutil.get_terminal_size((100, 24)).columns
    print(render_status(grid_status_context(editor, args.path), width).rstrip())
    return 0


if __name__ == "__main__":
    sys.exit(main())
