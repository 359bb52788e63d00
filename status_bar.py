import os
import time


def grid_status_context(editor, file_path=None, status_msg="", status_until=0.0):
    paginator = editor.state.paginator
    table = editor.table
    windowing = table.info.windowing
    return {
        "status_msg": status_msg,
        "status_until": status_until,
        "view_mode": editor.state.view_mode,
        "file_path": file_path,
        "sheet_name": editor.state.sheet_name,
        "shape": f"{len(table.rows)}x{table.column_count}",
        "page_total": paginator.page_count,
        "page_index": paginator.current_page,
        "page_start": paginator.page_start,
        "page_end": paginator.page_end,
        "total_rows": paginator.total_rows,
        "notice": windowing.notice if windowing else "",
    }


def render_status(context, width):
    """
    context keys: status_msg, status_until, view_mode, file_path, sheet_name,
                   shape, page_total, page_index, page_start, page_end,
                   total_rows, notice
    """
    now = time.time()
    if context.get("status_msg") and now < context.get("status_until", 0):
        text = f" {context['status_msg']}"
    else:
        mode = "RAW" if context.get("view_mode") == "raw" else "TABLE"
        fname = context.get("file_path") or ""
        if fname:
            fname = os.path.basename(fname)
        if context.get("sheet_name"):
            fname = f"{fname} [{context['sheet_name']}]"
        shape = context.get("shape", "")
        page_total = context.get("page_total", 1)
        page_index = context.get("page_index", 1)
        page_start = context.get("page_start", 0)
        page_end = context.get("page_end", page_start)
        total_rows = context.get("total_rows", 0)
        if total_rows:
            rows = f"rows {page_start + 1}-{page_end} of {total_rows}"
        else:
            rows = "no rows"
        text = f" {mode} | {fname} | {shape} | Page {page_index}/{page_total} {rows}"
        if context.get("notice"):
            text += f" | {context['notice']}"

    return text.ljust(width)[:width]
