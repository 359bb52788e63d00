_UNITS = ["Bytes", "KB", "MB", "GB", "TB", "PB"]


def format_file_size(size_bytes: int) -> str:
    if size_bytes <= 0:
        return "0 Bytes"
    idx = 0
    value = float(size_bytes)
    while value >= 1024 and idx < len(_UNITS) - 1:
        value /= 1024
        idx += 1
    text = f"{value:.2f}".rstrip("0").rstrip(".")
    return f"{text} {_UNITS[idx]}"
