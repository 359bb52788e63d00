import json
import logging
import os

HOME = os.path.expanduser("~")
XDG_CONFIG_HOME = os.environ.get("XDG_CONFIG_HOME")
CONFIG_HOME = XDG_CONFIG_HOME if XDG_CONFIG_HOME else os.path.join(HOME, ".config")
CONFIG_DIR = os.path.join(CONFIG_HOME, "tabline")
LOG_PATH = os.path.join(CONFIG_DIR, "tabline.log")
CONFIG_JSON = os.path.join(CONFIG_DIR, "config.json")

# default settings
MIB = 1024 * 1024
SMALL_MAX_BYTES_DEFAULT = 50 * MIB
LARGE_MIN_BYTES_DEFAULT = 200 * MIB
ROW_CAP_DEFAULT = 10000
ROWS_PER_PAGE_DEFAULT = 100
CLIPBOARD_INTERFACE_COMMAND_DEFAULT = None
CLIPBOARD_READ_COMMAND_DEFAULT = None
LOG_LEVEL_DEFAULT = "INFO"
_LOG_LEVELS = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}

logger = logging.getLogger(__name__)


def ensure_config_dirs():
    os.makedirs(CONFIG_DIR, exist_ok=True)


def _is_argv(value) -> bool:
    return isinstance(value, list) and bool(value) and all(
        isinstance(item, str) for item in value
    )


def _positive_int(value):
    if isinstance(value, bool) or not isinstance(value, int):
        return None
    return value if value > 0 else None


def default_config() -> dict:
    return {
        "CLIPBOARD_INTERFACE_COMMAND": CLIPBOARD_INTERFACE_COMMAND_DEFAULT,
        "CLIPBOARD_READ_COMMAND": CLIPBOARD_READ_COMMAND_DEFAULT,
        "ROWS_PER_PAGE": ROWS_PER_PAGE_DEFAULT,
        "WINDOWING": {
            "SMALL_MAX_BYTES": SMALL_MAX_BYTES_DEFAULT,
            "LARGE_MIN_BYTES": LARGE_MIN_BYTES_DEFAULT,
            "ROW_CAP": ROW_CAP_DEFAULT,
        },
        "LOG_LEVEL": LOG_LEVEL_DEFAULT,
    }


def load_config():
    cfg = default_config()

    if not os.path.exists(CONFIG_JSON):
        return cfg

    try:
        with open(CONFIG_JSON, "r", encoding="utf-8") as f:
            data = json.load(f)
    except (OSError, json.JSONDecodeError) as exc:
        logger.warning("Ignoring unreadable config %s: %s", CONFIG_JSON, exc)
        return cfg

    if not isinstance(data, dict):
        return cfg

    clip_cmd = data.get("clipboard_interface_command")
    if _is_argv(clip_cmd):
        cfg["CLIPBOARD_INTERFACE_COMMAND"] = clip_cmd

    read_cmd = data.get("clipboard_read_command")
    if _is_argv(read_cmd):
        cfg["CLIPBOARD_READ_COMMAND"] = read_cmd

    rows_per_page = _positive_int(data.get("rows_per_page"))
    if rows_per_page:
        cfg["ROWS_PER_PAGE"] = rows_per_page

    windowing = data.get("windowing")
    if isinstance(windowing, dict):
        small = _positive_int(windowing.get("small_max_bytes"))
        large = _positive_int(windowing.get("large_min_bytes"))
        cap = _positive_int(windowing.get("row_cap"))
        if small:
            cfg["WINDOWING"]["SMALL_MAX_BYTES"] = small
        if large:
            cfg["WINDOWING"]["LARGE_MIN_BYTES"] = large
        if cap:
            cfg["WINDOWING"]["ROW_CAP"] = cap
        if cfg["WINDOWING"]["LARGE_MIN_BYTES"] < cfg["WINDOWING"]["SMALL_MAX_BYTES"]:
            logger.warning("windowing.large_min_bytes below small_max_bytes; using defaults")
            cfg["WINDOWING"]["SMALL_MAX_BYTES"] = SMALL_MAX_BYTES_DEFAULT
            cfg["WINDOWING"]["LARGE_MIN_BYTES"] = LARGE_MIN_BYTES_DEFAULT

    level = data.get("log_level")
    if isinstance(level, str) and level.upper() in _LOG_LEVELS:
        cfg["LOG_LEVEL"] = level.upper()

    return cfg
