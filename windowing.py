import logging

import config_paths
from errors import IngestionError
from file_size import format_file_size
from record_model import WindowingDecision

logger = logging.getLogger(__name__)


class WindowingPolicy:
    """Size bands for columnar reads: full, row-capped, or refused."""

    def __init__(
        self,
        small_max_bytes: int = config_paths.SMALL_MAX_BYTES_DEFAULT,
        large_min_bytes: int = config_paths.LARGE_MIN_BYTES_DEFAULT,
        row_cap: int = config_paths.ROW_CAP_DEFAULT,
    ):
        if large_min_bytes < small_max_bytes:
            raise ValueError("large_min_bytes must not be below small_max_bytes")
        self.small_max_bytes = small_max_bytes
        self.large_min_bytes = large_min_bytes
        self.row_cap = max(1, row_cap)

    @classmethod
    def from_config(cls, cfg: dict | None) -> "WindowingPolicy":
        windowing = (cfg or {}).get("WINDOWING") or {}
        return cls(
            small_max_bytes=windowing.get(
                "SMALL_MAX_BYTES", config_paths.SMALL_MAX_BYTES_DEFAULT
            ),
            large_min_bytes=windowing.get(
                "LARGE_MIN_BYTES", config_paths.LARGE_MIN_BYTES_DEFAULT
            ),
            row_cap=windowing.get("ROW_CAP", config_paths.ROW_CAP_DEFAULT),
        )

    def band(self, size_bytes: int) -> str:
        if size_bytes <= self.small_max_bytes:
            return "small"
        if size_bytes <= self.large_min_bytes:
            return "medium"
        return "large"

    def decide(self, size_bytes: int, path: str | None = None) -> WindowingDecision:
        band = self.band(size_bytes)
        if band == "large":
            raise IngestionError(
                f"File size {format_file_size(size_bytes)} exceeds maximum supported "
                f"size of {format_file_size(self.large_min_bytes)}",
                path=path,
            )
        if band == "medium":
            logger.info(
                "Windowing %s (%s) to first %d rows",
                path or "<memory>",
                format_file_size(size_bytes),
                self.row_cap,
            )
            return WindowingDecision(included=True, row_cap=self.row_cap)
        return WindowingDecision(included=True, row_cap=None)
