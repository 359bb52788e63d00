import config_paths


class Paginator:
    """1-based page window over a row count."""

    def __init__(self, total_rows: int = 0, page_size: int = config_paths.ROWS_PER_PAGE_DEFAULT):
        self.page_size = max(1, page_size)
        self.current_page = 1
        self.total_rows = max(0, total_rows)

    def update_total_rows(self, total_rows: int):
        self.total_rows = max(0, total_rows)
        self.current_page = max(1, min(self.current_page, self.page_count))

    def reset(self):
        self.current_page = 1

    def go_to_page(self, page: int) -> bool:
        if page < 1 or page > self.page_count:
            return False
        self.current_page = page
        return True

    def next_page(self) -> bool:
        return self.go_to_page(self.current_page + 1)

    def prev_page(self) -> bool:
        return self.go_to_page(self.current_page - 1)

    def page_slice(self, rows: list) -> list:
        return rows[self.page_start : self.page_end]

    @property
    def page_start(self) -> int:
        return (self.current_page - 1) * self.page_size

    @property
    def page_end(self) -> int:
        return min(self.total_rows, self.page_start + self.page_size)

    @property
    def page_count(self) -> int:
        if self.total_rows == 0:
            return 1
        return (self.total_rows - 1) // self.page_size + 1
