from typing import Optional


class LineSelection:
    """Selected line numbers plus the last-touched anchor for range clicks."""

    def __init__(self):
        self.selected: set[int] = set()
        self.anchor: Optional[int] = None

    def __len__(self):
        return len(self.selected)

    def __contains__(self, line_number):
        return line_number in self.selected

    @property
    def is_multi(self) -> bool:
        return len(self.selected) > 1

    def click(self, line_number: int, extend: bool = False, toggle: bool = False):
        if extend and self.anchor is not None:
            self.select_range(self.anchor, line_number)
        elif toggle:
            self.toggle(line_number)
        else:
            self.select_single(line_number)
        self.anchor = line_number

    def select_single(self, line_number: int):
        self.selected = {line_number}

    def select_range(self, start: int, end: int):
        lo, hi = sorted((start, end))
        self.selected = set(range(lo, hi + 1))

    def toggle(self, line_number: int):
        if line_number in self.selected:
            self.selected.discard(line_number)
        else:
            self.selected.add(line_number)

    def clear(self):
        self.selected = set()
        self.anchor = None

    def ordered(self, descending: bool = False) -> list[int]:
        return sorted(self.selected, reverse=descending)
