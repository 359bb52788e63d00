class TablineError(Exception):
    """Base class for errors surfaced to the user."""


class IngestionError(TablineError):
    """Opening a document failed; no editor state is built."""

    def __init__(self, message: str, path: str | None = None):
        super().__init__(message)
        self.path = path


class ValidationError(TablineError):
    """A single record failed to parse as a structured record."""

    def __init__(self, message: str, line_number: int | None = None):
        super().__init__(message)
        self.line_number = line_number


class PersistenceError(TablineError):
    """The host could not write the document."""


class PasteError(TablineError):
    """Some pasted candidate records were rejected."""

    def __init__(self, rejected: list[tuple[int, str]]):
        self.rejected = list(rejected)
        positions = ", ".join(str(idx) for idx, _ in self.rejected)
        super().__init__(
            f"{len(self.rejected)} invalid record{'s' if len(self.rejected) != 1 else ''} "
            f"skipped (pasted lines: {positions})"
        )


class ClipboardError(TablineError):
    """The clipboard command is missing or failed."""
