import json
import logging
from typing import Optional

from errors import ClipboardError, PasteError, PersistenceError, ValidationError
from file_readers import build_line_set, make_line, parse_record, split_record_lines
from line_selection import LineSelection
from message_handler import MessageHandler
from persistence import raw_text_payload
from record_model import Line, LineSet

logger = logging.getLogger(__name__)


def validate_record(text: str, line_number: Optional[int] = None):
    """Parse a whole structured record or raise ValidationError."""
    try:
        return parse_record(text)
    except ValueError as exc:
        raise ValidationError(f"Invalid JSON: {exc}", line_number=line_number) from exc


def compact_record(parsed) -> str:
    return json.dumps(parsed, ensure_ascii=False, separators=(",", ":"))


class LineEditor:
    """Selection, inline editing, popup editing and paste over a LineSet.

    Lines are tracked internally by their ``uid`` so an edit target survives
    renumbering; selections are positional and cleared on structural changes.
    """

    def __init__(
        self,
        line_set: LineSet,
        host=None,
        notifier: MessageHandler | None = None,
        clipboard=None,
    ):
        self.line_set = line_set
        self.host = host
        self.notifier = notifier or MessageHandler()
        self.clipboard = clipboard
        self.selection = LineSelection()

        self._editing_uid: Optional[int] = None
        self.edit_buffer: str = ""
        self._popup_uid: Optional[int] = None
        self.last_paste_error: Optional[PasteError] = None

    # ---------- lookups ----------
    @property
    def lines(self) -> list[Line]:
        return self.line_set.lines

    def _line_by_uid(self, uid: Optional[int]) -> Optional[Line]:
        if uid is None:
            return None
        for line in self.line_set.lines:
            if line.uid == uid:
                return line
        return None

    @property
    def editing_line(self) -> Optional[int]:
        line = self._line_by_uid(self._editing_uid)
        return line.line_number if line else None

    @property
    def popup_line(self) -> Optional[int]:
        line = self._line_by_uid(self._popup_uid)
        return line.line_number if line else None

    @property
    def selected_lines(self) -> list[int]:
        return self.selection.ordered()

    def line_state(self, line_number: int) -> str:
        if self.editing_line == line_number:
            return "editing"
        if line_number in self.selection:
            return "selected"
        return "idle"

    # ---------- selection ----------
    def select(self, line_number: int, extend: bool = False, toggle: bool = False) -> bool:
        if self.line_set.get(line_number) is None:
            return False
        self.selection.click(line_number, extend=extend, toggle=toggle)
        return True

    def clear_selection(self):
        self.selection.clear()

    # ---------- inline editing ----------
    def start_edit(self, line_number: int) -> bool:
        target = self.line_set.get(line_number)
        if target is None:
            self.notifier.error(f"No line {line_number}")
            return False
        if self._editing_uid is not None and self._editing_uid != target.uid:
            self.commit_edit()
        if self._line_by_uid(target.uid) is None:
            return False
        self.selection.clear()
        self._editing_uid = target.uid
        self.edit_buffer = target.content
        return True

    def set_edit_buffer(self, text: str):
        self.edit_buffer = text

    def edit_buffer_is_valid(self) -> Optional[bool]:
        """Live validity of the edit buffer; None while it is blank."""
        if not self.edit_buffer.strip():
            return None
        try:
            parse_record(self.edit_buffer)
        except ValueError:
            return False
        return True

    def commit_edit(self, line_number: Optional[int] = None, new_text: Optional[str] = None) -> bool:
        """Store new raw text for a line; blank text deletes the line.

        Text spanning several lines becomes one line per non-blank piece.
        """
        if line_number is None:
            line = self._line_by_uid(self._editing_uid)
        else:
            line = self.line_set.get(line_number)
        if line is None:
            return False
        if new_text is None and line.uid != self._editing_uid:
            return False
        text = self.edit_buffer if new_text is None else new_text
        if line.uid == self._editing_uid:
            self._end_edit()

        pieces = [piece for piece in split_record_lines(text) if piece.strip()]
        if not pieces:
            return self.delete_line(line.line_number)

        updated = make_line(line.line_number, pieces[0])
        line.content = updated.content
        line.is_valid = updated.is_valid
        line.parsed = updated.parsed
        if not line.is_valid:
            logger.debug("Line %d is not valid JSON", line.line_number)
        if len(pieces) > 1:
            start = self.line_set.index_of(line.line_number) + 1
            self.line_set.lines[start:start] = [make_line(0, piece) for piece in pieces[1:]]
            self._after_structure_change()
        else:
            self._persist()
        return True

    def cancel_edit(self):
        self._end_edit()

    def _end_edit(self):
        self._editing_uid = None
        self.edit_buffer = ""

    # ---------- structure ----------
    def _after_structure_change(self):
        self.line_set.renumber()
        self.selection.clear()
        if self._line_by_uid(self._editing_uid) is None:
            self._end_edit()
        if self._line_by_uid(self._popup_uid) is None:
            self._popup_uid = None
        self._persist()

    def delete_line(self, line_number: int) -> bool:
        idx = self.line_set.index_of(line_number)
        if idx == -1:
            return False
        del self.line_set.lines[idx]
        self._after_structure_change()
        return True

    def delete_selected(self) -> int:
        if not self.selection.selected:
            return 0
        removed = 0
        for line_number in self.selection.ordered(descending=True):
            idx = self.line_set.index_of(line_number)
            if idx != -1:
                del self.line_set.lines[idx]
                removed += 1
        self.notifier.info(f"Deleted {removed} line{'s' if removed != 1 else ''}")
        self._after_structure_change()
        return removed

    def add_line_at_end(self) -> int:
        line = Line(line_number=len(self.line_set) + 1, content="", is_valid=False)
        self.line_set.lines.append(line)
        self._after_structure_change()
        self.start_edit(line.line_number)
        return line.line_number

    # ---------- paste ----------
    def paste(self, line_number: int, text: str, cursor: Optional[int] = None) -> int:
        """Paste clipboard text into a line; returns the number of records applied.

        Multi-line text is split into candidate records; invalid candidates are
        reported and skipped, valid ones are spliced in after the target line.
        """
        self.last_paste_error = None
        target = self.line_set.get(line_number)
        if target is None and len(self.line_set) > 0:
            self.notifier.error(f"No line {line_number}")
            return 0

        candidates = [c for c in text.split("\n") if c.strip()]
        if len(candidates) <= 1:
            if target is None:
                return 0
            literal = text if "\n" not in text else "".join(c.rstrip("\r") for c in candidates)
            self._insert_at_cursor(target, literal, cursor)
            return 1 if literal else 0

        valid = []
        rejected = []
        for position, candidate in enumerate(candidates, start=1):
            record = candidate.strip()
            try:
                parse_record(record)
            except ValueError:
                rejected.append((position, record))
                continue
            valid.append(record)

        if rejected:
            self.last_paste_error = PasteError(rejected)
            self.notifier.warning(str(self.last_paste_error))
        if not valid:
            return 0

        if target is None:
            start = 0
            new_records = valid
        else:
            current = self._current_text(target)
            if not current.strip():
                merged = valid[0]
            else:
                pos = len(current) if cursor is None else max(0, min(cursor, len(current)))
                merged = current[:pos] + valid[0] + current[pos:]
            updated = make_line(target.line_number, merged)
            target.content = updated.content
            target.is_valid = updated.is_valid
            target.parsed = updated.parsed
            if target.uid == self._editing_uid:
                self._end_edit()
            start = self.line_set.index_of(target.line_number) + 1
            new_records = valid[1:]

        new_lines = [make_line(0, record) for record in new_records]
        self.line_set.lines[start:start] = new_lines
        self._after_structure_change()
        return len(valid)

    def _current_text(self, line: Line) -> str:
        return self.edit_buffer if line.uid == self._editing_uid else line.content

    def _insert_at_cursor(self, line: Line, text: str, cursor: Optional[int]):
        if line.uid != self._editing_uid:
            self.start_edit(line.line_number)
        current = self.edit_buffer
        pos = len(current) if cursor is None else max(0, min(cursor, len(current)))
        self.edit_buffer = current[:pos] + text + current[pos:]

    # ---------- popup ----------
    def open_popup(self, line_number: int) -> Optional[str]:
        line = self.line_set.get(line_number)
        if line is None or not line.is_valid:
            self.notifier.warning(f"Line {line_number} is not valid JSON")
            return None
        self._popup_uid = line.uid
        return json.dumps(line.parsed, indent=2, ensure_ascii=False)

    def commit_popup(self, text: str) -> bool:
        line = self._line_by_uid(self._popup_uid)
        if line is None:
            self._popup_uid = None
            return False
        try:
            parsed = validate_record(text.strip(), line_number=line.line_number)
        except ValidationError as exc:
            self.notifier.error(str(exc))
            return False
        line.content = compact_record(parsed)
        line.is_valid = True
        line.parsed = parsed
        if line.uid == self._editing_uid:
            self._end_edit()
        self._popup_uid = None
        self._persist()
        return True

    def cancel_popup(self):
        self._popup_uid = None

    # ---------- host ----------
    def reload(self, content: str):
        """Replace every line from new document text."""
        file_size = self.line_set.file_size
        self.line_set = build_line_set(content)
        self.line_set.file_size = file_size
        self.selection.clear()
        self._end_edit()
        self._popup_uid = None

    def copy_selection(self) -> bool:
        if not self.selection.selected:
            self.notifier.warning("No lines selected")
            return False
        if self.clipboard is None:
            self.notifier.error("Clipboard unavailable")
            return False
        text = "\n".join(
            self.line_set.get(n).content
            for n in self.selection.ordered()
            if self.line_set.get(n) is not None
        )
        try:
            self.clipboard.copy(text)
        except ClipboardError as exc:
            self.notifier.error(str(exc))
            return False
        self.notifier.info(f"Copied {len(self.selection)} line{'s' if len(self.selection) != 1 else ''}")
        return True

    def paste_from_clipboard(self, line_number: int, cursor: Optional[int] = None) -> int:
        if self.clipboard is None:
            self.notifier.error("Clipboard unavailable")
            return 0
        try:
            text = self.clipboard.paste()
        except ClipboardError as exc:
            self.notifier.error(str(exc))
            return 0
        return self.paste(line_number, text, cursor)

    def _persist(self) -> bool:
        if self.host is None:
            return False
        try:
            self.host.request(raw_text_payload(self.line_set))
        except PersistenceError:
            return False
        return True
