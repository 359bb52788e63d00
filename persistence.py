import logging
import os
import tempfile
from collections import deque
from dataclasses import dataclass, field
from typing import Any

from errors import PersistenceError
from message_handler import MessageHandler
from record_model import LineSet, Table, Workbook

logger = logging.getLogger(__name__)


@dataclass
class TabularPayload:
    headers: list
    rows: list
    arrow_schema: Any = field(default=None, repr=False)
    kind: str = field(default="tabular", init=False)

    def to_message(self) -> dict:
        return {
            "kind": self.kind,
            "headers": list(self.headers),
            "rows": [list(r) for r in self.rows],
        }


@dataclass
class WorkbookPayload:
    sheets: dict
    kind: str = field(default="workbook", init=False)

    def to_message(self) -> dict:
        return {
            "kind": self.kind,
            "sheets": {
                name: {"headers": list(t.headers), "rows": [list(r) for r in t.rows]}
                for name, t in self.sheets.items()
            },
        }


@dataclass
class RawTextPayload:
    content: str
    kind: str = field(default="raw-text", init=False)

    def to_message(self) -> dict:
        return {"kind": self.kind, "content": self.content}


def tabular_payload(table: Table) -> TabularPayload:
    snapshot = table.copy()
    return TabularPayload(
        headers=snapshot.headers, rows=snapshot.rows, arrow_schema=snapshot.info.arrow_schema
    )


def workbook_payload(workbook: Workbook) -> WorkbookPayload:
    return WorkbookPayload(
        sheets={name: table.copy() for name, table in workbook.sheets.items()}
    )


def raw_text_payload(line_set: LineSet) -> RawTextPayload:
    return RawTextPayload(content=line_set.to_text())


class DocumentHost:
    """Owns the destination path and writes whole documents atomically.

    Requests are written in arrival order; one issued while another is being
    written waits in the queue behind it.
    """

    def __init__(self, path: str, handler, notifier: MessageHandler | None = None):
        self.path = path
        self.handler = handler
        self.notifier = notifier or MessageHandler()
        self._queue = deque()
        self._writing = False
        self.completed = 0

    @property
    def pending(self) -> int:
        return len(self._queue)

    def request(self, payload) -> None:
        """Queue a persistence request and drain the queue.

        Raises PersistenceError after relaying it when any queued write failed.
        """
        self._queue.append(payload)
        if self._writing:
            return
        self._writing = True
        failure = None
        try:
            while self._queue:
                item = self._queue.popleft()
                try:
                    self._write(item)
                except PersistenceError as exc:
                    self.notifier.error(f"Save failed: {exc}")
                    failure = exc
        finally:
            self._writing = False
        if failure is not None:
            raise failure

    def _write(self, payload):
        directory = os.path.dirname(os.path.abspath(self.path))
        try:
            fd, tmp_path = tempfile.mkstemp(
                prefix=".tabline-", suffix=os.path.splitext(self.path)[1], dir=directory
            )
            os.close(fd)
        except OSError as exc:
            raise PersistenceError(f"Cannot write {self.path}: {exc}") from exc

        try:
            self.handler.write(payload, tmp_path)
            os.replace(tmp_path, self.path)
        except PersistenceError:
            raise
        except OSError as exc:
            raise PersistenceError(f"Cannot write {self.path}: {exc}") from exc
        except Exception as exc:
            raise PersistenceError(f"Cannot encode {os.path.basename(self.path)}: {exc}") from exc
        finally:
            if os.path.exists(tmp_path):
                os.remove(tmp_path)

        self.completed += 1
        logger.info("Saved %s (%s)", self.path, payload.kind)
        self.notifier.log(f"Saved {os.path.basename(self.path)}")
