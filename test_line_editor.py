import unittest
from unittest.mock import patch

from clipboard import Clipboard
from file_readers import build_line_set
from line_editor import LineEditor
from message_handler import MessageHandler
from record_model import LineSet


class RecordingHost:
    def __init__(self):
        self.payloads = []

    def request(self, payload):
        self.payloads.append(payload.to_message())

    @property
    def last_content(self):
        return self.payloads[-1]["content"]


class LineEditorTestBase(unittest.TestCase):
    def _editor(self, text, clipboard=None):
        messages = []
        notifier = MessageHandler(lambda msg, _secs: messages.append(msg))
        host = RecordingHost()
        editor = LineEditor(build_line_set(text), host=host, notifier=notifier, clipboard=clipboard)
        return editor, host, messages

    def assertContiguous(self, editor):
        self.assertEqual(editor.line_set.line_numbers, list(range(1, len(editor.lines) + 1)))


class SelectionTests(LineEditorTestBase):
    def test_plain_range_and_toggle_clicks(self):
        editor, _, _ = self._editor("1\n2\n3\n4\n5")
        editor.select(2)
        self.assertEqual(editor.selected_lines, [2])
        editor.select(4, extend=True)
        self.assertEqual(editor.selected_lines, [2, 3, 4])
        editor.select(3, toggle=True)
        self.assertEqual(editor.selected_lines, [2, 4])
        editor.select(5, toggle=True)
        self.assertEqual(editor.selected_lines, [2, 4, 5])
        editor.select(1)
        self.assertEqual(editor.selected_lines, [1])
        self.assertEqual(editor.line_state(1), "selected")

    def test_extend_without_anchor_selects_single_line(self):
        editor, _, _ = self._editor("1\n2\n3")
        editor.select(3, extend=True)
        self.assertEqual(editor.selected_lines, [3])

    def test_selecting_missing_line_is_ignored(self):
        editor, _, _ = self._editor("1\n2")
        self.assertFalse(editor.select(9))
        self.assertEqual(editor.selected_lines, [])

    def test_entering_edit_clears_selection_and_anchor(self):
        editor, _, _ = self._editor("1\n2\n3")
        editor.select(1)
        editor.select(2, toggle=True)
        editor.start_edit(3)
        self.assertEqual(editor.selected_lines, [])
        self.assertIsNone(editor.selection.anchor)
        self.assertEqual(editor.line_state(3), "editing")

    def test_delete_selected_removes_lines_and_renumbers(self):
        editor, host, _ = self._editor('{"a":1}\n{"a":2}\n{"a":3}\n{"a":4}')
        editor.select(1)
        editor.select(3, toggle=True)
        self.assertEqual(editor.delete_selected(), 2)
        self.assertEqual([line.content for line in editor.lines], ['{"a":2}', '{"a":4}'])
        self.assertContiguous(editor)
        self.assertEqual(editor.selected_lines, [])
        self.assertEqual(len(host.payloads), 1)
        self.assertEqual(host.last_content, '{"a":2}\n{"a":4}')

    def test_delete_selected_with_nothing_selected(self):
        editor, host, _ = self._editor("1")
        self.assertEqual(editor.delete_selected(), 0)
        self.assertEqual(host.payloads, [])

    def test_copy_selection(self):
        editor, _, _ = self._editor(
            '{"a":1}\n{"a":2}\n{"a":3}',
            clipboard=Clipboard({"CLIPBOARD_INTERFACE_COMMAND": ["fake-clip"]}),
        )
        editor.select(3)
        editor.select(1, toggle=True)
        with patch("subprocess.run") as run:
            self.assertTrue(editor.copy_selection())
            self.assertEqual(run.call_args.kwargs.get("input"), '{"a":1}\n{"a":3}')


class EditTests(LineEditorTestBase):
    def test_delete_malformed_line_renumbers(self):
        editor, host, _ = self._editor('{"a":1}\nnot json\n{"b":2}')
        self.assertFalse(editor.lines[1].is_valid)
        editor.delete_line(2)
        self.assertEqual(editor.line_set.line_numbers, [1, 2])
        self.assertEqual(host.last_content, '{"a":1}\n{"b":2}')

    def test_commit_invalid_text_is_accepted_but_marked(self):
        editor, host, _ = self._editor('{"a":1}')
        editor.start_edit(1)
        editor.set_edit_buffer('{"a":')
        self.assertFalse(editor.edit_buffer_is_valid())
        self.assertTrue(editor.commit_edit())
        line = editor.lines[0]
        self.assertEqual(line.content, '{"a":')
        self.assertFalse(line.is_valid)
        self.assertIsNone(line.parsed)
        self.assertIsNone(editor.editing_line)
        self.assertEqual(host.last_content, '{"a":')

    def test_commit_valid_text_parses(self):
        editor, _, _ = self._editor("broken")
        editor.commit_edit(1, '{"ok": true}')
        self.assertTrue(editor.lines[0].is_valid)
        self.assertEqual(editor.lines[0].parsed, {"ok": True})

    def test_commit_blank_text_deletes_line(self):
        editor, host, _ = self._editor("1\n2\n3")
        editor.start_edit(2)
        editor.set_edit_buffer("   ")
        self.assertIsNone(editor.edit_buffer_is_valid())
        editor.commit_edit()
        self.assertEqual([line.content for line in editor.lines], ["1", "3"])
        self.assertContiguous(editor)
        self.assertEqual(len(host.payloads), 1)

    def test_commit_with_line_breaks_becomes_separate_lines(self):
        editor, host, _ = self._editor('{"a":1}\n{"z":9}')
        editor.start_edit(1)
        editor.set_edit_buffer('{"a":2}\n\n{"b":3}\r\nnope')
        self.assertTrue(editor.commit_edit())
        self.assertEqual(
            [line.content for line in editor.lines], ['{"a":2}', '{"b":3}', "nope", '{"z":9}']
        )
        self.assertEqual([line.is_valid for line in editor.lines], [True, True, False, True])
        self.assertContiguous(editor)
        self.assertEqual(len(host.payloads), 1)
        self.assertEqual(host.last_content, '{"a":2}\n{"b":3}\nnope\n{"z":9}')

    def test_editing_is_exclusive(self):
        editor, host, _ = self._editor("1\n2\n3")
        editor.start_edit(1)
        editor.set_edit_buffer("10")
        editor.start_edit(3)
        self.assertEqual(editor.lines[0].content, "10")
        self.assertEqual(editor.editing_line, 3)
        self.assertEqual(editor.edit_buffer, "3")
        self.assertEqual(len(host.payloads), 1)

    def test_switching_edit_after_blank_commit_follows_the_target_line(self):
        editor, _, _ = self._editor("1\n2\n3")
        editor.start_edit(1)
        editor.set_edit_buffer("")
        editor.start_edit(3)
        self.assertEqual(editor.editing_line, 2)
        self.assertEqual(editor.edit_buffer, "3")

    def test_cancel_edit_restores_content(self):
        editor, host, _ = self._editor("1")
        editor.start_edit(1)
        editor.set_edit_buffer("changed")
        editor.cancel_edit()
        self.assertEqual(editor.lines[0].content, "1")
        self.assertIsNone(editor.editing_line)
        self.assertEqual(host.payloads, [])

    def test_add_line_at_end_enters_editing(self):
        editor, host, _ = self._editor("1")
        self.assertEqual(editor.add_line_at_end(), 2)
        self.assertEqual(editor.editing_line, 2)
        self.assertEqual(editor.edit_buffer, "")
        self.assertEqual(len(host.payloads), 1)


class PasteTests(LineEditorTestBase):
    def test_multi_line_paste_into_empty_position(self):
        editor, host, messages = self._editor('{"first":0}')
        editor.add_line_at_end()
        before = len(host.payloads)

        applied = editor.paste(2, '{"a":1}\noops\n{"b":2}\n')

        self.assertEqual(applied, 2)
        self.assertEqual(len(host.payloads) - before, 1)
        self.assertEqual(
            [line.content for line in editor.lines], ['{"first":0}', '{"a":1}', '{"b":2}']
        )
        self.assertTrue(all(line.is_valid for line in editor.lines))
        self.assertContiguous(editor)
        self.assertEqual(editor.last_paste_error.rejected, [(2, "oops")])
        self.assertIn("1 invalid record skipped", messages[-1])

    def test_multi_line_paste_into_empty_document(self):
        editor, host, _ = self._editor("")
        applied = editor.paste(1, '{"a":1}\n{"b":2}')
        self.assertEqual(applied, 2)
        self.assertEqual(editor.line_set.line_numbers, [1, 2])
        self.assertEqual(host.last_content, '{"a":1}\n{"b":2}')

    def test_multi_line_paste_inserts_after_target_at_cursor(self):
        editor, host, _ = self._editor('{"x":1}\nlast')
        editor.paste(1, '[1]\n[2]\n[3]', cursor=0)
        self.assertEqual(
            [line.content for line in editor.lines], ['[1]{"x":1}', "[2]", "[3]", "last"]
        )
        self.assertFalse(editor.lines[0].is_valid)
        self.assertContiguous(editor)
        self.assertEqual(len(host.payloads), 1)

    def test_paste_with_only_invalid_candidates_changes_nothing(self):
        editor, host, _ = self._editor("1")
        self.assertEqual(editor.paste(1, "nope\nnever"), 0)
        self.assertEqual(len(editor.lines), 1)
        self.assertEqual(host.payloads, [])
        self.assertEqual(len(editor.last_paste_error.rejected), 2)

    def test_single_line_paste_is_literal_insertion(self):
        editor, host, _ = self._editor('{"a":}')
        editor.start_edit(1)
        editor.paste(1, "1", cursor=5)
        self.assertEqual(editor.edit_buffer, '{"a":1}')
        self.assertEqual(len(editor.lines), 1)
        self.assertEqual(host.payloads, [])
        editor.commit_edit()
        self.assertTrue(editor.lines[0].is_valid)

    def test_paste_from_clipboard(self):
        editor, _, _ = self._editor(
            "",
            clipboard=Clipboard({"CLIPBOARD_READ_COMMAND": ["fake-paste"]}),
        )
        with patch("subprocess.run") as run:
            run.return_value.stdout = '{"a":1}\n{"a":2}\n'
            self.assertEqual(editor.paste_from_clipboard(1), 2)
            self.assertEqual(run.call_args.args[0], ["fake-paste"])


class PopupTests(LineEditorTestBase):
    def test_popup_round_trip(self):
        editor, host, _ = self._editor('{"a": 1, "b": [1, 2]}')
        text = editor.open_popup(1)
        self.assertEqual(text, '{\n  "a": 1,\n  "b": [\n    1,\n    2\n  ]\n}')
        self.assertEqual(editor.popup_line, 1)
        self.assertTrue(editor.commit_popup('{"a": 2, "b": []}'))
        self.assertEqual(editor.lines[0].content, '{"a":2,"b":[]}')
        self.assertEqual(editor.lines[0].parsed, {"a": 2, "b": []})
        self.assertIsNone(editor.popup_line)
        self.assertEqual(host.last_content, '{"a":2,"b":[]}')

    def test_invalid_popup_commit_is_blocked(self):
        editor, host, messages = self._editor('{"a": 1}')
        editor.open_popup(1)
        self.assertFalse(editor.commit_popup('{"a": '))
        self.assertEqual(editor.lines[0].content, '{"a": 1}')
        self.assertEqual(editor.popup_line, 1)
        self.assertEqual(host.payloads, [])
        self.assertTrue(messages[-1].startswith("Invalid JSON"))
        editor.cancel_popup()
        self.assertIsNone(editor.popup_line)

    def test_popup_requires_valid_line(self):
        editor, _, messages = self._editor("nope")
        self.assertIsNone(editor.open_popup(1))
        self.assertIn("not valid JSON", messages[-1])


class ReloadTests(LineEditorTestBase):
    def test_reload_replaces_lines_and_clears_state(self):
        editor, _, _ = self._editor("1\n2")
        editor.line_set.file_size = "3 Bytes"
        editor.select(1)
        editor.start_edit(2)
        editor.reload("[1]\n\n[2]\n[3]")
        self.assertEqual(len(editor.lines), 3)
        self.assertEqual(editor.selected_lines, [])
        self.assertIsNone(editor.editing_line)
        self.assertEqual(editor.line_set.file_size, "3 Bytes")
        self.assertIsInstance(editor.line_set, LineSet)

    def test_reload_keeps_records_with_unicode_line_separators(self):
        editor, _, _ = self._editor("1")
        editor.reload('{"t":"a\u2028b"}\r\n[2]')
        self.assertEqual([line.content for line in editor.lines], ['{"t":"a\u2028b"}', "[2]"])
        self.assertTrue(all(line.is_valid for line in editor.lines))


if __name__ == "__main__":
    unittest.main()
