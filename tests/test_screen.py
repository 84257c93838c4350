import io
import unittest

from prompt_toolkit.data_structures import Size
from prompt_toolkit.input import create_pipe_input
from prompt_toolkit.output import DummyOutput
from prompt_toolkit.output.vt100 import Vt100_Output

from netman.menu import Menu
from netman.screen import CONTINUE_PROMPT, Screen, popup_body, popup_geometry


class TestPopupGeometry(unittest.TestCase):
    def test_fits_inside_terminal(self) -> None:
        for columns, rows in ((80, 24), (40, 10), (200, 60), (12, 6)):
            with self.subTest(columns=columns, rows=rows):
                width, height = popup_geometry(columns, rows, 30)
                self.assertLessEqual(width, columns)
                self.assertLessEqual(height, rows)

    def test_long_lines_are_truncated_not_wrapped(self) -> None:
        text = "x" * 300 + "\n" + "short"
        width, height = popup_geometry(40, 24, 2)
        lines = popup_body(text, width, height)
        self.assertEqual(lines, ["x" * (width - 4), "short"])

    def test_rows_past_the_box_are_dropped(self) -> None:
        text = "\n".join(f"line {i}" for i in range(100))
        width, height = popup_geometry(80, 12, 100)
        lines = popup_body(text, width, height)
        self.assertEqual(len(lines), height - 4)
        self.assertEqual(lines[0], "line 0")


class TestScreen(unittest.TestCase):
    def setUp(self) -> None:
        pipe = create_pipe_input()
        self.input = pipe.__enter__()
        self.addCleanup(pipe.__exit__, None, None, None)
        self.screen = Screen(input=self.input, output=DummyOutput())
        self.screen.init()
        self.addCleanup(self.screen.teardown)
        self.menu = Menu("Wi-Fi Manager", ["Scan", "Status", "Disconnect", "Back"])

    def test_navigate_and_activate(self) -> None:
        self.input.send_text("jjjjk\r")
        outcome = self.screen.run_menu(self.menu)
        self.assertEqual(outcome.index, 2)
        self.assertEqual(self.menu.highlight, 2)

    def test_digit_shortcut(self) -> None:
        self.input.send_text("2")
        self.assertEqual(self.screen.run_menu(self.menu).index, 1)

    def test_quit_key(self) -> None:
        self.input.send_text("q")
        self.assertTrue(self.screen.run_menu(self.menu).is_back)

    def test_popup_closes_on_one_key(self) -> None:
        self.input.send_text("j\r")
        self.screen.run_menu(self.menu)
        self.input.send_text("x")
        self.screen.show_popup("Wi-Fi Status", "State connected\n" + "y" * 200)
        self.input.send_text("q")
        self.assertTrue(self.screen.run_menu(self.menu).is_back)

    def test_overlay_list_hands_back_previous_menu(self) -> None:
        self.input.send_text("j\r")
        self.screen.run_menu(self.menu)
        before = list(self.screen.frame)
        self.input.send_text("q")
        self.screen.run_menu(Menu("Devices", ["AA:BB Headset"]), overlay=True)
        self.assertEqual(self.screen.frame, before)

    def test_nested_suspend_repaints_once(self) -> None:
        with self.screen.suspended():
            with self.screen.suspended():
                pass
            self.assertTrue(self.screen.is_suspended)
            self.assertEqual(self.screen.repaints, 0)
        self.assertFalse(self.screen.is_suspended)
        self.assertEqual(self.screen.repaints, 1)

    def test_drawing_while_suspended_is_refused(self) -> None:
        with self.screen.suspended():
            with self.assertRaises(RuntimeError):
                self.screen.run_menu(self.menu)
            with self.assertRaises(RuntimeError):
                self.screen.show_popup("Info", CONTINUE_PROMPT)

    def test_resume_after_error(self) -> None:
        with self.assertRaises(ValueError):
            with self.screen.suspended():
                raise ValueError("boom")
        self.assertFalse(self.screen.is_suspended)

    def test_busy_returns_action_result(self) -> None:
        def _action(spinner):
            spinner.advance()
            spinner.advance()
            return spinner.index

        self.assertEqual(self.screen.run_busy("Scanning...", "Scanning for devices", _action), 2)

    def test_busy_reraises(self) -> None:
        def _action(spinner):
            raise OSError("gone")

        with self.assertRaises(OSError):
            self.screen.run_busy("Scanning...", "", _action)

    def test_teardown_is_idempotent(self) -> None:
        self.screen.teardown()
        self.screen.teardown()
        self.assertFalse(self.screen.active)
        with self.assertRaises(RuntimeError):
            self.screen.run_menu(self.menu)


HIDE_CURSOR = "\x1b[?25l"
SHOW_CURSOR = "\x1b[?25h"


class TestTerminalOutput(unittest.TestCase):
    """Checks the escape sequences a real VT100 terminal would receive."""

    def setUp(self) -> None:
        pipe = create_pipe_input()
        self.input = pipe.__enter__()
        self.addCleanup(pipe.__exit__, None, None, None)
        self.terminal = io.StringIO()
        output = Vt100_Output(self.terminal, lambda: Size(rows=24, columns=80), term="xterm", enable_cpr=False)
        self.screen = Screen(input=self.input, output=output)
        self.screen.init()
        self.addCleanup(self.screen.teardown)
        self.menu = Menu("Wi-Fi Manager", ["Scan", "Status", "Disconnect", "Back"])

    def _written_by(self, action) -> str:
        start = len(self.terminal.getvalue())
        action()
        return self.terminal.getvalue()[start:]

    def _cursor_hidden(self) -> bool:
        written = self.terminal.getvalue()
        return written.rfind(HIDE_CURSOR) > written.rfind(SHOW_CURSOR)

    def test_resume_repaints_what_was_on_screen(self) -> None:
        self.input.send_text("j\r")
        self.screen.run_menu(self.menu)
        before = self._written_by(self.screen.repaint)
        self.assertIn(" > Status ", before)
        self.assertIn("Wi-Fi Manager", before)

        self.screen.suspend()
        self.assertFalse(self._cursor_hidden())
        after = self._written_by(self.screen.resume)
        self.assertEqual(after.replace(HIDE_CURSOR, ""), before.replace(HIDE_CURSOR, ""))

    def test_cursor_hidden_for_the_whole_session(self) -> None:
        self.assertTrue(self._cursor_hidden())
        self.input.send_text("q")
        self.screen.run_menu(self.menu)
        self.assertTrue(self._cursor_hidden())
        with self.screen.suspended():
            self.assertFalse(self._cursor_hidden())
        self.assertTrue(self._cursor_hidden())
        self.screen.teardown()
        self.assertFalse(self._cursor_hidden())


if __name__ == "__main__":
    unittest.main()
