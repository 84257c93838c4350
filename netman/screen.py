from __future__ import annotations

import asyncio
import logging
from contextlib import contextmanager
from typing import Any, Callable, Iterator, TypeVar

from prompt_toolkit.application import Application
from prompt_toolkit.application.current import get_app_session
from prompt_toolkit.formatted_text import FormattedText, StyleAndTextTuples
from prompt_toolkit.input import Input
from prompt_toolkit.key_binding import KeyBindings, merge_key_bindings
from prompt_toolkit.keys import Keys
from prompt_toolkit.layout import Float, FloatContainer, HSplit, Layout, Window
from prompt_toolkit.layout.containers import AnyContainer, WindowAlign
from prompt_toolkit.layout.controls import FormattedTextControl
from prompt_toolkit.output import Output
from prompt_toolkit.shortcuts import print_formatted_text
from prompt_toolkit.styles import Style
from prompt_toolkit.widgets import Dialog, Frame

from netman.menu import MENU_KEYS, Menu, MenuOutcome

logger = logging.getLogger(__name__)

T = TypeVar("T")

POPUP_WIDTH = 70
POPUP_MIN_HEIGHT = 7
CONTINUE_PROMPT = "Press any key to continue..."
SPINNER_FRAMES = ("⣾", "⣽", "⣻", "⢿", "⡿", "⣟", "⣯", "⣷")


class QuickExit(Exception):
    """Raised to terminate the TUI quickly from global Ctrl-C."""


def _quick_exit(event=None) -> None:
    if event and getattr(event, "app", None):
        event.app.exit(exception=QuickExit())
        return
    raise QuickExit()


GLOBAL_KEY_BINDINGS = KeyBindings()
GLOBAL_KEY_BINDINGS.add("c-c")(_quick_exit)

SCREEN_STYLE = Style.from_dict(
    {
        "": "bg:#000000 #e5e7eb",
        "banner": "bold #22d3ee",
        "hint": "#6b7280",
        "dialog": "bg:#000000 #e5e7eb",
        "dialog.body": "bg:#000000 #e5e7eb",
        "dialog frame.border": "#22d3ee",
        "dialog frame.label": "bold #22d3ee",
        "frame.border": "#22d3ee",
        "frame.label": "bold #22d3ee",
        "menu-item": "#e5e7eb",
        "menu-item.selected": "bg:#22d3ee #000000",
        "popup": "bg:#000000 #e5e7eb",
        "spinner": "bold #22d3ee",
    }
)


def popup_geometry(columns: int, rows: int, line_count: int) -> tuple[int, int]:
    """Width and height of a popup that fits a ``columns`` x ``rows`` terminal."""
    width = min(POPUP_WIDTH, max(1, columns - 4))
    height = min(max(POPUP_MIN_HEIGHT, line_count + 4), max(1, rows - 2))
    return width, height


def popup_body(text: str, width: int, height: int) -> list[str]:
    """Cut ``text`` down to what fits inside a ``width`` x ``height`` popup.

    Lines are truncated at the column budget, never wrapped, and rows past
    the box are dropped: the box is never overrun, information may be lost.
    """
    budget = max(0, width - 4)
    max_lines = max(0, height - 4)
    lines = text.expandtabs(4).splitlines() or [""]
    return [line[:budget] for line in lines[:max_lines]]


def _erase(output: Output) -> None:
    output.erase_screen()
    output.cursor_goto(0, 0)
    output.flush()


class Spinner:
    def __init__(self) -> None:
        self.index = 0
        self.app: Application | None = None

    @property
    def frame(self) -> str:
        return SPINNER_FRAMES[self.index % len(SPINNER_FRAMES)]

    def advance(self) -> None:
        self.index += 1
        app = self.app
        if app is not None:
            app.invalidate()


class Screen:
    """The process-wide terminal surface.

    Every draw goes through one of the ``run_*``/``show_*`` methods, each a
    full-screen prompt_toolkit application that repaints the whole grid.
    The last menu drawn is kept as the background for popups and is painted
    again on :meth:`resume`.
    """

    def __init__(self, *, input: Input | None = None, output: Output | None = None) -> None:
        self._input = input
        self._output = output
        self._active = False
        self._suspend_depth = 0
        self._view: Menu | None = None
        self.frame: list[str] = []
        self.repaints = 0

    @property
    def active(self) -> bool:
        return self._active

    @property
    def is_suspended(self) -> bool:
        return self._suspend_depth > 0

    def __enter__(self) -> "Screen":
        self.init()
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.teardown()

    def _out(self) -> Output:
        return self._output or get_app_session().output

    def init(self) -> None:
        if self._active:
            return
        output = self._out()
        _erase(output)
        output.hide_cursor()
        output.flush()
        self._active = True
        logger.debug("screen surface initialized")

    def teardown(self) -> None:
        if not self._active:
            return
        self._active = False
        self._suspend_depth = 0
        output = self._out()
        output.show_cursor()
        _erase(output)
        logger.debug("screen surface torn down")

    def suspend(self) -> None:
        """Hand the bare terminal out; nested calls only count."""
        if not self._active:
            raise RuntimeError("screen surface is not initialized")
        self._suspend_depth += 1
        if self._suspend_depth > 1:
            return
        output = self._out()
        _erase(output)
        output.show_cursor()
        output.flush()

    def resume(self) -> None:
        if self._suspend_depth == 0:
            return
        self._suspend_depth -= 1
        if self._suspend_depth == 0 and self._active:
            self.repaint()

    @contextmanager
    def suspended(self) -> Iterator[None]:
        self.suspend()
        try:
            yield
        finally:
            self.resume()

    def repaint(self) -> None:
        self._require_surface()
        output = self._out()
        _erase(output)
        if self._view is not None:
            self.frame = self._view.lines()
            print_formatted_text(
                FormattedText(_frame_fragments(self._view)),
                output=output,
                style=SCREEN_STYLE,
            )
        output.hide_cursor()
        output.flush()
        self.repaints += 1

    def _require_surface(self) -> None:
        if not self._active:
            raise RuntimeError("screen surface is not initialized")
        if self._suspend_depth:
            raise RuntimeError("screen surface is suspended")

    def _application(
        self,
        container: AnyContainer,
        key_bindings: KeyBindings,
        refresh_interval: float | None = None,
    ) -> Application:
        self._require_surface()
        return Application(
            layout=Layout(container),
            key_bindings=merge_key_bindings([GLOBAL_KEY_BINDINGS, key_bindings]),
            mouse_support=False,
            style=SCREEN_STYLE,
            full_screen=True,
            refresh_interval=refresh_interval,
            input=self._input,
            output=self._output,
        )

    def _run(self, app: Application, **kwargs: Any) -> Any:
        try:
            return app.run(**kwargs)
        finally:
            # The cursor stays hidden between applications too.
            if self._active and not self._suspend_depth:
                output = self._out()
                output.hide_cursor()
                output.flush()

    def _menu_container(self, menu: Menu) -> AnyContainer:
        items = Window(
            FormattedTextControl(lambda: _item_fragments(menu)),
            always_hide_cursor=True,
            dont_extend_height=True,
        )
        hint = Window(FormattedTextControl(menu.hint), style="class:hint", height=1)
        dialog = Dialog(
            title=menu.title,
            body=HSplit([items, Window(height=1), hint]),
            with_background=True,
        )
        if not menu.banner:
            return dialog
        banner = Window(
            FormattedTextControl("\n".join(menu.banner)),
            height=len(menu.banner) + 1,
            align=WindowAlign.CENTER,
            style="class:banner",
        )
        return HSplit([banner, dialog])

    def _background(self) -> AnyContainer:
        if self._view is None:
            return Window(style="class:dialog")
        return self._menu_container(self._view)

    def run_menu(self, menu: Menu, *, overlay: bool = False) -> MenuOutcome:
        """Draw ``menu`` and feed keys to it until an item is activated or back is pressed.

        An ``overlay`` menu (a transient list selection) hands the background
        back to the menu that was visible before it once it closes.
        """
        self._require_surface()
        previous = self._view
        self._view = menu
        kb = KeyBindings()

        def _bind(key: str) -> None:
            @kb.add(key, eager=True)
            def _handle(event) -> None:
                outcome = menu.handle_key(key)
                if outcome is not None:
                    event.app.exit(result=outcome)

        for key in MENU_KEYS:
            _bind(key)

        app = self._application(self._menu_container(menu), kb)
        try:
            outcome = self._run(app)
        finally:
            if overlay and previous is not None:
                self._view = previous
            self.frame = self._view.lines()
        return outcome

    def show_popup(self, title: str, text: str) -> None:
        """Draw a boxed message over the current menu and block for one keypress."""
        self._require_surface()
        size = self._out().get_size()
        width, height = popup_geometry(size.columns, size.rows, len(text.splitlines()))
        lines = popup_body(text, width, height)
        budget = max(0, width - 4)
        body = HSplit(
            [
                Window(FormattedTextControl("\n".join(lines)), wrap_lines=False),
                Window(height=1),
                Window(FormattedTextControl(CONTINUE_PROMPT[:budget]), height=1, style="class:hint"),
            ],
            padding=0,
        )
        popup = Frame(body, title=title[:budget], width=width, height=height, style="class:popup")
        container = FloatContainer(content=self._background(), floats=[Float(content=popup)])
        kb = KeyBindings()

        @kb.add(Keys.Any, eager=True)
        def _close(event) -> None:
            event.app.exit()

        self._run(self._application(container, kb))

    def run_busy(self, title: str, message: str, action: Callable[[Spinner], T]) -> T:
        """Run ``action`` off the UI loop while a spinner popup is shown."""
        self._require_surface()
        spinner = Spinner()
        result: dict[str, T] = {}
        errors: dict[str, BaseException] = {}
        text = message.strip() or "Working..."
        size = self._out().get_size()
        width, height = popup_geometry(size.columns, size.rows, 1)
        budget = max(0, width - 4)
        body = Window(
            FormattedTextControl(lambda: [("class:spinner", spinner.frame), ("", f" {text}"[: max(0, budget - 1)])]),
            wrap_lines=False,
        )
        popup = Frame(body, title=title[:budget], width=width, height=min(height, 5), style="class:popup")
        container = FloatContainer(content=self._background(), floats=[Float(content=popup)])
        kb = KeyBindings()

        @kb.add(Keys.Any)
        def _ignore(event) -> None:
            return

        app = self._application(container, kb)
        spinner.app = app

        async def _run_action() -> None:
            loop = asyncio.get_running_loop()
            try:
                result["value"] = await loop.run_in_executor(None, action, spinner)
            except BaseException as exc:
                errors["error"] = exc
            finally:
                if app.future is not None and not app.future.done():
                    app.exit()

        try:
            self._run(app, pre_run=lambda: app.create_background_task(_run_action()))
        finally:
            spinner.app = None
        if "error" in errors:
            raise errors["error"]
        return result["value"]


def _item_fragments(menu: Menu) -> StyleAndTextTuples:
    fragments: StyleAndTextTuples = []
    for index, label in enumerate(menu.items):
        if index == menu.highlight:
            fragments.append(("class:menu-item.selected", f" > {label} "))
        else:
            fragments.append(("class:menu-item", f"   {label} "))
        fragments.append(("", "\n"))
    if fragments:
        fragments.pop()
    return fragments


def _frame_fragments(menu: Menu) -> StyleAndTextTuples:
    fragments: StyleAndTextTuples = [("class:banner", f"{line}\n") for line in menu.banner]
    if menu.title:
        fragments.append(("class:frame.label", f"{menu.title}\n"))
    fragments.extend(_item_fragments(menu))
    fragments.append(("", "\n"))
    fragments.append(("class:hint", menu.hint))
    return fragments
