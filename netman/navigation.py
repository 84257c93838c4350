from __future__ import annotations

import enum
import logging
from dataclasses import dataclass
from typing import Callable, Union

from netman.actions import Actions
from netman.bluetooth import BluetoothActions
from netman.core import Settings
from netman.dialogs import DialogService
from netman.menu import Menu
from netman.runner import ProcessRunner
from netman.screen import Screen
from netman.wifi import WifiActions

logger = logging.getLogger(__name__)

LOGO = (
    "  _   _      _   _             ",
    " | \\ | |    | | | |            ",
    " |  \\| | ___| |_| | __ _ _ __  ",
    " | . ` |/ _ \\ __| |/ _` | '_ \\ ",
    " | |\\  |  __/ |_| | (_| | | | |",
    " |_| \\_|\\___|\\__|_|\\__,_|_| |_|",
    "",
    "A Vim-Style Network Manager",
)
HELP_TEXT = "Navigate with j/k or arrows. Enter to select. q/ESC to go back. Run with sudo!"


class NavState(enum.Enum):
    MAIN = "main"
    WIFI = "wifi"
    BLUETOOTH = "bluetooth"
    BUSY = "busy"


class _Pop:
    def __repr__(self) -> str:
        return "POP"


POP = _Pop()

# A handler either stays (None), pops its level (POP) or opens a submenu.
Transition = Union[None, _Pop, "MenuLevel"]


@dataclass
class MenuLevel:
    state: NavState
    menu: Menu
    handlers: list[Callable[[], Transition]]


class NavigationStack:
    """Active menu levels; the root is never popped."""

    def __init__(self, root: MenuLevel) -> None:
        self._levels = [root]

    def __len__(self) -> int:
        return len(self._levels)

    @property
    def top(self) -> MenuLevel:
        return self._levels[-1]

    @property
    def at_root(self) -> bool:
        return len(self._levels) == 1

    def push(self, level: MenuLevel) -> None:
        self._levels.append(level)

    def pop(self) -> MenuLevel:
        if self.at_root:
            raise IndexError("cannot pop the root menu")
        return self._levels.pop()


def _stay(action: Callable[[], None]) -> Callable[[], Transition]:
    def _run() -> Transition:
        action()
        return None

    return _run


class NavigationController:
    def __init__(
        self,
        screen: Screen,
        dialogs: DialogService,
        runner: ProcessRunner,
        settings: Settings,
    ) -> None:
        self.screen = screen
        self.dialogs = dialogs
        self.wifi = WifiActions(runner, dialogs, settings)
        self.bluetooth = BluetoothActions(runner, dialogs, settings)
        self.stack = NavigationStack(self._main_level())
        self._busy = False

    @property
    def state(self) -> NavState:
        if self._busy:
            return NavState.BUSY
        return self.stack.top.state

    def _main_level(self) -> MenuLevel:
        menu = Menu("", ["Wi-Fi Manager", "Bluetooth Manager", "Help", "Exit"], banner=LOGO)
        return MenuLevel(
            NavState.MAIN,
            menu,
            [
                lambda: self._feature_level(NavState.WIFI, "Wi-Fi Manager", self.wifi),
                lambda: self._feature_level(NavState.BLUETOOTH, "Bluetooth Manager", self.bluetooth),
                _stay(lambda: self.dialogs.acknowledge("Help", HELP_TEXT)),
                lambda: POP,
            ],
        )

    def _feature_level(self, state: NavState, title: str, actions: Actions) -> MenuLevel:
        entries = actions.items()
        labels = [label for label, _ in entries] + ["Back"]
        handlers = [_stay(handler) for _, handler in entries]
        handlers.append(lambda: POP)
        return MenuLevel(state, Menu(title, labels), handlers)

    def step(self) -> bool:
        """Serve one input on the current level; ``False`` once the program should exit."""
        level = self.stack.top
        outcome = self.screen.run_menu(level.menu)
        if outcome.is_back:
            return self._pop()
        self._busy = True
        try:
            transition = level.handlers[outcome.index]()
        finally:
            self._busy = False
        if transition is POP:
            return self._pop()
        if isinstance(transition, MenuLevel):
            logger.info("enter %s menu", transition.state.value)
            self.stack.push(transition)
        return True

    def _pop(self) -> bool:
        if self.stack.at_root:
            logger.info("quit from main menu")
            return False
        level = self.stack.pop()
        logger.info("leave %s menu", level.state.value)
        return True

    def run(self) -> int:
        while self.step():
            pass
        return 0
