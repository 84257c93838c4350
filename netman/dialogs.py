from __future__ import annotations

import logging
from typing import Callable, Sequence

from InquirerPy import get_style, inquirer

from netman.menu import ListSelection
from netman.screen import QuickExit, Screen

logger = logging.getLogger(__name__)

NO_ITEMS = "No items found."

PROMPT_STYLE = get_style(
    {
        "questionmark": "#22d3ee",
        "answermark": "#22d3ee",
        "question": "bold #e5e7eb",
        "answer": "#86efac",
        "input": "#86efac",
        "instruction": "#9ca3af",
        "long_instruction": "#9ca3af",
    },
    style_override=False,
)

Prompt = Callable[[str, bool], "str | None"]


def inquirer_prompt(message: str, masked: bool) -> str | None:
    """Ask for one line of text on the bare terminal; ``None`` when skipped with Esc."""
    factory = inquirer.secret if masked else inquirer.text
    try:
        value = factory(
            message=message,
            style=PROMPT_STYLE,
            mandatory=False,
            long_instruction="Enter: submit | Esc: cancel",
            keybindings={"skip": [{"key": "escape"}]},
            raise_keyboard_interrupt=True,
        ).execute()
    except KeyboardInterrupt:
        raise QuickExit()
    except EOFError:
        return None
    if value is None:
        return None
    return str(value)


class DialogService:
    def __init__(self, screen: Screen, prompt: Prompt = inquirer_prompt) -> None:
        self.screen = screen
        self._prompt = prompt

    def select_from_list(self, title: str, items: Sequence[str]) -> int | None:
        selection = ListSelection(title, list(items))
        if selection.is_empty:
            self.acknowledge(title, NO_ITEMS)
            return None
        outcome = self.screen.run_menu(selection.to_menu(), overlay=True)
        return outcome.index

    def prompt_text(self, title: str, label: str, masked: bool = False) -> str | None:
        message = f"{title}\n{label}" if label else title
        with self.screen.suspended():
            value = self._prompt(message, masked)
        if value is None:
            logger.debug("prompt %r cancelled", title)
            return None
        return value if masked else value.strip()

    def acknowledge(self, title: str, message: str) -> None:
        self.screen.show_popup(title, message)
