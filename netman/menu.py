from __future__ import annotations

from dataclasses import dataclass, field
from typing import Sequence

MENU_HINT = "j/k/Arrows: Navigate | Enter: Select | q/ESC: Back"

NEXT_KEYS = frozenset({"j", "down"})
PREVIOUS_KEYS = frozenset({"k", "up"})
ACTIVATE_KEYS = frozenset({"enter"})
BACK_KEYS = frozenset({"q", "escape"})
DIGIT_KEYS = tuple("123456789")
MENU_KEYS = (*NEXT_KEYS, *PREVIOUS_KEYS, *ACTIVATE_KEYS, *BACK_KEYS, *DIGIT_KEYS)


@dataclass(frozen=True)
class MenuOutcome:
    """What the operator did to leave a menu: activate an item or go back."""

    index: int | None

    @property
    def is_back(self) -> bool:
        return self.index is None


BACK = MenuOutcome(None)


class Menu:
    def __init__(
        self,
        title: str,
        items: Sequence[str],
        *,
        hint: str = MENU_HINT,
        banner: Sequence[str] = (),
    ) -> None:
        if not items:
            raise ValueError("a menu needs at least one item")
        self.title = title
        self.items = list(items)
        self.hint = hint
        self.banner = tuple(banner)
        self.highlight = 0

    def __len__(self) -> int:
        return len(self.items)

    def move(self, delta: int) -> None:
        self.highlight = max(0, min(len(self.items) - 1, self.highlight + delta))

    def handle_key(self, key: str) -> MenuOutcome | None:
        if key in NEXT_KEYS:
            self.move(1)
        elif key in PREVIOUS_KEYS:
            self.move(-1)
        elif key in ACTIVATE_KEYS:
            return MenuOutcome(self.highlight)
        elif key in BACK_KEYS:
            return BACK
        elif key in DIGIT_KEYS:
            number = int(key)
            if number <= len(self.items):
                self.highlight = number - 1
                return MenuOutcome(self.highlight)
        return None

    def lines(self) -> list[str]:
        rows = list(self.banner)
        if self.title:
            rows.append(self.title)
        for index, label in enumerate(self.items):
            marker = ">" if index == self.highlight else " "
            rows.append(f" {marker} {label} ")
        rows.append(self.hint)
        return rows


@dataclass
class ListSelection:
    """Free-text items from a finished process run, shown for picking one."""

    title: str
    items: list[str] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not self.items

    def to_menu(self) -> Menu:
        return Menu(self.title, self.items)
