from __future__ import annotations

from typing import Callable, Sequence

from netman.core import Settings
from netman.dialogs import DialogService
from netman.runner import ProcessResult, ProcessRunner, ProcessStatus, RunMode

Handler = Callable[[], None]


class Actions:
    """Shared plumbing for the per-menu handlers.

    ``radio`` is the rfkill device class this menu controls.
    """

    title = ""
    radio = ""

    def __init__(self, runner: ProcessRunner, dialogs: DialogService, settings: Settings) -> None:
        self.runner = runner
        self.dialogs = dialogs
        self.settings = settings

    def items(self) -> list[tuple[str, Handler]]:
        raise NotImplementedError

    def _report(
        self,
        result: ProcessResult,
        success: str,
        failure: str,
        *,
        success_title: str | None = None,
        failure_title: str = "Failure",
    ) -> bool:
        if result.status is ProcessStatus.LAUNCH_FAILED:
            self.dialogs.acknowledge("Error", f"Failed to execute command.\n{result.error}")
            return False
        if result.status is ProcessStatus.TIMED_OUT:
            self.dialogs.acknowledge("Timed Out", f"{failure}\nThe command {result.error}.")
            return False
        if result.ok:
            self.dialogs.acknowledge(success_title or self.title, success)
            return True
        detail = result.text
        self.dialogs.acknowledge(failure_title, f"{failure}\n{detail}" if detail else failure)
        return False

    def _choose(
        self,
        command: Sequence[str],
        title: str,
        label: Callable[[str], str] = str.strip,
    ) -> str | None:
        """Run ``command``, list its output lines and return the picked line."""
        result = self.runner.run(command, RunMode.CAPTURE)
        if result.status is ProcessStatus.LAUNCH_FAILED:
            self.dialogs.acknowledge("Error", f"Failed to execute command.\n{result.error}")
            return None
        index = self.dialogs.select_from_list(title, [label(line) for line in result.lines])
        if index is None:
            return None
        return result.lines[index]

    def toggle_radio(self) -> None:
        rfkill = self.settings.tools.rfkill
        state = self.runner.run([rfkill, "list", self.radio], RunMode.CAPTURE)
        if state.status is ProcessStatus.LAUNCH_FAILED:
            self.dialogs.acknowledge("Error", f"Failed to execute command.\n{state.error}")
            return
        blocked = any("Soft blocked: yes" in line for line in state.lines)
        verb = "unblock" if blocked else "block"
        result = self.runner.run([rfkill, verb, self.radio], RunMode.QUIET)
        self._report(
            result,
            f"Radio {verb}ed.",
            f"Could not {verb} the radio.",
        )
