from __future__ import annotations

import enum
import logging
import os
import signal
import subprocess
import sys
import time
from contextlib import contextmanager
from dataclasses import dataclass, field
from itertools import islice
from typing import Callable, Iterator, Sequence

from netman import sanitize
from netman.screen import QuickExit, Screen

logger = logging.getLogger(__name__)

INTERACTIVE_BANNER = "--- Executing command, please follow prompts in terminal ---"
INTERACTIVE_DONE = "--- Command finished, press ENTER to return to the TUI ---"


class RunMode(enum.Enum):
    QUIET = "fire-and-forget"
    CAPTURE = "capture"
    ANIMATED = "animated-wait"
    INTERACTIVE = "interactive"


class ProcessStatus(enum.Enum):
    SUCCESS = "success"
    FAILURE = "failure"
    SIGNALED = "signaled"
    TIMED_OUT = "timed-out"
    LAUNCH_FAILED = "launch-failed"


@dataclass
class ProcessResult:
    status: ProcessStatus
    returncode: int
    lines: list[str] = field(default_factory=list)
    error: str = ""

    @property
    def ok(self) -> bool:
        return self.status is ProcessStatus.SUCCESS

    @property
    def text(self) -> str:
        return "\n".join(self.lines)

    @classmethod
    def from_returncode(cls, returncode: int, lines: list[str] | None = None) -> "ProcessResult":
        if returncode == 0:
            status = ProcessStatus.SUCCESS
        elif returncode < 0:
            status = ProcessStatus.SIGNALED
        else:
            status = ProcessStatus.FAILURE
        return cls(status=status, returncode=returncode, lines=list(lines or []))


class LaunchError(Exception):
    def __init__(self, command: Sequence[str], returncode: int, message: str) -> None:
        super().__init__(message)
        self.command = list(command)
        self.returncode = returncode

    def result(self) -> ProcessResult:
        return ProcessResult(
            status=ProcessStatus.LAUNCH_FAILED,
            returncode=self.returncode,
            error=str(self),
        )


class Process:
    """A spawned collaborator running in its own process group."""

    def __init__(self, popen: subprocess.Popen) -> None:
        self._popen = popen

    @classmethod
    def spawn(cls, command: Sequence[str], *, capture: bool = False) -> "Process":
        try:
            popen = subprocess.Popen(
                list(command),
                stdin=subprocess.DEVNULL,
                stdout=subprocess.PIPE if capture else subprocess.DEVNULL,
                stderr=subprocess.DEVNULL,
                text=capture,
                errors="replace" if capture else None,
                start_new_session=True,
            )
        except FileNotFoundError:
            raise LaunchError(command, 127, f"command not found: {command[0]}") from None
        except PermissionError:
            raise LaunchError(command, 126, f"permission denied: {command[0]}") from None
        except OSError as exc:
            raise LaunchError(command, 126, f"cannot run {command[0]}: {exc.strerror or exc}") from None
        return cls(popen)

    @property
    def pid(self) -> int:
        return self._popen.pid

    def poll(self) -> int | None:
        return self._popen.poll()

    def wait(self, timeout: float | None = None) -> int | None:
        try:
            return self._popen.wait(timeout=timeout)
        except subprocess.TimeoutExpired:
            return None

    def read_lines(self, limit: int) -> list[str]:
        """Read at most ``limit`` sanitized, non-noise stdout lines."""
        stream = self._popen.stdout
        if stream is None:
            return []
        try:
            return list(islice(sanitize.filter_lines(stream), limit))
        finally:
            # Closing early makes a chatty child hit EPIPE instead of blocking on a full pipe.
            stream.close()

    def kill(self, grace: float = 1.0) -> int:
        """Stop the whole process group; SIGKILL straight away when ``grace`` is zero."""
        if grace > 0:
            self._signal_group(signal.SIGTERM)
            code = self.wait(timeout=grace)
            if code is not None:
                return code
        self._signal_group(signal.SIGKILL)
        return self._popen.wait()

    def _signal_group(self, signum: int) -> None:
        try:
            os.killpg(self._popen.pid, signum)
        except ProcessLookupError:
            return
        except PermissionError:
            self._popen.send_signal(signum)


def _wait_for_enter() -> None:
    try:
        input()
    except EOFError:
        return
    except KeyboardInterrupt:
        raise QuickExit() from None


def _describe(command: Sequence[str]) -> str:
    return " ".join(command)


class ProcessRunner:
    def __init__(
        self,
        screen: Screen | None = None,
        *,
        capture_limit: int = 50,
        poll_interval: float = 0.1,
        kill_grace: float = 1.0,
        pause: Callable[[], None] = _wait_for_enter,
    ) -> None:
        self.screen = screen
        self.capture_limit = capture_limit
        self.poll_interval = poll_interval
        self.kill_grace = kill_grace
        self._pause = pause

    @contextmanager
    def _quit_on_interrupt(self, process: Process | None = None) -> Iterator[None]:
        """Turn Ctrl-C on the cooked terminal into ``QuickExit``, stopping ``process`` first."""
        try:
            yield
        except KeyboardInterrupt:
            if process is not None:
                logger.info("interrupted, stopping pid %d", process.pid)
                process.kill(self.kill_grace)
            raise QuickExit() from None

    def run(
        self,
        command: Sequence[str],
        mode: RunMode = RunMode.QUIET,
        timeout: float | None = None,
        *,
        title: str = "Working...",
        message: str = "",
        label: str | None = None,
    ) -> ProcessResult:
        logger.info("run [%s] %s", mode.value, label or _describe(command))
        if mode is RunMode.QUIET:
            result = self.quiet(command)
        elif mode is RunMode.CAPTURE:
            result = self.capture(command)
        elif mode is RunMode.ANIMATED:
            if timeout is None:
                raise ValueError("animated-wait needs a timeout")
            result = self.animated(command, timeout, title=title, message=message)
        else:
            result = self.interactive(command)
        if result.status is ProcessStatus.LAUNCH_FAILED:
            logger.warning("launch failed: %s", result.error)
        elif not result.ok:
            logger.info("%s exited with %s (%d)", command[0], result.status.value, result.returncode)
        return result

    def quiet(self, command: Sequence[str]) -> ProcessResult:
        try:
            process = Process.spawn(command)
        except LaunchError as exc:
            return exc.result()
        with self._quit_on_interrupt(process):
            return ProcessResult.from_returncode(process.wait())

    def capture(self, command: Sequence[str], limit: int | None = None) -> ProcessResult:
        limit = self.capture_limit if limit is None else limit
        try:
            process = Process.spawn(command, capture=True)
        except LaunchError as exc:
            return exc.result()
        with self._quit_on_interrupt(process):
            lines = process.read_lines(limit)
            return ProcessResult.from_returncode(process.wait(), lines)

    def animated(
        self,
        command: Sequence[str],
        timeout: float,
        *,
        title: str = "Working...",
        message: str = "",
    ) -> ProcessResult:
        try:
            process = Process.spawn(command)
        except LaunchError as exc:
            return exc.result()
        if self.screen is None:
            with self._quit_on_interrupt(process):
                return self.wait_with_timeout(process, timeout)
        try:
            return self.screen.run_busy(
                title,
                message,
                lambda spinner: self.wait_with_timeout(process, timeout, on_tick=spinner.advance),
            )
        except BaseException:
            process.kill(self.kill_grace)
            raise

    def wait_with_timeout(
        self,
        process: Process,
        timeout: float,
        on_tick: Callable[[], None] | None = None,
    ) -> ProcessResult:
        """Poll ``process`` until it exits or ``timeout`` passes.

        On timeout the process group is killed outright, so the call returns
        within ``timeout`` plus one poll interval even for a child that
        ignores SIGTERM.
        """
        deadline = time.monotonic() + timeout
        while True:
            code = process.poll()
            if code is not None:
                return ProcessResult.from_returncode(code)
            remaining = deadline - time.monotonic()
            if remaining <= 0:
                break
            if on_tick is not None:
                on_tick()
            time.sleep(min(self.poll_interval, remaining))
        logger.warning("pid %d still running after %.1fs, killing", process.pid, timeout)
        code = process.kill(grace=0)
        return ProcessResult(
            status=ProcessStatus.TIMED_OUT,
            returncode=code,
            error=f"timed out after {timeout:g}s",
        )

    def interactive(self, command: Sequence[str]) -> ProcessResult:
        if self.screen is None:
            return self._interactive(command)
        with self.screen.suspended():
            return self._interactive(command)

    def _interactive(self, command: Sequence[str]) -> ProcessResult:
        sys.stdout.write(f"\n{INTERACTIVE_BANNER}\n")
        sys.stdout.flush()
        # The child shares the foreground process group, so it sees Ctrl-C too.
        with self._quit_on_interrupt():
            try:
                completed = subprocess.run(list(command), check=False)
            except FileNotFoundError:
                result = ProcessResult(ProcessStatus.LAUNCH_FAILED, 127, error=f"command not found: {command[0]}")
            except PermissionError:
                result = ProcessResult(ProcessStatus.LAUNCH_FAILED, 126, error=f"permission denied: {command[0]}")
            except OSError as exc:
                result = ProcessResult(
                    ProcessStatus.LAUNCH_FAILED,
                    126,
                    error=f"cannot run {command[0]}: {exc.strerror or exc}",
                )
            else:
                result = ProcessResult.from_returncode(completed.returncode)
            sys.stdout.write(f"{INTERACTIVE_DONE}\n")
            sys.stdout.flush()
            self._pause()
        return result
