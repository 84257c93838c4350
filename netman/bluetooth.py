from __future__ import annotations

from netman.actions import Actions, Handler
from netman.runner import ProcessStatus, RunMode

DEVICE_ACTIONS = ("Pair", "Connect", "Cancel")
SCAN_GRACE = 5.0


def device_label(line: str) -> str:
    text = line.strip()
    if text.startswith("Device "):
        text = text[len("Device "):]
    return text.strip()


def device_address(line: str) -> str:
    fields = device_label(line).split()
    return fields[0] if fields else ""


class BluetoothActions(Actions):
    title = "Bluetooth"
    radio = "bluetooth"

    def items(self) -> list[tuple[str, Handler]]:
        return [
            ("Power On/Off", self.power),
            ("Scan for Devices", self.scan),
            ("List/Pair/Connect", self.pair_or_connect),
            ("Disconnect", self.disconnect),
            ("Radio On/Off", self.toggle_radio),
        ]

    def _ctl(self, *args: str) -> list[str]:
        return [self.settings.tools.bluetoothctl, *args]

    def power(self) -> None:
        state = self.runner.run(self._ctl("show"), RunMode.CAPTURE)
        if state.status is ProcessStatus.LAUNCH_FAILED:
            self.dialogs.acknowledge("Error", f"Failed to execute command.\n{state.error}")
            return
        powered = any("Powered: yes" in line for line in state.lines)
        target = "off" if powered else "on"
        result = self.runner.run(self._ctl("power", target), RunMode.QUIET)
        self._report(result, f"Powered {target.upper()}.", f"Could not power {target}.")

    def scan(self) -> None:
        seconds = self.settings.bluetooth.scan_seconds
        result = self.runner.run(
            self._ctl("--timeout", str(seconds), "scan", "on"),
            RunMode.ANIMATED,
            timeout=seconds + SCAN_GRACE,
            title="Scanning...",
            message=f"Scanning for devices for {seconds}s...",
        )
        self._report(result, "Device scan finished.", "Device scan failed.", success_title="Scan Complete")

    def pair_or_connect(self) -> None:
        line = self._choose(self._ctl("devices"), "Available Bluetooth Devices", label=device_label)
        if line is None:
            return
        address = device_address(line)
        choice = self.dialogs.select_from_list("Action", DEVICE_ACTIONS)
        if choice is None or DEVICE_ACTIONS[choice] == "Cancel":
            return
        verb = DEVICE_ACTIONS[choice].lower()
        result = self.runner.run(self._ctl(verb, address), RunMode.INTERACTIVE)
        if result.status is ProcessStatus.LAUNCH_FAILED:
            self.dialogs.acknowledge("Error", f"Failed to execute command.\n{result.error}")
            return
        self.dialogs.acknowledge("Info", "Action attempted. Check device status.")

    def disconnect(self) -> None:
        line = self._choose(self._ctl("devices", "Connected"), "Disconnect a Device", label=device_label)
        if line is None:
            return
        result = self.runner.run(self._ctl("disconnect", device_address(line)), RunMode.QUIET)
        self._report(result, "Disconnect command sent.", "Disconnect failed.")
