from __future__ import annotations

from netman.actions import Actions, Handler
from netman.core import resolve_wifi_interface
from netman.runner import ProcessStatus, RunMode
from netman.sanitize import first_field

NOT_CONNECTED = "Not connected or device not found."


class WifiActions(Actions):
    title = "Wi-Fi"
    radio = "wifi"

    @property
    def interface(self) -> str:
        return resolve_wifi_interface(self.settings)

    def items(self) -> list[tuple[str, Handler]]:
        return [
            ("Scan for Networks", self.scan),
            ("List & Connect", self.connect),
            ("Show Status", self.status),
            ("Disconnect", self.disconnect),
            ("Forget a Network", self.forget),
            ("Radio On/Off", self.toggle_radio),
        ]

    def _station(self, *args: str) -> list[str]:
        return [self.settings.tools.iwctl, "station", self.interface, *args]

    def scan(self) -> None:
        result = self.runner.run(
            self._station("scan"),
            RunMode.ANIMATED,
            timeout=self.settings.wifi.scan_timeout,
            title="Scanning...",
            message="Scanning for Wi-Fi networks...",
        )
        self._report(
            result,
            "Network scan finished.",
            "Network scan failed.",
            success_title="Scan Complete",
        )

    def connect(self) -> None:
        line = self._choose(
            self._station("get-networks"),
            "Available Wi-Fi Networks (SSID | Security | Signal)",
        )
        if line is None:
            return
        ssid = first_field(line)
        password = self.dialogs.prompt_text(
            "Password Required (leave blank for open networks)",
            ssid,
            masked=True,
        )
        if password is None:
            return
        station = ["station", self.interface, "connect", ssid]
        command = [self.settings.tools.iwctl, *station]
        label = None
        if password:
            command = [self.settings.tools.iwctl, "--passphrase", password, *station]
            label = " ".join([self.settings.tools.iwctl, "--passphrase", "****", *station])
        result = self.runner.run(
            command,
            RunMode.ANIMATED,
            timeout=self.settings.wifi.connect_timeout,
            title="Connecting...",
            message=f"Connecting to {ssid}...",
            label=label,
        )
        self._report(result, "Connected successfully.", "Failed to connect.", success_title="Success")

    def status(self) -> None:
        result = self.runner.run(self._station("show"), RunMode.CAPTURE)
        if result.status is ProcessStatus.LAUNCH_FAILED:
            self.dialogs.acknowledge("Error", f"Failed to execute command.\n{result.error}")
            return
        self.dialogs.acknowledge("Wi-Fi Status", result.text or NOT_CONNECTED)

    def disconnect(self) -> None:
        result = self.runner.run(self._station("disconnect"), RunMode.QUIET)
        self._report(result, "Disconnected from network.", "Failed to disconnect.")

    def forget(self) -> None:
        line = self._choose(
            [self.settings.tools.iwctl, "known-networks", "list"],
            "Forget a Network",
        )
        if line is None:
            return
        name = first_field(line)
        result = self.runner.run(
            [self.settings.tools.iwctl, "known-networks", name, "forget"],
            RunMode.QUIET,
        )
        self._report(
            result,
            "Network forgotten.",
            "Could not forget network.",
            success_title="Success",
            failure_title="Error",
        )
