import unittest

from netman.bluetooth import BluetoothActions, device_address, device_label
from netman.core import Settings
from netman.dialogs import DialogService
from netman.runner import ProcessResult, ProcessStatus, RunMode
from netman.wifi import NOT_CONNECTED, WifiActions

from fakes import FakeRunner, FakeScreen, failed, ok

NETWORKS = ("iwctl", "station", "wlan0", "get-networks")


def _wifi(keys=(), results=None, answer=""):
    screen = FakeScreen(keys)
    runner = FakeRunner(results)
    prompts = []

    def _prompt(message, masked):
        prompts.append((message, masked))
        return answer

    actions = WifiActions(runner, DialogService(screen, prompt=_prompt), Settings())
    return actions, screen, runner, prompts


def _bluetooth(keys=(), results=None):
    screen = FakeScreen(keys)
    runner = FakeRunner(results)
    actions = BluetoothActions(runner, DialogService(screen), Settings())
    return actions, screen, runner


class TestWifiActions(unittest.TestCase):
    def test_connect_with_passphrase(self) -> None:
        actions, screen, runner, prompts = _wifi(
            ["j", "enter"],
            {NETWORKS: ok("  > Home Net     psk     ****", "    Cafe Wifi    psk     **")},
            answer="hunter2",
        )
        actions.connect()
        self.assertEqual(
            runner.calls[-1],
            (["iwctl", "--passphrase", "hunter2", "station", "wlan0", "connect", "Cafe Wifi"], RunMode.ANIMATED),
        )
        self.assertEqual(prompts, [("Password Required (leave blank for open networks)\nCafe Wifi", True)])
        self.assertEqual(screen.popups, [("Success", "Connected successfully.")])

    def test_connect_open_network(self) -> None:
        actions, screen, runner, _ = _wifi(["enter"], {NETWORKS: ok("Cafe    open    **")}, answer="")
        actions.connect()
        self.assertEqual(runner.commands[-1], ["iwctl", "station", "wlan0", "connect", "Cafe"])

    def test_cancelled_password_runs_nothing(self) -> None:
        actions, screen, runner, _ = _wifi(["enter"], {NETWORKS: ok("Cafe    open    **")}, answer=None)
        actions.connect()
        self.assertEqual(runner.commands, [list(NETWORKS)])
        self.assertEqual(screen.popups, [])

    def test_connect_failure(self) -> None:
        command = ("iwctl", "station", "wlan0", "connect", "Cafe")
        actions, screen, _, _ = _wifi(
            ["enter"],
            {NETWORKS: ok("Cafe    open    **"), command: failed(1, "Operation failed")},
        )
        actions.connect()
        self.assertEqual(screen.popups, [("Failure", "Failed to connect.\nOperation failed")])

    def test_status_without_output(self) -> None:
        actions, screen, _, _ = _wifi()
        actions.status()
        self.assertEqual(screen.popups, [("Wi-Fi Status", NOT_CONNECTED)])

    def test_status_output(self) -> None:
        show = ("iwctl", "station", "wlan0", "show")
        actions, screen, _, _ = _wifi(results={show: ok("State  connected", "Connected network  Home")})
        actions.status()
        self.assertEqual(screen.popups, [("Wi-Fi Status", "State  connected\nConnected network  Home")])

    def test_forget(self) -> None:
        known = ("iwctl", "known-networks", "list")
        actions, screen, runner, _ = _wifi(["enter"], {known: ok("  Home Net   psk   Jan 1, 10:00 AM")})
        actions.forget()
        self.assertEqual(runner.commands[-1], ["iwctl", "known-networks", "Home Net", "forget"])
        self.assertEqual(screen.popups, [("Success", "Network forgotten.")])

    def test_launch_failure_is_reported(self) -> None:
        missing = ProcessResult(ProcessStatus.LAUNCH_FAILED, 127, error="command not found: iwctl")
        actions, screen, _, _ = _wifi(results={("iwctl", "station", "wlan0", "disconnect"): missing})
        actions.disconnect()
        self.assertEqual(screen.popups, [("Error", "Failed to execute command.\ncommand not found: iwctl")])

    def test_scan_timeout_is_reported(self) -> None:
        timed_out = ProcessResult(ProcessStatus.TIMED_OUT, -15, error="timed out after 15s")
        actions, screen, runner, _ = _wifi(results={("iwctl", "station", "wlan0", "scan"): timed_out})
        actions.scan()
        self.assertEqual(runner.timeouts, [15.0])
        self.assertEqual(screen.popups[0][0], "Timed Out")

    def test_radio_unblock(self) -> None:
        listing = ("rfkill", "list", "wifi")
        actions, screen, runner, _ = _wifi(results={listing: ok("0: phy0: Wireless LAN", "Soft blocked: yes")})
        actions.toggle_radio()
        self.assertEqual(runner.commands[-1], ["rfkill", "unblock", "wifi"])
        self.assertEqual(screen.popups, [("Wi-Fi", "Radio unblocked.")])


class TestBluetoothActions(unittest.TestCase):
    def test_power_toggle(self) -> None:
        show = ("bluetoothctl", "show")
        actions, screen, runner = _bluetooth(results={show: ok("Controller 00:11", "Powered: yes")})
        actions.power()
        self.assertEqual(runner.commands[-1], ["bluetoothctl", "power", "off"])
        self.assertEqual(screen.popups, [("Bluetooth", "Powered OFF.")])

        actions, screen, runner = _bluetooth(results={show: ok("Controller 00:11", "Powered: no")})
        actions.power()
        self.assertEqual(runner.commands[-1], ["bluetoothctl", "power", "on"])
        self.assertEqual(screen.popups, [("Bluetooth", "Powered ON.")])

    def test_scan_uses_timeout(self) -> None:
        actions, screen, runner = _bluetooth()
        actions.scan()
        self.assertEqual(runner.calls, [(["bluetoothctl", "--timeout", "10", "scan", "on"], RunMode.ANIMATED)])
        self.assertEqual(runner.timeouts, [15.0])
        self.assertEqual(screen.popups, [("Scan Complete", "Device scan finished.")])

    def test_pair_runs_interactively(self) -> None:
        devices = ("bluetoothctl", "devices")
        actions, screen, runner = _bluetooth(
            ["enter", "enter"],
            {devices: ok("Device AA:BB:CC:DD:EE:FF Headset")},
        )
        actions.pair_or_connect()
        self.assertEqual(runner.calls[-1], (["bluetoothctl", "pair", "AA:BB:CC:DD:EE:FF"], RunMode.INTERACTIVE))
        self.assertEqual(screen.popups, [("Info", "Action attempted. Check device status.")])

    def test_disconnect_connected_device(self) -> None:
        connected = ("bluetoothctl", "devices", "Connected")
        actions, screen, runner = _bluetooth(["enter"], {connected: ok("Device 11:22:33:44:55:66 Mouse")})
        actions.disconnect()
        self.assertEqual(runner.commands[-1], ["bluetoothctl", "disconnect", "11:22:33:44:55:66"])
        self.assertEqual(screen.popups, [("Bluetooth", "Disconnect command sent.")])

    def test_device_line_helpers(self) -> None:
        self.assertEqual(device_label("Device AA:BB:CC:DD:EE:FF My Phone"), "AA:BB:CC:DD:EE:FF My Phone")
        self.assertEqual(device_address("Device AA:BB:CC:DD:EE:FF My Phone"), "AA:BB:CC:DD:EE:FF")
        self.assertEqual(device_address("   "), "")


if __name__ == "__main__":
    unittest.main()
