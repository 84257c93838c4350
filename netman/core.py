from __future__ import annotations

from dataclasses import dataclass, field
import os
from pathlib import Path
try:
    import tomllib
except ModuleNotFoundError:  # Python < 3.11
    import tomli as tomllib
from typing import Any, Dict


DEFAULT_CONFIG_PATH = Path("/etc/netman.toml")
DEFAULT_WIFI_INTERFACE = "wlan0"
SYS_NET_PATH = Path("/sys/class/net")


class ConfigError(ValueError):
    """Raised when the settings file exists but cannot be used."""


@dataclass
class ToolPaths:
    iwctl: str = "iwctl"
    bluetoothctl: str = "bluetoothctl"
    rfkill: str = "rfkill"

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ToolPaths":
        defaults = cls()
        return cls(
            iwctl=str(data.get("iwctl") or defaults.iwctl),
            bluetoothctl=str(data.get("bluetoothctl") or defaults.bluetoothctl),
            rfkill=str(data.get("rfkill") or defaults.rfkill),
        )


@dataclass
class WifiSettings:
    interface: str = DEFAULT_WIFI_INTERFACE
    scan_timeout: float = 15.0
    connect_timeout: float = 30.0

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "WifiSettings":
        return cls(
            interface=str(data.get("interface", DEFAULT_WIFI_INTERFACE)),
            scan_timeout=float(data.get("scan_timeout", 15.0)),
            connect_timeout=float(data.get("connect_timeout", 30.0)),
        )


@dataclass
class BluetoothSettings:
    scan_seconds: int = 10

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "BluetoothSettings":
        return cls(scan_seconds=int(data.get("scan_seconds", 10)))


@dataclass
class RunnerSettings:
    capture_limit: int = 50
    poll_interval: float = 0.1
    kill_grace: float = 1.0

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "RunnerSettings":
        return cls(
            capture_limit=int(data.get("capture_limit", 50)),
            poll_interval=float(data.get("poll_interval", 0.1)),
            kill_grace=float(data.get("kill_grace", 1.0)),
        )


@dataclass
class Settings:
    tools: ToolPaths = field(default_factory=ToolPaths)
    wifi: WifiSettings = field(default_factory=WifiSettings)
    bluetooth: BluetoothSettings = field(default_factory=BluetoothSettings)
    runner: RunnerSettings = field(default_factory=RunnerSettings)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Settings":
        try:
            settings = cls(
                tools=ToolPaths.from_dict(data.get("tools", {})),
                wifi=WifiSettings.from_dict(data.get("wifi", {})),
                bluetooth=BluetoothSettings.from_dict(data.get("bluetooth", {})),
                runner=RunnerSettings.from_dict(data.get("runner", {})),
            )
        except (TypeError, ValueError, AttributeError) as exc:
            raise ConfigError(f"invalid setting: {exc}") from exc
        if settings.runner.capture_limit < 1:
            raise ConfigError("runner.capture_limit must be at least 1")
        if settings.runner.poll_interval <= 0:
            raise ConfigError("runner.poll_interval must be positive")
        if settings.bluetooth.scan_seconds < 1:
            raise ConfigError("bluetooth.scan_seconds must be at least 1")
        return settings


def config_path() -> Path:
    return Path(os.getenv("NETMAN_CONFIG_PATH") or DEFAULT_CONFIG_PATH)


def load_settings(path: Path | None = None) -> Settings:
    path = Path(path) if path is not None else config_path()
    if not path.exists():
        return Settings()
    try:
        with path.open("rb") as handle:
            payload = tomllib.load(handle)
    except tomllib.TOMLDecodeError as exc:
        raise ConfigError(f"{path}: {exc}") from exc
    return Settings.from_dict(payload)


def list_wifi_interfaces(base: Path = SYS_NET_PATH) -> list[str]:
    try:
        names = sorted(entry.name for entry in base.iterdir())
    except FileNotFoundError:
        return []
    return [name for name in names if name != "lo" and (base / name / "wireless").exists()]


def resolve_wifi_interface(settings: Settings, base: Path = SYS_NET_PATH) -> str:
    if settings.wifi.interface:
        return settings.wifi.interface
    interfaces = list_wifi_interfaces(base)
    if interfaces and DEFAULT_WIFI_INTERFACE not in interfaces:
        return interfaces[0]
    return DEFAULT_WIFI_INTERFACE
