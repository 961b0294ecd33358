"""Installed application discovery."""

from __future__ import annotations

import asyncio
import configparser
import logging
import os
import platform
import plistlib
import subprocess
from pathlib import Path
from typing import Iterable, Iterator, Optional, Protocol, TypedDict

from typing_extensions import NotRequired, ReadOnly

_logger = logging.getLogger(__name__)


class Application(TypedDict):
    """Readonly application record."""
    name: ReadOnly[str]
    path: ReadOnly[str]
    bundleId: NotRequired[ReadOnly[Optional[str]]]


class ApplicationProvider(Protocol):
    async def __call__(self) -> list[Application]: ...


def app_key(app: Application) -> str:
    """Identity used for tagging: the bundle id when present, else the path."""
    return app.get("bundleId") or app["path"]


def sort_applications(apps: Iterable[Application]) -> list[Application]:
    """Deduplicate by path and sort by name (case-insensitive, stable)."""
    by_path: dict[str, Application] = {}
    for app in apps:
        by_path.setdefault(app["path"], app)
    return sorted(by_path.values(), key=lambda app: app["name"].casefold())


# --- macOS --- #
def _mac_app_dirs() -> list[Path]:
    return [
        Path("/Applications"),
        Path("/Applications/Utilities"),
        Path("/System/Applications"),
        Path("/System/Applications/Utilities"),
        Path.home() / "Applications",
    ]


def _read_bundle(bundle: Path) -> Application:
    name = bundle.stem
    bundle_id: Optional[str] = None
    info = bundle / "Contents" / "Info.plist"
    try:
        with info.open("rb") as handle:
            plist = plistlib.load(handle)
    except (OSError, plistlib.InvalidFileException, ValueError) as exc:
        _logger.debug("No readable Info.plist for %s: %s", bundle, exc)
    else:
        bundle_id = plist.get("CFBundleIdentifier") or None
        display = plist.get("CFBundleDisplayName") or plist.get("CFBundleName")
        if isinstance(display, str) and display.strip():
            name = display.strip()
    return Application(name=name, path=str(bundle), bundleId=bundle_id)


def _scan_mac(dirs: Iterable[Path]) -> Iterator[Application]:
    for directory in dirs:
        if not directory.is_dir():
            continue
        for entry in sorted(directory.iterdir()):
            if entry.suffix == ".app":
                yield _read_bundle(entry)
            elif entry.is_dir() and not entry.name.startswith("."):
                # One nested level, e.g. /Applications/Microsoft Office/*.app
                for nested in sorted(entry.glob("*.app")):
                    yield _read_bundle(nested)


# --- Linux --- #
def _xdg_app_dirs() -> list[Path]:
    data_home = os.environ.get("XDG_DATA_HOME") or str(Path.home() / ".local" / "share")
    data_dirs = os.environ.get("XDG_DATA_DIRS") or "/usr/local/share:/usr/share"
    roots = [data_home, *data_dirs.split(":")]
    return [Path(root) / "applications" for root in roots if root]


def _read_desktop_entry(path: Path) -> Application | None:
    parser = configparser.ConfigParser(interpolation=None, strict=False)
    try:
        parser.read(path, encoding="utf-8")
    except (configparser.Error, OSError, UnicodeDecodeError) as exc:
        _logger.debug("Skipping unreadable desktop entry %s: %s", path, exc)
        return None
    if not parser.has_section("Desktop Entry"):
        return None
    entry = parser["Desktop Entry"]
    if entry.get("Type", "Application") != "Application":
        return None
    if entry.get("NoDisplay", "false").lower() == "true" or entry.get("Hidden", "false").lower() == "true":
        return None
    name = entry.get("Name")
    if not name:
        return None
    return Application(name=name, path=str(path), bundleId=path.name)


def _scan_linux(dirs: Iterable[Path]) -> Iterator[Application]:
    seen_ids: set[str] = set()
    for directory in dirs:
        if not directory.is_dir():
            continue
        for path in sorted(directory.rglob("*.desktop")):
            # Earlier XDG dirs shadow later ones with the same desktop id.
            if path.name in seen_ids:
                continue
            seen_ids.add(path.name)
            app = _read_desktop_entry(path)
            if app is not None:
                yield app


# --- Windows --- #
def _windows_app_dirs() -> list[Path]:
    dirs = [Path(os.path.expandvars(r"%APPDATA%\Microsoft\Windows\Start Menu\Programs"))]
    program_data = os.environ.get("PROGRAMDATA", r"C:\ProgramData")
    dirs.append(Path(program_data) / "Microsoft" / "Windows" / "Start Menu" / "Programs")
    return dirs


def _scan_windows(dirs: Iterable[Path]) -> Iterator[Application]:
    for directory in dirs:
        if not directory.is_dir():
            continue
        for path in sorted(directory.rglob("*.lnk")):
            yield Application(name=path.stem, path=str(path), bundleId=None)


def scan_applications(system: Optional[str] = None, dirs: Optional[Iterable[Path]] = None) -> list[Application]:
    """Scan the platform's application directories.

    Parameters
    ----------
    system
        ``platform.system()`` value to scan for; defaults to the running OS.
    dirs
        Directories to scan instead of the platform defaults.

    Returns
    -------
    list[Application]
        Applications deduplicated by path and sorted by name. Unknown
        platforms yield an empty list.
    """
    system = system or platform.system()
    if system == "Darwin":
        found = _scan_mac(dirs if dirs is not None else _mac_app_dirs())
    elif system == "Linux":
        found = _scan_linux(dirs if dirs is not None else _xdg_app_dirs())
    elif system == "Windows":
        found = _scan_windows(dirs if dirs is not None else _windows_app_dirs())
    else:
        _logger.warning("Application discovery is not supported on %s", system)
        return []
    return sort_applications(found)


async def get_applications() -> list[Application]:
    """Scan installed applications without blocking the event loop."""
    return await asyncio.to_thread(scan_applications)


# --- Launching --- #
def launch_application(app: Application, system: Optional[str] = None) -> None:
    """Open ``app`` with the platform's launcher.

    macOS bundles go through ``open``, Windows shortcuts through
    ``os.startfile`` and Linux desktop entries through ``gtk-launch``, with
    ``xdg-open`` on the entry file when ``gtk-launch`` is not installed.

    Raises
    ------
    RuntimeError
        On platforms without a known launcher.
    OSError
        If the launcher could not be started.
    """
    system = system or platform.system()
    path = app["path"]
    if system == "Darwin":
        subprocess.Popen(["open", path])
    elif system == "Windows":
        os.startfile(path)  # type: ignore[attr-defined]
    elif system == "Linux":
        desktop_id = Path(path).stem
        try:
            subprocess.Popen(["gtk-launch", desktop_id])
        except FileNotFoundError:
            _logger.debug("gtk-launch not found, opening %s with xdg-open", path)
            subprocess.Popen(["xdg-open", path])
    else:
        raise RuntimeError(f"Opening applications is not supported on {system}")


async def open_application(app: Application) -> None:
    """Launch ``app`` without blocking the event loop."""
    await asyncio.to_thread(launch_application, app)


__all__ = [
    "Application",
    "ApplicationProvider",
    "app_key",
    "get_applications",
    "launch_application",
    "open_application",
    "scan_applications",
    "sort_applications",
]
