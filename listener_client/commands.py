"""Builders for the control commands the listener accepts.

Each builder returns a JSON-ready dict for ``ListenerController.send_command``.
``COMMAND_BUILDERS`` maps the host-facing action name to its builder so a
host can dispatch by name with ``build_command``.
"""

from __future__ import annotations

import math
from collections.abc import Callable, Iterable
from typing import Any

from .transport.protocol import build_subscribe, build_unsubscribe

MOUSE_BUTTONS: tuple[str, ...] = ("left", "right")


def parse_modifiers(modifiers: str | Iterable[str]) -> list[str]:
    """Normalize modifiers given as ``"ctrl, shift"`` or a sequence.

    Empty entries are dropped.
    """
    if isinstance(modifiers, str):
        items: Iterable[str] = modifiers.split(",")
    else:
        items = modifiers
    return [item.strip() for item in items if item and item.strip()]


def _require(value: str, field: str) -> str:
    if not isinstance(value, str) or not value:
        raise ValueError(f"{field} is required")
    return value


def key_press(key: str) -> dict[str, Any]:
    return {"type": "keyPress", "key": _require(key, "key")}


def key_down(key: str) -> dict[str, Any]:
    return {"type": "keyDown", "key": _require(key, "key")}


def key_up(key: str) -> dict[str, Any]:
    return {"type": "keyUp", "key": _require(key, "key")}


def key_combination(key: str, modifiers: str | Iterable[str]) -> dict[str, Any]:
    """Press ``key`` while holding ``modifiers``."""
    return {
        "type": "keyCombinationPress",
        "key": _require(key, "key"),
        "modifiers": parse_modifiers(modifiers),
    }


def osx_key_press_process(
    key: str, modifiers: str | Iterable[str], process_name: str
) -> dict[str, Any]:
    """Send a key combination to a named macOS process."""
    return {
        "type": "osxKeyPressProcess",
        "key": _require(key, "key"),
        "modifiers": parse_modifiers(modifiers),
        "processName": _require(process_name, "process_name"),
    }


def osx_applescript(script: str) -> dict[str, Any]:
    return {"type": "osxAppleScript", "msg": _require(script, "script")}


def key_string(text: str) -> dict[str, Any]:
    """Type a string of characters."""
    return {"type": "keyString", "msg": _require(text, "text")}


def shell_run(command: str) -> dict[str, Any]:
    return {"type": "shellRun", "shell": _require(command, "command")}


def file_open(path: str) -> dict[str, Any]:
    return {"type": "fileOpen", "path": _require(path, "path")}


def _coordinate(value: float, field: str) -> str:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ValueError(f"{field} must be a number")
    if not math.isfinite(value):
        raise ValueError(f"{field} must be finite, got {value}")
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def mouse_position_set(x: float, y: float) -> dict[str, Any]:
    """Move the pointer. Coordinates travel as decimal strings."""
    return {
        "type": "mousePositionSet",
        "x": _coordinate(x, "x"),
        "y": _coordinate(y, "y"),
    }


def mouse_position_get() -> dict[str, Any]:
    return {"type": "mousePositionGet"}


def _flag(value: bool | str, field: str) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if value in ("true", "false"):
        return value
    raise ValueError(f"{field} must be a bool or 'true'/'false', got {value!r}")


def mouse_click(button: str = "left", double: bool | str = False) -> dict[str, Any]:
    """Click a mouse button; ``double`` travels as ``"true"``/``"false"``."""
    if button not in MOUSE_BUTTONS:
        raise ValueError(f"button must be one of {MOUSE_BUTTONS}, got {button!r}")
    return {
        "type": "mouseClick",
        "button": button,
        "double": _flag(double, "double"),
    }


def subscribe(name: str) -> dict[str, Any]:
    """Subscribe to a topic such as ``mousePosition`` or ``sysInfo``."""
    return build_subscribe(name=name)


def unsubscribe(name: str) -> dict[str, Any]:
    return build_unsubscribe(name=name)


COMMAND_BUILDERS: dict[str, Callable[..., dict[str, Any]]] = {
    "key_press": key_press,
    "key_down": key_down,
    "key_up": key_up,
    "key_combination": key_combination,
    "osx_key_press_process": osx_key_press_process,
    "osx_applescript": osx_applescript,
    "key_string": key_string,
    "shell_command": shell_run,
    "open_file": file_open,
    "set_mouse_position": mouse_position_set,
    "get_mouse_position": mouse_position_get,
    "mouse_click": mouse_click,
    "subscribe": subscribe,
    "unsubscribe": unsubscribe,
}


def build_command(name: str, /, **options: Any) -> dict[str, Any]:
    """Build a command payload by action name.

    Raises:
        KeyError: If ``name`` is not a known action.
        ValueError: If an option is missing or invalid.
    """
    try:
        builder = COMMAND_BUILDERS[name]
    except KeyError:
        raise KeyError(f"Unknown command: {name}") from None
    try:
        return builder(**options)
    except TypeError as err:
        raise ValueError(f"Invalid options for {name}: {err}") from err
