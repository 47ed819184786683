"""Configuration loading for crossinfo.

Settings come from ``~/.config/crossinfo/config.toml`` laid over
``DEFAULT_CONFIG``. There are no command-line flags.

Refresh intervals are not configurable; the dashboard samples at a fixed
one-second cadence.
"""

from __future__ import annotations

import copy
import logging
import sys
import tomllib
from pathlib import Path
from typing import Any

DEFAULT_CONFIG: dict[str, Any] = {
    "tick_sleep": 0.0,
    "log_file": "",
    "bar_thresholds": {"warning": 0.6, "elevated": 0.8, "critical": 0.95},
    "connectivity": {"host": "1.1.1.1", "port": 53, "timeout": 3.0},
}

_DEFAULT_PATH = Path.home() / ".config" / "crossinfo" / "config.toml"


def load_config() -> dict[str, Any]:
    """Return the defaults with the user's config file applied on top.

    Tables such as ``[connectivity]`` are updated key by key, so a file
    that sets only ``host`` keeps the default ``port`` and ``timeout``.
    A missing file yields the defaults; an unreadable one is reported
    on stderr and ignored.
    """
    config = copy.deepcopy(DEFAULT_CONFIG)
    if not _DEFAULT_PATH.is_file():
        return config

    try:
        overrides = tomllib.loads(_DEFAULT_PATH.read_text(encoding="utf-8"))
    except (OSError, tomllib.TOMLDecodeError) as e:
        print(f"crossinfo: warning: ignoring {_DEFAULT_PATH}: {e}", file=sys.stderr)
        return config

    for key, value in overrides.items():
        section = config.get(key)
        if isinstance(section, dict) and isinstance(value, dict):
            section.update(value)
        else:
            config[key] = value
    return config


def configure_logging(config: dict[str, Any]) -> None:
    """Route crossinfo's loggers to ``log_file``, or nowhere.

    curses owns the terminal, so records are never written to stderr.
    """
    root = logging.getLogger("crossinfo")
    for handler in list(root.handlers):
        root.removeHandler(handler)
        handler.close()
    root.propagate = False

    log_file = str(config.get("log_file", "") or "")
    if not log_file:
        root.addHandler(logging.NullHandler())
        return

    handler = logging.FileHandler(Path(log_file).expanduser(), encoding="utf-8")
    handler.setFormatter(
        logging.Formatter("%(asctime)s %(levelname)s %(name)s: %(message)s")
    )
    root.addHandler(handler)
    root.setLevel(logging.DEBUG)
