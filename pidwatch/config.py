"""Display settings for pidwatch.

The dashboard always runs on these built-in defaults; pidwatch reads no
config file or environment variable.
"""

from __future__ import annotations

import copy
from typing import Any

DEFAULT_CONFIG: dict[str, Any] = {
    "uid_threshold": 1000,
    "max_process_rows": 0,  # 0 = as many as fit
    "titles": {
        "app": "pidwatch",
        "cpu": "CPU",
        "memory": "Memory",
        "specs": "Specs/Network",
        "processes": "Processes",
    },
    "colors": {
        "cpu": "yellow",
        "memory": "blue",
        "specs": "red",
        "processes": "magenta",
        "header": "red",
    },
}


def load_config() -> dict[str, Any]:
    """Return a private copy of the display settings."""
    return copy.deepcopy(DEFAULT_CONFIG)
