"""Default configuration values for snapkeep."""

from typing import Any

from snapkeep.config.constants import DEFAULT_BEFORE_TOOLS, DEFAULT_MAX_SNAPSHOTS


def get_default_config() -> dict[str, Any]:
    """Return the default configuration dictionary."""
    return {
        # Snapshot policy consulted before every create call
        "snapshots": {
            "enabled": True,
            "before_tools": list(DEFAULT_BEFORE_TOOLS),
            "after_tools": [],
            "message_snapshots": {
                "before_messages": ["user"],
                "after_messages": [],
            },
            # -1 means unlimited
            "max_snapshots": DEFAULT_MAX_SNAPSHOTS,
            "custom_ignore_patterns": [],
        },
        # Payload and record store location; None falls back to SNAPKEEP_DATA_DIR
        "storage": {
            "base_path": None,
        },
        # Server Configuration
        "server_host": "localhost",
        "server_port": 8766,
        # Logging Configuration
        "log_level": "INFO",
        "log_format": "pretty",
        "log_colors": True,
    }
