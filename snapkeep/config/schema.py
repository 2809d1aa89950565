from __future__ import annotations

from copy import deepcopy
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from snapkeep.config.constants import DEFAULT_BEFORE_TOOLS, DEFAULT_MAX_SNAPSHOTS

MessageKind = Literal["user", "model"]


def deep_merge(base: dict[str, Any], updates: dict[str, Any]) -> dict[str, Any]:
    """Deep-merge updates into base without mutating inputs.

    - Keys present in updates with non-None values are merged/overwritten
    - Keys present in updates with None values are skipped (preserve base value)
    - Keys not present in updates are preserved from base
    """
    result = deepcopy(base)
    for key, value in updates.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = deep_merge(result[key], value)
        elif key in result and value is None:
            # Treat None as "not provided" so lower layers keep their values
            continue
        else:
            result[key] = value
    return result


def apply_deletions(config: dict[str, Any], updates: dict[str, Any]) -> dict[str, Any]:
    """Apply explicit null deletions from updates to config.

    Recursively removes keys from config where updates has explicit None values.
    """
    result = deepcopy(config)
    for key, value in updates.items():
        if value is None:
            result.pop(key, None)
        elif (
            isinstance(value, dict) and key in result and isinstance(result[key], dict)
        ):
            result[key] = apply_deletions(result[key], value)
    return result


class MessageSnapshotSettings(BaseModel):
    before_messages: list[MessageKind] = Field(default_factory=list)
    after_messages: list[MessageKind] = Field(default_factory=list)

    model_config = ConfigDict(extra="ignore")


class SnapshotSettings(BaseModel):
    """Policy consulted by the snapshot manager on every call."""

    enabled: bool = True
    before_tools: list[str] = Field(default_factory=lambda: list(DEFAULT_BEFORE_TOOLS))
    after_tools: list[str] = Field(default_factory=list)
    message_snapshots: MessageSnapshotSettings = Field(
        default_factory=lambda: MessageSnapshotSettings(before_messages=["user"])
    )
    # Negative means unlimited
    max_snapshots: int = DEFAULT_MAX_SNAPSHOTS
    custom_ignore_patterns: list[str] = Field(default_factory=list)

    model_config = ConfigDict(extra="ignore")

    @field_validator("custom_ignore_patterns")
    @classmethod
    def strip_blank_patterns(cls, value: list[str]) -> list[str]:
        return [p.strip() for p in value if p and p.strip()]


class StorageSettings(BaseModel):
    base_path: str | None = None

    model_config = ConfigDict(extra="ignore")


class AppConfig(BaseModel):
    snapshots: SnapshotSettings = Field(default_factory=SnapshotSettings)
    storage: StorageSettings = Field(default_factory=StorageSettings)

    server_host: str = "localhost"
    server_port: int = 8766
    log_level: str = "INFO"
    log_format: Literal["pretty", "json"] = "pretty"
    log_colors: bool = True

    model_config = ConfigDict(extra="ignore")


class ConfigValidationError(Exception):
    """Structured configuration validation error."""

    def __init__(self, errors: list[str]):
        self.errors = errors
        super().__init__("; ".join(errors))


def validate_config(config: dict[str, Any]) -> dict[str, Any]:
    """Validate configuration using Pydantic schema.

    Raises:
        ConfigValidationError: With structured list of human-readable error messages.
    """
    try:
        app_config = AppConfig.model_validate(config)
        return app_config.model_dump(mode="json")
    except ValidationError as e:
        errors = _extract_validation_errors(e)
        raise ConfigValidationError(errors) from e


def normalize_config(config: dict[str, Any]) -> dict[str, Any]:
    """Return the validated view of config, keeping unknown top-level keys."""
    validated = validate_config(config)
    extras = {k: v for k, v in config.items() if k not in validated}
    return {**validated, **extras}


def _extract_validation_errors(exc: ValidationError) -> list[str]:
    """Convert Pydantic ValidationError to list of human-readable messages."""
    errors = []
    for err in exc.errors():
        loc = ".".join(str(x) for x in err["loc"]) if err["loc"] else "config"
        msg = err["msg"]

        if msg.startswith("Value error, "):
            msg = msg[len("Value error, ") :]

        if err["type"] == "missing":
            errors.append(f"Missing required field: {loc}")
        elif err["type"] == "string_type":
            errors.append(f"Expected string at '{loc}'")
        elif err["type"] in ("int_type", "int_parsing"):
            errors.append(f"Expected integer at '{loc}'")
        elif err["type"] in ("bool_type", "bool_parsing"):
            errors.append(f"Expected boolean at '{loc}'")
        elif err["type"] in ("dict_type", "model_type"):
            errors.append(f"Expected object at '{loc}'")
        elif err["type"] == "list_type":
            errors.append(f"Expected list at '{loc}'")
        else:
            errors.append(f"{loc}: {msg}")

    return errors if errors else ["Invalid configuration"]
