"""Decides whether an event is configured to produce a snapshot."""

from __future__ import annotations

from snapkeep.config.schema import SnapshotSettings
from snapkeep.services.records import SnapshotPhase

USER_MESSAGE = "user_message"
MODEL_MESSAGE = "model_message"
TOOL_BATCH = "tool_batch"

_MESSAGE_ROLES = {USER_MESSAGE: "user", MODEL_MESSAGE: "model"}


def should_snapshot(
    settings: SnapshotSettings, label: str, phase: SnapshotPhase
) -> bool:
    if not settings.enabled:
        return False

    before = phase is SnapshotPhase.BEFORE
    role = _MESSAGE_ROLES.get(label)
    if role is not None:
        messages = settings.message_snapshots
        roles = messages.before_messages if before else messages.after_messages
        return role in roles

    tools = settings.before_tools if before else settings.after_tools
    if label == TOOL_BATCH:
        return bool(tools)
    return label in tools
