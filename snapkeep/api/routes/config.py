"""Configuration API routes.

The snapshot policy is read on every engine call, so changes made here apply
to the next snapshot or restore without a restart.
"""

from __future__ import annotations

from fastapi import APIRouter, HTTPException

from snapkeep.api.schemas import (
    ConfigResponse,
    ConfigUpdateRequest,
    ConfigUpdateResponse,
)
from snapkeep.config.manager import get_config_manager
from snapkeep.config.schema import (
    ConfigValidationError,
    apply_deletions,
    deep_merge,
    validate_config,
)
from snapkeep.utils.logger import api_logger

router = APIRouter(tags=["config"])


@router.get("/api/config", response_model=ConfigResponse)
async def get_config():
    """Get all configuration values, including defaults."""
    try:
        config_manager = get_config_manager()
    except RuntimeError as e:
        api_logger.error("Config manager not initialized", error=str(e))
        raise HTTPException(
            status_code=500,
            detail="Configuration manager not initialized",
        ) from e

    config_dict = config_manager.get_all()
    api_logger.info("Configuration retrieved", num_keys=len(config_dict))
    return ConfigResponse(
        config=config_dict,
        snapshots=config_manager.snapshot_settings().model_dump(),
    )


@router.put("/api/config", response_model=ConfigUpdateResponse)
async def update_config(request: ConfigUpdateRequest):
    """Update configuration values.

    Values are deep-merged into the current config; a null value deletes the
    key. The result is validated before anything is persisted.
    """
    try:
        config_manager = get_config_manager()
    except RuntimeError as e:
        api_logger.error("Config manager not initialized", error=str(e))
        raise HTTPException(
            status_code=500,
            detail="Configuration manager not initialized",
        ) from e

    merged_config = deep_merge(config_manager.get_all(), request.config)
    merged_config = apply_deletions(merged_config, request.config)
    try:
        validate_config(merged_config)
    except ConfigValidationError as e:
        raise HTTPException(
            status_code=400,
            detail={
                "message": "Invalid configuration",
                "errors": e.errors,
            },
        ) from e

    try:
        await config_manager.update_with_deletions(request.config)
    except (ConfigValidationError, OSError) as e:
        api_logger.error(
            "Failed to update configuration", error=str(e), exc_info=True
        )
        raise HTTPException(
            status_code=500,
            detail=f"Failed to update configuration: {str(e)}",
        ) from e

    api_logger.info(
        "Configuration updated",
        num_keys_updated=len(request.config),
        keys=list(request.config.keys()),
    )
    return ConfigUpdateResponse(
        success=True,
        message=f"Successfully updated {len(request.config)} configuration key(s)",
        config=config_manager.get_all(),
        snapshots=config_manager.snapshot_settings().model_dump(),
    )
