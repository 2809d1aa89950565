#!/usr/bin/env python3
"""Main entry point for the snapkeep server.

Serves snapkeep.api.app over Uvicorn for the workspace given by --workdir.
Loads a .env file from --workdir if present to populate environment variables.
"""

import asyncio
import os
import sys
from argparse import ArgumentParser
from pathlib import Path

if __name__ == "__main__":
    # Parse arguments FIRST so --help works without touching config
    parser = ArgumentParser(description="Start the snapkeep server")
    parser.add_argument(
        "--workdir",
        required=True,
        help="Absolute path to the workspace to snapshot",
    )
    parser.add_argument(
        "--data-dir",
        help="Directory for snapshot payloads and records. Overrides config.",
    )
    parser.add_argument("--host", help="Bind address. Overrides config.")
    parser.add_argument("--port", type=int, help="Bind port. Overrides config.")
    parser.add_argument(
        "--log-format",
        choices=["pretty", "json"],
        help="Log format (pretty or json). Overrides config and LOG_FORMAT env var.",
    )
    parser.add_argument(
        "--log-colors",
        type=lambda x: x.lower() in ("true", "1", "yes", "on"),
        help="Enable colored logs (true/false). Overrides config and LOG_COLORS env var.",
    )
    args = parser.parse_args()

    # Logging reads these at import time
    if args.log_format:
        os.environ["LOG_FORMAT"] = args.log_format
    if args.log_colors is not None:
        os.environ["LOG_COLORS"] = "true" if args.log_colors else "false"

    from snapkeep.utils.logger import get_logger

    startup_logger = get_logger("server.startup")

    workdir_path = Path(args.workdir).expanduser().resolve()
    if not workdir_path.is_dir():
        startup_logger.error("--workdir is not a directory", path=str(workdir_path))
        sys.exit(1)

    from dotenv import load_dotenv

    env_file = workdir_path / ".env"
    if env_file.exists():
        load_dotenv(dotenv_path=env_file, override=False)
        startup_logger.debug("Loaded .env file", path=str(env_file))

    from snapkeep.config import create_config_manager, get_default_config, settings

    try:
        config_dir = Path(
            os.getenv("SNAPKEEP_CONFIG_DIR", "~/.snapkeep")
        ).expanduser()
        config_manager = create_config_manager(
            config_dir,
            local_config_path=workdir_path / ".snapkeep.json",
            defaults=get_default_config(),
        )
        asyncio.run(config_manager.initialize())
        settings.attach(config_manager)
    except Exception as e:
        startup_logger.error("Failed to initialize configuration", error=str(e))
        sys.exit(1)

    from snapkeep.utils.logger import apply_log_settings

    # Command line flags win over the config file
    apply_log_settings(
        args.log_format or settings.log_format,
        settings.log_colors if args.log_colors is None else args.log_colors,
        settings.log_level,
    )

    import uvicorn

    from snapkeep.api.app import create_app
    from snapkeep.api.deps import set_snapshot_manager, set_workspace_root
    from snapkeep.config.logging_config import get_logging_config
    from snapkeep.services.snapshots import build_snapshot_manager

    data_dir = Path(args.data_dir).expanduser() if args.data_dir else None
    manager = build_snapshot_manager(workdir_path, base_path=data_dir)
    set_workspace_root(workdir_path)
    set_snapshot_manager(manager)

    app = create_app()
    app.state.config_manager = config_manager

    host = args.host or settings.server_host
    port = args.port or settings.server_port
    startup_logger.info(
        "Starting snapkeep server",
        server_url=f"http://{host}:{port}",
        workdir=str(workdir_path),
        storage=str(manager.paths.base_path),
    )
    uvicorn.run(
        app,
        host=host,
        port=port,
        log_config=get_logging_config(),
        lifespan="on",
        timeout_graceful_shutdown=5,
    )
