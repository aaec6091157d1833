"""MODB interactive terminal browser.

Textual front-end over the browse controllers: tabs for Movies, TV Shows,
Trending and People with infinite scrolling, plus type-ahead search.
"""

from __future__ import annotations

from pathlib import Path


def run_tui(config_path: Path | None = None) -> None:
    """Resolve configuration, build the catalog client and run the app.

    Imports are deferred so that ``modb --help`` stays fast.

    Args:
        config_path: Optional JSON config file (default ``config/modb.json``).
    """
    from modb.catalog import TMDBClient
    from modb.config import load_client_config
    from modb.tui.app import ModbApp
    from modb.tui.telemetry import configure_file_logging

    try:
        config = load_client_config(config_path)
    except RuntimeError as exc:
        print(f"Error: {exc}")
        raise SystemExit(1)

    configure_file_logging(config.log_dir)
    client = TMDBClient(config)
    app = ModbApp(catalog=client, config=config, close_catalog=True)
    app.run()
