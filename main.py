#!/usr/bin/env python3
"""Main entry point for the knockout tournament server."""

import logging
import os
import sys
from pathlib import Path

from config.settings import AppConfig, get_default_config
from tournaments.factory import (
    create_image_provider,
    create_manager,
    create_repository,
    create_roster,
)
from web.app import create_app

logger = logging.getLogger(__name__)


def setup_logging(level: str = "INFO"):
    """Configure logging for the web server."""
    logging.basicConfig(
        level=getattr(logging, level, logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        datefmt="%H:%M:%S",
    )

    # Suppress noisy third-party loggers
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)


def print_usage():
    """Print usage information for local development."""

    print("Knockout Rotation Tournament")
    print("=" * 40)
    print("Usage:")
    print("   python main.py --web [--config tournament_config.yaml]")
    print()
    print("The config file is created from a template when it does not exist.")
    print()


def load_config() -> AppConfig:
    if "--config" in sys.argv:
        index = sys.argv.index("--config")
        if index + 1 >= len(sys.argv):
            raise SystemExit("--config requires a path")
        return AppConfig.load_from_file(Path(sys.argv[index + 1]))
    return get_default_config()


def build_app(config: AppConfig):
    """Wire storage, engine and roster into the web application."""
    repository = create_repository(config.storage)
    manager = create_manager(config, repository)
    roster = create_roster(config, repository)

    roster.seed_roster(config.roster.names)
    manager.ensure_tournament()

    return create_app(manager, roster, create_image_provider(config))


def start_web_server():
    """Start the FastAPI web server."""
    config = load_config()
    setup_logging(config.system.log_level)

    import uvicorn

    port = int(os.environ.get("PORT", config.system.port))
    app = build_app(config)

    print("🏆 Starting Knockout Rotation Tournament Server...")
    print(f"📡 API Documentation: http://localhost:{port}/docs")

    uvicorn.run(
        app,
        host=config.system.host,
        port=port,
        log_level=config.system.log_level.lower(),
        access_log=True,
    )


def main():
    """Main entry point."""
    is_production = any([
        "PORT" in os.environ,
        os.environ.get("ENVIRONMENT") == "production"
    ])

    if "--help" in sys.argv or "-h" in sys.argv:
        print_usage()
    elif is_production or "--web" in sys.argv:
        start_web_server()
    else:
        print_usage()
        print("💡 Tip: Use 'python main.py --web' to start the server")


if __name__ == "__main__":
    main()
