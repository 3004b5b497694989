#!/usr/bin/env python3
"""
Demo script showing configuration hot reload functionality.

This script demonstrates how the ConfigManager can automatically reload
configuration changes without restarting the application. Edit the
properties file while it runs and watch the model follow.
"""

import sys
import time
from pathlib import Path
from typing import Dict, Mapping

# Add the project root to Python path
sys.path.insert(0, str(Path(__file__).parent.parent))

from hotconfig import ConfigManager
from hotconfig.logging import get_logger, initialize_logging


class ServerConfig:
    """Example configuration model."""

    def __init__(self):
        self.host = "127.0.0.1"
        self.port = 8080
        self.debug = False
        self.workers = 4

    def load(self, properties: Mapping[str, str]) -> 'ServerConfig':
        self.host = properties.get("host", "127.0.0.1")
        self.port = int(properties.get("port", "8080"))
        self.debug = properties.get("debug", "false").lower() == "true"
        self.workers = int(properties.get("workers", "4"))
        return self

    def validate(self) -> None:
        # Debug mode runs single-threaded
        if self.debug:
            self.workers = 1
        self.workers = max(1, self.workers)

    def to_properties(self) -> Dict[str, str]:
        return {
            "host": self.host,
            "port": str(self.port),
            "debug": "true" if self.debug else "false",
            "workers": str(self.workers),
        }


def main():
    """Main demo function."""
    config_path = Path(sys.argv[1]) if len(sys.argv) > 1 else Path("server.properties")

    log_manager = initialize_logging(log_dir="logs", structured_format=False)
    logger = get_logger(__name__)
    logger.info("Starting configuration hot reload demo")

    model = ServerConfig()
    with ConfigManager(model, config_path, watch=True) as config_manager:
        if not config_path.read_text().strip():
            # Fresh file: write the defaults so there is something to edit
            config_manager.save()

        def on_config_change(new_properties: Dict[str, str]):
            log_manager.log_config_event("reload", str(config_path), {"keys": sorted(new_properties)})
            logger.info(f"Configuration changed: {new_properties}")
            logger.info(f"Now serving {model.host}:{model.port} with {model.workers} worker(s)"
                        f"{' in debug mode' if model.debug else ''}")

        config_manager.add_change_callback(on_config_change)

        logger.info(f"Initial configuration: {model.to_properties()}")
        if not config_manager.watching:
            logger.warning("File watching unavailable; changes need a restart")
        logger.info(f"Try editing {config_path}")
        logger.info("Press Ctrl+C to exit")

        try:
            while True:
                time.sleep(1)
        except KeyboardInterrupt:
            logger.info("Stopping configuration monitor...")

    logger.info("Demo completed")


if __name__ == "__main__":
    main()
