"""Main entry point for the MQTT release notifier.

Usage: mqtt-release-notifier [config.yaml]

Settings are read from the environment (MQTT_HOST, MQTT_PATH, RELEASE_TAG, ...).
Exit codes: 0 published, 1 all attempts failed, 2 configuration missing or invalid.
"""

import logging
import sys
from typing import List, Optional

from .config import DEFAULT_LOG_FORMAT, Config, ConfigError
from .retry import PublishOrchestrator

EXIT_CONFIG_ERROR = 2
EXIT_INTERRUPTED = 130


class _BelowLevelFilter(logging.Filter):
    """Pass only records below the given level."""

    def __init__(self, level: int):
        super().__init__()
        self.level = level

    def filter(self, record: logging.LogRecord) -> bool:
        return record.levelno < self.level


def setup_logging(level_name: str = "INFO", log_format: str = DEFAULT_LOG_FORMAT) -> None:
    """
    Configure logging: progress to stdout, warnings and errors to stderr.

    Args:
        level_name: Log level name, unknown names fall back to INFO
        log_format: logging format string
    """
    level = getattr(logging, str(level_name).upper(), logging.INFO)
    if not isinstance(level, int):
        level = logging.INFO
    formatter = logging.Formatter(log_format)

    stdout_handler = logging.StreamHandler(sys.stdout)
    stdout_handler.setFormatter(formatter)
    stdout_handler.addFilter(_BelowLevelFilter(logging.WARNING))

    stderr_handler = logging.StreamHandler(sys.stderr)
    stderr_handler.setFormatter(formatter)
    stderr_handler.setLevel(logging.WARNING)

    logging.basicConfig(level=level, handlers=[stdout_handler, stderr_handler], force=True)


def main(argv: Optional[List[str]] = None) -> int:
    """Main application entry point."""
    args = sys.argv[1:] if argv is None else argv

    try:
        # Load configuration
        config_path = args[0] if args else None
        config = Config(config_path)

        logging_config = config.get_logging_config()
        setup_logging(logging_config["level"], logging_config["format"])

        publisher_config = config.get_publisher_config()

    except ConfigError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        return EXIT_CONFIG_ERROR

    logger = logging.getLogger(__name__)
    logger.info(f"Publishing release notification: {publisher_config.describe()}")

    try:
        return PublishOrchestrator(publisher_config).run()
    except KeyboardInterrupt:
        logger.warning("Interrupted by user (Ctrl+C)")
        return EXIT_INTERRUPTED


if __name__ == "__main__":
    sys.exit(main())
