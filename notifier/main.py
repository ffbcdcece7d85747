"""Main entry point for the case notifier promotion service."""

from dotenv import load_dotenv
load_dotenv()

import argparse
import signal
import sys
import threading
import time
from pathlib import Path
from typing import Optional, Tuple

from notifier.config.environment import EnvironmentConfig
from notifier.config.exceptions import ConfigurationError
from notifier.config.loader import load_config
from notifier.config.models import AppConfig
from notifier.logging import get_logger
from notifier.logging.config import configure_logging
from notifier.persistence.database import close_database, init_database
from notifier.promoter import QueuePromoter
from notifier.scheduler import SchedulerService

logger = get_logger(__name__, component="cli")


def load_runtime_config(
    config_path: Optional[Path], log_level_override: Optional[str]
) -> Tuple[AppConfig, EnvironmentConfig]:
    """
    Load configuration and settle the effective log level.

    Log level priority: CLI > LOG_LEVEL environment variable > config file.

    Raises:
        ConfigurationError: If configuration is invalid
    """
    app_config, env_config = load_config(config_path)

    if log_level_override:
        env_config.log_level = log_level_override
    elif not env_config.log_level:
        env_config.log_level = app_config.logging.level or "INFO"

    return app_config, env_config


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Case notifier - promotes notifications held by recipients' quiet hours"
    )
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="Path to configuration file (default: config.yaml, then config/config.yaml)",
    )
    parser.add_argument(
        "--promote-once",
        action="store_true",
        help="Run a single promotion batch and exit",
    )
    parser.add_argument(
        "--log-level",
        default=None,
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        help="Log level (overrides config and environment)",
    )
    return parser


def main(argv=None) -> int:
    """
    Run the promoter once or as a scheduled daemon.

    Returns:
        Exit code (0 for success, non-zero for failure).
    """
    start_time = time.time()
    args = build_parser().parse_args(argv)

    try:
        app_config, env_config = load_runtime_config(args.config, args.log_level)

        configure_logging(
            level=env_config.log_level,
            format_type=app_config.logging.format,
            environment=env_config.environment,
        )

        logger.info(
            "Case notifier starting",
            extra={
                "event": "service.starting",
                "config_path": str(args.config) if args.config else None,
                "log_level": env_config.log_level,
                "promote_once": args.promote_once,
            },
        )

        init_database(env_config.database_url)

        logger.info(
            "Configuration loaded",
            extra={
                "event": "config.loaded",
                "promoter_interval_seconds": app_config.promoter.interval_seconds,
                "promoter_batch_size": app_config.promoter.batch_size,
                "log_format": app_config.logging.format,
            },
        )

        promoter = QueuePromoter(batch_size=app_config.promoter.batch_size)

        if args.promote_once:
            result = promoter.promote_queued()

            logger.info(
                f"Promotion completed: {result.selected} selected, "
                f"{result.promoted} promoted, {result.failed} failed, "
                f"{result.skipped} skipped",
                extra={
                    "event": "service.promote_once.completed",
                    "duration_seconds": result.duration_seconds,
                    "had_errors": result.had_errors,
                },
            )

            close_database()
            _log_stopped(start_time)
            return 1 if result.had_errors else 0

        shutdown_event = threading.Event()
        scheduler_service = SchedulerService(
            job_callable=promoter.promote_queued,
            interval_seconds=app_config.promoter.interval_seconds,
            shutdown_event=shutdown_event,
        )

        def signal_handler(signum, frame):
            logger.info(
                f"Received signal {signum}, shutting down",
                extra={"event": "service.signal_received", "signal": signum}
            )
            scheduler_service.shutdown(wait=False)
            close_database()

        signal.signal(signal.SIGINT, signal_handler)
        signal.signal(signal.SIGTERM, signal_handler)

        scheduler_service.start()

        logger.info(
            "Scheduler started. Press Ctrl+C to stop",
            extra={"event": "service.daemon_mode.started"}
        )

        try:
            shutdown_event.wait()
        except KeyboardInterrupt:
            logger.info(
                "Keyboard interrupt received, shutting down",
                extra={"event": "service.keyboard_interrupt"}
            )
            scheduler_service.shutdown(wait=False)
            close_database()

        _log_stopped(start_time)
        return 0

    except ConfigurationError as e:
        print(f"Configuration Error: {e}", file=sys.stderr)
        logger.error(
            f"Configuration error: {e}",
            extra={"event": "config.error", "error_type": "ConfigurationError"}
        )
        return 1
    except KeyboardInterrupt:
        print("\nShutdown requested by user", file=sys.stderr)
        return 0
    except Exception as e:
        print(f"Fatal error: {e}", file=sys.stderr)
        logger.critical(
            "Fatal error during startup",
            extra={
                "event": "service.startup.failed",
                "error_type": type(e).__name__,
                "error": str(e),
            },
            exc_info=True
        )
        return 1


def _log_stopped(start_time: float) -> None:
    logger.info(
        "Case notifier stopped",
        extra={
            "event": "service.stopping",
            "uptime_seconds": round(time.time() - start_time, 2),
        },
    )


if __name__ == "__main__":
    sys.exit(main())
