"""Unit tests for the main entry point.

Tests the main() function including:
- CLI argument parsing
- Configuration loading with priority (CLI > env > config)
- Logging configuration
- Database initialization
- One-shot promotion vs daemon mode
- Exit code handling
- Error handling
"""

from unittest.mock import Mock, patch

import pytest

from notifier.config.environment import EnvironmentConfig
from notifier.config.exceptions import ConfigurationError
from notifier.config.models import AppConfig, LoggingConfig, PromoterConfig
from notifier.main import build_parser, load_runtime_config, main
from notifier.promoter import PromotionResult
from tests.helpers import BASE_TIME


def make_configs(log_level="INFO", **app_overrides):
    app_config = AppConfig(**app_overrides)
    env_config = EnvironmentConfig(
        database_url="sqlite:///:memory:",
        log_level=log_level,
        environment="test",
    )
    return app_config, env_config


def make_result(**overrides):
    values = dict(
        run_started_at=BASE_TIME,
        run_finished_at=BASE_TIME,
        selected=2,
        promoted=2,
        failed=0,
        skipped=0,
    )
    values.update(overrides)
    return PromotionResult(**values)


class TestBuildParser:
    def test_defaults(self):
        args = build_parser().parse_args([])

        assert args.config is None
        assert args.promote_once is False
        assert args.log_level is None

    def test_rejects_unknown_log_level(self):
        with pytest.raises(SystemExit):
            build_parser().parse_args(["--log-level", "LOUD"])


class TestLoadRuntimeConfig:
    """Test suite for load_runtime_config helper."""

    def test_log_level_priority(self, tmp_path):
        """Log level priority: CLI > env > config."""
        app_config, env_config = make_configs(
            log_level="INFO",
            logging=LoggingConfig(level="WARNING", format="key-value"),
        )

        with patch("notifier.main.load_config") as mock_load:
            mock_load.return_value = (app_config, env_config)

            # CLI override takes precedence
            _, resolved = load_runtime_config(tmp_path / "config.yaml", "DEBUG")
            assert resolved.log_level == "DEBUG"

            # Env override takes precedence over config
            env_config.log_level = "INFO"
            _, resolved = load_runtime_config(tmp_path / "config.yaml", None)
            assert resolved.log_level == "INFO"

            # Config value used when no overrides
            env_config.log_level = None
            _, resolved = load_runtime_config(tmp_path / "config.yaml", None)
            assert resolved.log_level == "WARNING"

    def test_configuration_error_propagates(self, tmp_path):
        with patch("notifier.main.load_config") as mock_load:
            mock_load.side_effect = ConfigurationError("Config file not found")

            with pytest.raises(ConfigurationError):
                load_runtime_config(tmp_path / "missing.yaml", None)


class TestMain:
    """Test suite for main() function."""

    @patch("notifier.main.QueuePromoter")
    @patch("notifier.main.init_database")
    @patch("notifier.main.close_database")
    @patch("notifier.main.configure_logging")
    @patch("notifier.main.load_runtime_config")
    def test_promote_once_success(
        self,
        mock_load_config,
        mock_configure_logging,
        mock_close_db,
        mock_init_db,
        mock_promoter_cls,
    ):
        mock_load_config.return_value = make_configs(
            promoter=PromoterConfig(batch_size=50)
        )
        mock_promoter = Mock()
        mock_promoter.promote_queued.return_value = make_result()
        mock_promoter_cls.return_value = mock_promoter

        exit_code = main(["--promote-once", "--config", "config.yaml"])

        assert exit_code == 0
        mock_configure_logging.assert_called_once()
        mock_init_db.assert_called_once_with("sqlite:///:memory:")
        mock_close_db.assert_called_once()
        mock_promoter_cls.assert_called_once_with(batch_size=50)
        mock_promoter.promote_queued.assert_called_once_with()

    @patch("notifier.main.QueuePromoter")
    @patch("notifier.main.init_database")
    @patch("notifier.main.close_database")
    @patch("notifier.main.configure_logging")
    @patch("notifier.main.load_runtime_config")
    def test_promote_once_with_row_failures(
        self,
        mock_load_config,
        mock_configure_logging,
        mock_close_db,
        mock_init_db,
        mock_promoter_cls,
    ):
        mock_load_config.return_value = make_configs()
        mock_promoter_cls.return_value.promote_queued.return_value = make_result(
            promoted=1, failed=1
        )

        assert main(["--promote-once"]) == 1

    @patch("notifier.main.QueuePromoter")
    @patch("notifier.main.init_database")
    @patch("notifier.main.close_database")
    @patch("notifier.main.configure_logging")
    @patch("notifier.main.load_runtime_config")
    def test_promote_once_with_selection_error(
        self,
        mock_load_config,
        mock_configure_logging,
        mock_close_db,
        mock_init_db,
        mock_promoter_cls,
    ):
        mock_load_config.return_value = make_configs()
        mock_promoter_cls.return_value.promote_queued.return_value = make_result(
            selected=0, promoted=0, error="database is locked"
        )

        assert main(["--promote-once"]) == 1

    @patch("notifier.main.SchedulerService")
    @patch("notifier.main.QueuePromoter")
    @patch("notifier.main.init_database")
    @patch("notifier.main.close_database")
    @patch("notifier.main.configure_logging")
    @patch("notifier.main.load_runtime_config")
    @patch("signal.signal")
    def test_daemon_mode(
        self,
        mock_signal,
        mock_load_config,
        mock_configure_logging,
        mock_close_db,
        mock_init_db,
        mock_promoter_cls,
        mock_scheduler_service,
    ):
        mock_load_config.return_value = make_configs(
            promoter=PromoterConfig(interval="5m")
        )
        mock_scheduler_instance = Mock()
        mock_scheduler_service.return_value = mock_scheduler_instance

        # Exit straight away so the test doesn't block on the shutdown event
        mock_scheduler_instance.start.side_effect = KeyboardInterrupt()

        exit_code = main([])

        assert exit_code == 0
        mock_scheduler_instance.start.assert_called_once()
        kwargs = mock_scheduler_service.call_args.kwargs
        assert kwargs["interval_seconds"] == 300
        assert kwargs["job_callable"] == mock_promoter_cls.return_value.promote_queued
        assert mock_signal.call_count == 2

    @patch("notifier.main.load_runtime_config")
    def test_configuration_error(self, mock_load_config, capsys):
        mock_load_config.side_effect = ConfigurationError(
            "Config file not found",
            suggestions=["Create config.yaml"],
        )

        exit_code = main(["--config", "nonexistent.yaml"])

        assert exit_code == 1
        assert "Configuration Error" in capsys.readouterr().err

    @patch("notifier.main.load_runtime_config")
    def test_keyboard_interrupt(self, mock_load_config):
        mock_load_config.side_effect = KeyboardInterrupt()

        assert main([]) == 0

    @patch("notifier.main.init_database")
    @patch("notifier.main.configure_logging")
    @patch("notifier.main.load_runtime_config")
    def test_database_failure_is_fatal(
        self, mock_load_config, mock_configure_logging, mock_init_db
    ):
        mock_load_config.return_value = make_configs()
        mock_init_db.side_effect = RuntimeError("disk full")

        assert main(["--promote-once"]) == 1

    @patch("notifier.main.configure_logging")
    @patch("notifier.main.load_runtime_config")
    def test_log_level_override(self, mock_load_config, mock_configure_logging):
        """--log-level is handed to load_runtime_config."""
        mock_load_config.return_value = make_configs(log_level="DEBUG")
        mock_configure_logging.side_effect = RuntimeError("exit early")

        assert main(["--log-level", "DEBUG"]) == 1

        mock_load_config.assert_called_once()
        assert mock_load_config.call_args[0][1] == "DEBUG"
