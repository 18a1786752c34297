"""Tests for the command line entry point."""

import logging
import sys

import pytest

from mqtt_release_notifier import main as main_module
from mqtt_release_notifier.main import main, setup_logging


class FakeOrchestrator:
    """Replaces PublishOrchestrator; records the config it was given."""

    instances = []
    exit_code = 0

    def __init__(self, config):
        self.config = config
        FakeOrchestrator.instances.append(self)

    def run(self):
        return FakeOrchestrator.exit_code


@pytest.fixture
def fake_orchestrator(monkeypatch, restore_logging):
    FakeOrchestrator.instances = []
    FakeOrchestrator.exit_code = 0
    monkeypatch.setattr(main_module, "PublishOrchestrator", FakeOrchestrator)
    return FakeOrchestrator


class TestMain:
    """Tests for main()."""

    def test_missing_host_exits_2_without_connecting(self, clean_env, fake_orchestrator, capsys):
        """Test that a missing MQTT_HOST never reaches the network."""
        clean_env.setenv("MQTT_PATH", "releases/app")

        assert main([]) == 2
        assert fake_orchestrator.instances == []
        assert "MQTT_HOST is not set!" in capsys.readouterr().err

    def test_invalid_number_exits_2(self, clean_env, fake_orchestrator):
        """Test that invalid tunables are configuration errors."""
        clean_env.setenv("MQTT_HOST", "wss://broker")
        clean_env.setenv("MQTT_ATTEMPTS", "four")

        assert main([]) == 2
        assert fake_orchestrator.instances == []

    @pytest.mark.parametrize("exit_code", [0, 1])
    def test_returns_orchestrator_exit_code(self, clean_env, fake_orchestrator, exit_code):
        """Test that the orchestrator's result becomes the exit code."""
        clean_env.setenv("MQTT_HOST", "wss://broker")
        clean_env.setenv("MQTT_PATH", "releases/app")
        clean_env.setenv("RELEASE_TAG", "v3.1.0")
        fake_orchestrator.exit_code = exit_code

        assert main([]) == exit_code
        config = fake_orchestrator.instances[0].config
        assert config.payload == "v3.1.0"
        assert config.topic == "releases/app"

    def test_config_file_argument(self, clean_env, fake_orchestrator, tmp_path):
        """Test that the first argument is the YAML config path."""
        path = tmp_path / "config.yaml"
        path.write_text("mqtt:\n  host: wss://file\n  topic: releases/file\n")

        assert main([str(path)]) == 0
        assert fake_orchestrator.instances[0].config.broker_url == "wss://file"

    def test_missing_config_file_exits_2(self, clean_env, fake_orchestrator, tmp_path):
        """Test that an unreadable config file is fatal."""
        assert main([str(tmp_path / "missing.yaml")]) == 2

    def test_interrupt(self, clean_env, monkeypatch, restore_logging):
        """Test Ctrl+C during publishing."""
        clean_env.setenv("MQTT_HOST", "wss://broker")

        class Interrupted(FakeOrchestrator):
            def run(self):
                raise KeyboardInterrupt

        monkeypatch.setattr(main_module, "PublishOrchestrator", Interrupted)
        assert main([]) == 130


class TestSetupLogging:
    """Tests for setup_logging()."""

    def test_progress_to_stdout_errors_to_stderr(self, capsys, restore_logging):
        """Test that INFO goes to stdout and ERROR to stderr."""
        setup_logging("INFO", "%(levelname)s %(message)s")
        logger = logging.getLogger("mqtt_release_notifier.test")

        logger.info("Attempt 1/4")
        logger.error("Attempt 1 failed: boom")

        captured = capsys.readouterr()
        assert "INFO Attempt 1/4" in captured.out
        assert "Attempt 1 failed" not in captured.out
        assert "ERROR Attempt 1 failed: boom" in captured.err
        assert "Attempt 1/4" not in captured.err

    def test_level(self, restore_logging):
        """Test level names, with unknown names falling back to INFO."""
        setup_logging("debug")
        assert logging.getLogger().level == logging.DEBUG

        setup_logging("nonsense")
        assert logging.getLogger().level == logging.INFO

    def test_handlers_use_current_streams(self, capsys, restore_logging):
        """Test that handlers write to the current stdout and stderr."""
        setup_logging()
        streams = {handler.stream for handler in logging.getLogger().handlers}
        assert streams == {sys.stdout, sys.stderr}
