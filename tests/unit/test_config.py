"""Unit tests for ClinicFlowConfig class."""

import logging
from pathlib import Path

import pytest

from clinicflow.config import API_BASE_ENV, DEFAULT_CONFIG, ClinicFlowConfig
from clinicflow.main import setup_logging


@pytest.fixture(autouse=True)
def clear_api_env(monkeypatch):
    monkeypatch.delenv(API_BASE_ENV, raising=False)


def write_config(directory: Path, content: str) -> Path:
    path = directory / "clinicflow.yaml"
    path.write_text(content, encoding="utf-8")
    return path


@pytest.mark.unit
class TestClinicFlowConfig:
    """Test cases for ClinicFlowConfig class."""

    def test_defaults_without_file(self):
        config = ClinicFlowConfig()

        assert config.get('api.base_url') == "http://localhost:4000"
        assert config.get('billing.default_base_fee') == 500
        assert config.get('billing.currency_symbol') == "₹"
        assert config.get('audio.sample_rate') == 16000

    def test_defaults_are_not_shared(self):
        config = ClinicFlowConfig()
        config.set('api.base_url', "http://changed")

        assert DEFAULT_CONFIG['api']['base_url'] == "http://localhost:4000"

    def test_file_values_merge_with_defaults(self, temp_data_dir):
        path = write_config(temp_data_dir, (
            "api:\n"
            "  base_url: https://clinic.example.com/\n"
            "billing:\n"
            "  default_base_fee: 650\n"
        ))

        config = ClinicFlowConfig(str(path))

        assert config.get_api_base_url() == "https://clinic.example.com"
        assert config.get('billing.default_base_fee') == 650
        assert config.get('billing.currency_symbol') == "₹"
        assert config.get('api.timeout_seconds') == 60.0

    def test_relative_log_path_resolves_next_to_config(self, temp_data_dir):
        path = write_config(temp_data_dir, "logging:\n  file_path: logs/app.log\n")

        config = ClinicFlowConfig(str(path))

        assert Path(config.get_log_file_path()) == (temp_data_dir / "logs" / "app.log").absolute()

    def test_env_overrides_api_base(self, monkeypatch):
        monkeypatch.setenv(API_BASE_ENV, "https://staging.example.com/")

        config = ClinicFlowConfig()

        assert config.get_api_base_url() == "https://staging.example.com"

    def test_missing_file(self, temp_data_dir):
        with pytest.raises(FileNotFoundError):
            ClinicFlowConfig(str(temp_data_dir / "missing.yaml"))

    @pytest.mark.parametrize("content", ["", "api: [unclosed\n", "- just\n- a list\n"])
    def test_invalid_file(self, temp_data_dir, content):
        path = write_config(temp_data_dir, content)

        with pytest.raises(ValueError):
            ClinicFlowConfig(str(path))

    def test_get_missing_key_returns_default(self):
        config = ClinicFlowConfig()

        assert config.get('api.missing', 'fallback') == 'fallback'
        assert config.get('api.base_url.deeper') is None

    def test_set_creates_nested_keys(self):
        config = ClinicFlowConfig()

        config.set('feature.flags.verbose', True)

        assert config.get('feature.flags.verbose') is True


@pytest.fixture
def restore_root_logger():
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield
    for handler in root.handlers:
        if handler not in handlers:
            handler.close()
    root.handlers[:] = handlers
    root.setLevel(level)


@pytest.mark.unit
class TestSetupLogging:
    """Logging is routed from configuration."""

    def test_startup_summary_written_to_log_file(self, temp_data_dir, restore_root_logger):
        config = ClinicFlowConfig()
        config.set('api.base_url', "https://clinic.example.com/")
        config.set('logging.file_path', str(temp_data_dir / "logs" / "clinicflow.log"))
        config.set('logging.console_output', False)

        log_file = setup_logging(config, "info")

        for handler in logging.getLogger().handlers:
            handler.flush()
        content = Path(log_file).read_text(encoding="utf-8")
        assert "API base: https://clinic.example.com (timeout 60.0s)" in content
        assert "currency: ₹" in content
        assert "default fee: 500" in content
        assert len(logging.getLogger().handlers) == 1
