"""Tests for the service entry point."""

import logging
from unittest.mock import AsyncMock, Mock, patch

import pytest

from abx_client import main as main_module
from abx_client.exceptions import NoDataReceived


@pytest.fixture
def restore_root_logger():
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)


class TestMain:

    @pytest.mark.asyncio
    async def test_missing_config_file_exits_nonzero(self, monkeypatch, tmp_path):
        monkeypatch.setenv("CONFIG_FILE", str(tmp_path / "missing.yaml"))

        assert await main_module.main() == 1

    @pytest.mark.asyncio
    async def test_pipeline_failure_exits_nonzero(self, monkeypatch, tmp_path, restore_root_logger):
        config_file = tmp_path / "client.yaml"
        config_file.write_text(
            f"output:\n  path: {tmp_path / 'output.json'}\n"
            f"logging:\n  output: {tmp_path / 'client.log'}\n"
        )
        monkeypatch.setenv("CONFIG_FILE", str(config_file))

        with patch.object(main_module.FeedPipeline, "run", AsyncMock(side_effect=NoDataReceived())):
            assert await main_module.main() == 1

        assert not (tmp_path / "output.json").exists()

    @pytest.mark.asyncio
    async def test_success_exits_zero(self, monkeypatch, tmp_path, restore_root_logger):
        config_file = tmp_path / "client.yaml"
        config_file.write_text(f"logging:\n  output: {tmp_path / 'client.log'}\n")
        monkeypatch.setenv("CONFIG_FILE", str(config_file))

        report = Mock()
        report.complete = True
        report.records = []
        with patch.object(main_module.FeedPipeline, "run", AsyncMock(return_value=report)):
            assert await main_module.main() == 0
