"""Tests for the tensorcam CLI."""

from __future__ import annotations

import asyncio
import json

import pytest
from typer.testing import CliRunner

from tensorcam import __version__
from tensorcam.cli import app
from tensorcam.common.events import TOPIC_LABELS, TOPIC_PERMISSION, Event, EventBus

runner = CliRunner()


@pytest.fixture(autouse=True)
def isolated_cwd(tmp_path, monkeypatch):
    """Keep config discovery away from files in the working tree."""
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("HOME", str(tmp_path))


class FakeScreen:
    """Records how the CLI built the screen instead of opening a camera."""

    instances: list["FakeScreen"] = []

    def __init__(self, config, mock_mode=False):
        self.config = config
        self.mock_mode = mock_mode
        self.event_bus = EventBus()
        FakeScreen.instances.append(self)

    def run(self):
        asyncio.run(self._publish_session())

    async def _publish_session(self):
        await self.event_bus.publish(
            Event(topic=TOPIC_PERMISSION, data={"permission": "granted"}, source="fake")
        )
        for labels in (["bird"], ["cat", "dog"]):
            await self.event_bus.publish(
                Event(topic=TOPIC_LABELS, data={"labels": labels}, source="fake")
            )


class TestCLI:
    """Tests for CLI commands."""

    def test_version(self):
        result = runner.invoke(app, ["version"])

        assert result.exit_code == 0
        assert __version__ in result.output

    def test_models(self):
        result = runner.invoke(app, ["models"])

        assert result.exit_code == 0
        assert "mobilenet_v2" in result.output
        assert "mobilenet_v3_small" in result.output
        assert "mobilenetv3_small_050.lamb_in1k" in result.output

    def test_config_json(self):
        result = runner.invoke(app, ["config", "--json-output"])

        assert result.exit_code == 0
        data = json.loads(result.output)
        assert data["sampling"]["interval"] == 60
        assert data["camera"]["texture"]["ios"] == {"width": 1080, "height": 1920}

    def test_config_from_file(self, tmp_path):
        path = tmp_path / "custom.yaml"
        path.write_text("camera:\n  platform: ios\nsampling:\n  interval: 20\n")

        result = runner.invoke(app, ["config", "--config", str(path)])

        assert result.exit_code == 0
        assert "1080x1920" in result.output
        assert "20 ticks" in result.output

    def test_run_applies_options(self, monkeypatch):
        FakeScreen.instances.clear()
        monkeypatch.setattr("tensorcam.runtime.CameraScreen", FakeScreen)

        result = runner.invoke(
            app,
            ["run", "--mock", "--headless", "--platform", "ios", "--interval", "5"],
        )

        assert result.exit_code == 0
        screen = FakeScreen.instances[0]
        assert screen.mock_mode is True
        assert screen.config.display.backend == "headless"
        assert screen.config.camera.platform == "ios"
        assert screen.config.sampling.interval == 5
        assert "permission: granted" in result.output
        assert "bird" in result.output
        assert "Last labels: cat, dog" in result.output

    def test_run_rejects_unknown_platform(self, monkeypatch):
        monkeypatch.setattr("tensorcam.runtime.CameraScreen", FakeScreen)

        result = runner.invoke(app, ["run", "--platform", "web"])

        assert result.exit_code == 2

    def test_run_rejects_bad_interval(self, monkeypatch):
        monkeypatch.setattr("tensorcam.runtime.CameraScreen", FakeScreen)

        result = runner.invoke(app, ["run", "--interval", "0"])

        assert result.exit_code == 2

    def test_run_reports_failure(self, monkeypatch):
        class BrokenScreen(FakeScreen):
            def run(self):
                raise RuntimeError("weights missing")

        monkeypatch.setattr("tensorcam.runtime.CameraScreen", BrokenScreen)

        result = runner.invoke(app, ["run", "--mock"])

        assert result.exit_code == 1
        assert "weights missing" in result.output
