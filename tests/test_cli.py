"""Tests for the command line interface."""

from unittest.mock import patch

import pytest
import yaml
from typer.testing import CliRunner

from tubemagic import __version__
from tubemagic.cli import app
from tubemagic.config import config
from tubemagic.errors import GenerationError, RemoteServiceError
from tubemagic.models import Project
from tubemagic.store import LocalStorage, ProjectStore
from tubemagic.studio import Studio

from conftest import FakeGenerationClient, make_package

runner = CliRunner()


@pytest.fixture(autouse=True)
def workspace(tmp_path, monkeypatch):
    """Point the CLI at a temporary workspace."""
    monkeypatch.setattr(config, "workspace", tmp_path)
    monkeypatch.setattr(config, "video_poll_interval", 0.0)
    return tmp_path


@pytest.fixture
def saved_project():
    store = ProjectStore(None, LocalStorage(config.storage_dir))
    project = Project.from_package(make_package(), topic="habits")
    store.save_to_history(project)
    return project


@pytest.fixture
def fake_client():
    return FakeGenerationClient()


@pytest.fixture
def studio(fake_client):
    with patch.object(Studio, "from_config", side_effect=lambda **_: Studio.create(fake_client, config)):
        yield


def test_version():
    result = runner.invoke(app, ["--version"])

    assert result.exit_code == 0
    assert __version__ in result.output


def test_history_empty():
    result = runner.invoke(app, ["history"])

    assert result.exit_code == 0
    assert "No projects yet" in result.output


def test_history_lists_projects(saved_project):
    result = runner.invoke(app, ["history"])

    assert result.exit_code == 0
    assert saved_project.id in result.output
    assert saved_project.youtube_title in result.output


def test_show(saved_project):
    result = runner.invoke(app, ["show", saved_project.id])

    assert result.exit_code == 0
    assert saved_project.thumbnail_text in result.output
    assert "scene-2" in result.output


def test_show_unknown_project():
    result = runner.invoke(app, ["show", "missing"])

    assert result.exit_code == 1
    assert "No project missing" in result.output


def test_export(saved_project, workspace):
    output = workspace / "out" / "production.yaml"

    result = runner.invoke(app, ["export", saved_project.id, "-o", str(output)])

    assert result.exit_code == 0
    data = yaml.safe_load(output.read_text())
    assert data["id"] == saved_project.id
    assert data["thumbnail_text"] == saved_project.thumbnail_text


def test_produce(studio):
    result = runner.invoke(app, ["produce", "5 life-changing morning habits"])

    assert result.exit_code == 0
    assert "Saved to history" in result.output

    history = ProjectStore(None, LocalStorage(config.storage_dir)).load_history()
    assert len(history) == 1
    assert history[0].topic == "5 life-changing morning habits"


def test_produce_failure(studio, fake_client):
    fake_client.structured_error = RemoteServiceError("500: boom", 500)

    result = runner.invoke(app, ["produce", "habits"])

    assert result.exit_code == 1
    assert GenerationError.user_message in result.output


def test_image(studio, saved_project):
    result = runner.invoke(app, ["image", saved_project.id, "scene-1", "--size", "2K"])

    assert result.exit_code == 0
    stored = ProjectStore(None, LocalStorage(config.storage_dir)).load_history()[0]
    assert stored.scene("scene-1").image_url


def test_image_unknown_scene(studio, saved_project):
    result = runner.invoke(app, ["image", saved_project.id, "scene-9"])

    assert result.exit_code == 1


def test_assets_reports_failures(studio, saved_project, fake_client):
    fake_client.image_results.extend([b"\x89PNG a", RuntimeError("quota"), b"\x89PNG c"])

    result = runner.invoke(app, ["assets", saved_project.id])

    assert result.exit_code == 1
    assert "Generated: 2" in result.output
    assert "Failed: 1" in result.output


def test_chat(studio, fake_client):
    result = runner.invoke(app, ["chat"], input="Any tips?\nexit\n")

    assert result.exit_code == 0
    assert "TubeMagic Assistant" in result.output
    assert fake_client.chat_reply in result.output
