"""Tests for the captionator command line."""

import pytest
from typer.testing import CliRunner

from captionator import cli
from captionator.cli import app, collect_images
from captionator.image_processor import DirectoryNotFoundError

from tests.conftest import solid_image

runner = CliRunner()


@pytest.fixture
def photo_dir(tmp_path):
    solid_image((255, 0, 0)).save(tmp_path / "red.png")
    solid_image((20, 20, 200), size=(120, 60)).save(tmp_path / "blue.jpg")
    (tmp_path / "notes.txt").write_text("not an image")
    return tmp_path


class TestCollectImages:
    def test_directories_expand_to_sorted_images(self, photo_dir):
        images = collect_images([photo_dir])

        assert [path.name for path in images] == ["blue.jpg", "red.png"]

    def test_missing_path_raises(self, tmp_path):
        with pytest.raises(DirectoryNotFoundError):
            collect_images([tmp_path / "nowhere"])


class TestMain:
    """Tests for the main command."""

    def test_captions_directory_without_vision(self, photo_dir):
        result = runner.invoke(app, ["--no-vision", "--style", "factual", str(photo_dir)])

        assert result.exit_code == 0
        assert "Found 2 image files" in result.output
        assert "red.png" in result.output
        assert "Composition:" in result.output
        assert "Caption Summary" in result.output

    def test_requires_paths(self):
        result = runner.invoke(app, [])

        assert result.exit_code == 1
        assert "At least one image or directory is required" in result.output

    def test_rejects_placeholder_style(self, photo_dir):
        result = runner.invoke(app, ["--style", "pending", str(photo_dir)])

        assert result.exit_code == 1

    def test_missing_path_exits(self, tmp_path):
        result = runner.invoke(app, ["--no-vision", str(tmp_path / "nowhere")])

        assert result.exit_code == 1
        assert "Error:" in result.output

    def test_empty_directory(self, tmp_path):
        result = runner.invoke(app, ["--no-vision", str(tmp_path)])

        assert result.exit_code == 0
        assert "No image files found" in result.output

    def test_conditions_report(self):
        result = runner.invoke(app, ["--conditions"])

        assert result.exit_code == 0
        assert "Bypass Vision" in result.output

    def test_connection_check(self, monkeypatch):
        monkeypatch.setattr(cli.OllamaVisionBackend, "test_connection", lambda self: False)

        result = runner.invoke(app, ["--test", "--host", "http://ollama.local:11434"])

        assert result.exit_code == 0
        assert "connection failed" in result.output
