"""Unit tests for data models."""

import pytest
import yaml
from pydantic import ValidationError

from tubemagic.models import (
    AssetKind,
    ImageOutput,
    ImageSize,
    Project,
    Scene,
    VideoOutput,
)

from conftest import make_package


class TestProject:
    """Tests for Project construction from generated packages."""

    def test_scene_ids_follow_array_order(self):
        project = Project.from_package(make_package(num_scenes=4), topic="habits")

        assert [s.id for s in project.scenes] == ["scene-0", "scene-1", "scene-2", "scene-3"]
        assert [s.text for s in project.scenes] == [f"Sentence {i}" for i in range(4)]
        assert project.scenes[2].visual_prompt == "Cinematic shot 2"
        assert project.topic == "habits"

    def test_camel_case_fields_are_mapped(self):
        project = Project.from_package(make_package())

        assert project.voice_over.startswith("[energetic]")
        assert project.music_style == "Uplifting lo-fi"
        assert project.youtube_title == "5 Morning Habits That Change Everything"
        assert project.thumbnail_text == "DO THIS EVERY MORNING"
        assert project.hashtags == ["#shorts", "#habits"]

    def test_payload_ids_are_ignored(self):
        payload = make_package(id="from-model")
        payload["scenes"][0]["id"] = "custom"

        project = Project.from_package(payload)

        assert project.id != "from-model"
        assert project.scenes[0].id == "scene-0"

    def test_each_project_gets_a_new_id(self):
        first = Project.from_package(make_package())
        second = Project.from_package(make_package())

        assert first.id != second.id

    def test_missing_field_is_rejected(self):
        payload = make_package()
        del payload["thumbnailText"]

        with pytest.raises(ValidationError):
            Project.from_package(payload)

    def test_empty_scenes_are_rejected(self):
        with pytest.raises(ValidationError):
            Project.from_package(make_package(num_scenes=0))

    def test_scene_lookup(self):
        project = Project.from_package(make_package())

        assert project.scene("scene-1").text == "Sentence 1"
        with pytest.raises(KeyError):
            project.scene("scene-9")

    def test_snapshot_clears_request_state(self):
        project = Project.from_package(make_package())
        project.scenes[0].pending = AssetKind.IMAGE
        project.scenes[0].error = "boom"

        snapshot = project.snapshot()

        assert snapshot.scenes[0].pending is None
        assert snapshot.scenes[0].error is None
        assert project.scenes[0].pending == AssetKind.IMAGE

        snapshot.scenes[1].output = ImageOutput(uri="/tmp/x.png")
        assert project.scenes[1].output is None

    def test_dump_excludes_transient_fields(self):
        project = Project.from_package(make_package())
        project.scenes[0].pending = AssetKind.VIDEO

        data = project.model_dump(mode="json")

        assert "pending" not in data["scenes"][0]
        assert "error" not in data["scenes"][0]
        assert data["youtube_title"] == project.youtube_title

    def test_dump_and_validate_round_trip(self):
        project = Project.from_package(make_package())
        project.scenes[1].output = VideoOutput(uri="/tmp/clip.mp4")

        restored = Project.model_validate(project.model_dump(mode="json"))

        assert restored == project
        assert restored.scenes[1].video_url == "/tmp/clip.mp4"

    def test_to_yaml(self, tmp_path):
        project = Project.from_package(make_package(), topic="habits")
        path = tmp_path / "production.yaml"

        project.to_yaml(path)

        data = yaml.safe_load(path.read_text())
        assert data["youtube_title"] == project.youtube_title
        assert len(data["scenes"]) == 3


class TestScene:
    """Tests for the scene output slot."""

    def test_image_output(self):
        scene = Scene(id="scene-0", text="t", visual_prompt="p", output=ImageOutput(uri="a.png"))

        assert scene.image_url == "a.png"
        assert scene.video_url is None

    def test_video_output(self):
        scene = Scene(id="scene-0", text="t", visual_prompt="p", output=VideoOutput(uri="a.mp4"))

        assert scene.video_url == "a.mp4"
        assert scene.image_url is None

    def test_output_discriminator(self):
        scene = Scene.model_validate(
            {"id": "scene-0", "text": "t", "visualPrompt": "p", "output": {"kind": "video", "uri": "v.mp4"}}
        )

        assert isinstance(scene.output, VideoOutput)

    def test_pending_flags_are_exclusive(self):
        scene = Scene(id="scene-0", text="t", visual_prompt="p", pending=AssetKind.VIDEO)

        assert scene.is_generating_video
        assert not scene.is_generating_image


def test_image_size_tiers():
    assert ImageSize("2K") is ImageSize.K2
    assert [size.label for size in ImageSize] == ["standard", "high", "ultra"]
