import json
from pathlib import Path

import vocab_lessons.config as config_module
from vocab_lessons.config import AppConfig, load_config


_MAPPING = {
    "data_root": "data",
    "lessons_file": "data/lessons.json",
    "audio_root": "data/audio",
    "quiz_root": "data/quizzes",
}


def test_paths_resolve_relative_to_base_path(tmp_path: Path) -> None:
    config = AppConfig.from_mapping(_MAPPING, base_path=tmp_path)

    assert config.data_root == (tmp_path / "data").resolve()
    assert config.lessons_file == (tmp_path / "data" / "lessons.json").resolve()
    assert config.audio_root == (tmp_path / "data" / "audio").resolve()
    assert config.quiz_root == (tmp_path / "data" / "quizzes").resolve()
    assert config.audio_root.is_dir()
    assert config.quiz_root.is_dir()


def test_audio_root_falls_back_when_preferred_is_unusable(tmp_path: Path) -> None:
    data = tmp_path / "data"
    data.mkdir()
    preferred_audio = tmp_path / "elsewhere"
    preferred_audio.write_text("not a directory", encoding="utf-8")

    config = AppConfig.from_mapping(
        {**_MAPPING, "audio_root": "elsewhere"},
        base_path=tmp_path,
    )

    expected_fallback = (data / "audio").resolve()
    assert config.audio_root == expected_fallback
    assert expected_fallback.is_dir()


def test_data_root_falls_back_and_relocates_dependent_paths(
    tmp_path: Path, monkeypatch
) -> None:
    home_dir = tmp_path / "home"
    monkeypatch.setattr(config_module.Path, "home", lambda: home_dir)

    preferred_data = tmp_path / "data"
    preferred_data.write_text("not a directory", encoding="utf-8")

    config = AppConfig.from_mapping(_MAPPING, base_path=tmp_path)

    expected_data = (home_dir / ".vocab_lessons" / "data").resolve()
    assert config.data_root == expected_data
    assert config.lessons_file == expected_data / "lessons.json"
    assert config.audio_root == expected_data / "audio"
    assert config.quiz_root == expected_data / "quizzes"
    assert config.audio_root.is_dir()


def test_load_config_honours_environment_override(tmp_path: Path, monkeypatch) -> None:
    config_file = tmp_path / "custom.json"
    config_file.write_text(
        json.dumps(
            {
                "data_root": str(tmp_path / "store"),
                "lessons_file": str(tmp_path / "store" / "index.json"),
                "audio_root": str(tmp_path / "store" / "sound"),
                "quiz_root": str(tmp_path / "store" / "quiz"),
            }
        ),
        encoding="utf-8",
    )
    monkeypatch.setenv(config_module.CONFIG_ENV_VAR, str(config_file))

    config = load_config()

    assert config.lessons_file == (tmp_path / "store" / "index.json").resolve()
    assert config.audio_root == (tmp_path / "store" / "sound").resolve()
