"""Test TOML prompt loading."""

import pytest

from tutor.agents.prompt_loader import PromptLoader


def test_bundled_prompts_are_separate() -> None:
    loader = PromptLoader()

    tutor = loader.get_system_prompt("tutor")
    summarizer = loader.get("summarizer", "system")

    assert "시니어 개발자" in tutor
    assert "요약" in summarizer
    assert tutor != summarizer
    assert loader.get("summarizer", "request") == "다음 대화 로그를 요약해줘:"


def test_missing_key_is_empty(tmp_path) -> None:
    (tmp_path / "demo_prompt.toml").write_text('system = "  hello  "\n', encoding="utf-8")
    loader = PromptLoader(base_dir=tmp_path)

    assert loader.get_system_prompt("demo") == "hello"
    assert loader.get("demo", "request") == ""


def test_missing_file_raises(tmp_path) -> None:
    with pytest.raises(FileNotFoundError):
        PromptLoader(base_dir=tmp_path).get_system_prompt("absent")


def test_prompt_file_is_read_once(tmp_path) -> None:
    path = tmp_path / "demo_prompt.toml"
    path.write_text('system = "first"\n', encoding="utf-8")
    loader = PromptLoader(base_dir=tmp_path)
    loader.get_system_prompt("demo")

    path.write_text('system = "second"\n', encoding="utf-8")

    assert loader.get_system_prompt("demo") == "first"
