from pathlib import Path

import pytest

from vnscript.data.errors import DataLoadError, ScriptParseError
from vnscript.data.repositories import ScriptRepository
from vnscript.domain.defs import DialogueInstruction


def test_default_script_loads_scenes() -> None:
    repo = ScriptRepository()

    assert repo.names() == ["intro", "market", "inn", "lighthouse"]
    assert isinstance(repo.get("lighthouse").instructions[0], DialogueInstruction)


def test_repository_reads_from_base_path(tmp_path: Path) -> None:
    (tmp_path / "story.yaml").write_text("opening:\n  - Hello\n", encoding="utf-8")
    repo = ScriptRepository("story.yaml", tmp_path)

    assert [scene.name for scene in repo.all()] == ["opening"]


def test_missing_file_raises_data_load_error(tmp_path: Path) -> None:
    repo = ScriptRepository("absent.yaml", tmp_path)

    with pytest.raises(DataLoadError):
        repo.all()


def test_invalid_document_raises_parse_error(tmp_path: Path) -> None:
    (tmp_path / "bad.yaml").write_text("opening:\n  - 42\n", encoding="utf-8")
    repo = ScriptRepository("bad.yaml", tmp_path)

    with pytest.raises(ScriptParseError) as excinfo:
        repo.names()
    assert excinfo.value.file == "bad.yaml"


def test_unknown_scene_raises_key_error(tmp_path: Path) -> None:
    (tmp_path / "story.yaml").write_text("opening:\n  - Hello\n", encoding="utf-8")

    with pytest.raises(KeyError):
        ScriptRepository("story.yaml", tmp_path).get("missing")
