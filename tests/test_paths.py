from pathlib import Path

from vnscript.data import paths


def test_get_scripts_path_base_path(tmp_path: Path) -> None:
    assert paths.get_scripts_path(tmp_path) == tmp_path


def test_get_scripts_path_source_repo_exists() -> None:
    scripts_path = paths.get_scripts_path()
    assert scripts_path.name == "scripts"
    assert (scripts_path / "script.yaml").exists()
