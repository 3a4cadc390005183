"""Repository for parsed script scenes."""
from __future__ import annotations

import logging
from pathlib import Path
from typing import Dict

from vnscript.data.repositories.base import RepositoryBase
from vnscript.data.script_parser import DEFAULT_FILE_NAME, ScriptParser
from vnscript.domain.defs import ParsedScene

logger = logging.getLogger(__name__)


class ScriptRepository(RepositoryBase[ParsedScene]):
    """Loads one YAML script file and caches its scenes by name."""

    def __init__(
        self,
        filename: str = DEFAULT_FILE_NAME,
        base_path: Path | str | None = None,
        *,
        parser: ScriptParser | None = None,
    ) -> None:
        super().__init__(filename, base_path)
        self._parser = parser or ScriptParser()

    def _build(self, raw: object) -> Dict[str, ParsedScene]:
        scenes = self._parser.parse(raw, self._filename)
        logger.info("Loaded %d scenes from %s", len(scenes), self._get_file_path())
        return {scene.name: scene for scene in scenes}
