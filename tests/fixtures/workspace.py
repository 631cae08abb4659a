"""Quiz workspace helpers shared by tests."""

from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import Path
from typing import Any, List

from ecoquiz.core import workspace as workspace_mod
from ecoquiz.quiz.scores import JsonFileKeyValueStore, ScoreRecord, ScoreStore


@dataclass
class QuizWorkspace:
    """Workspace rooted in a tmp directory with config and score helpers."""

    root: Path

    @property
    def config_path(self) -> Path:
        return self.root / "config" / "quiz.toml"

    @property
    def scores_path(self) -> Path:
        return self.root / "scores" / "scores.json"

    @property
    def log_path(self) -> Path:
        return self.root / "logs" / "quiz.log"

    def layout(self) -> workspace_mod.WorkspaceLayout:
        return workspace_mod.ensure_workspace(path=self.root)

    def write_config(self, content: str) -> Path:
        self.config_path.parent.mkdir(parents=True, exist_ok=True)
        self.config_path.write_text(content.strip() + "\n", encoding="utf-8")
        return self.config_path

    def store(self) -> ScoreStore:
        return ScoreStore(JsonFileKeyValueStore(self.scores_path))

    def seed(self, *records: ScoreRecord) -> None:
        store = self.store()
        for record in records:
            store.record(record)

    def log_records(self) -> List[dict[str, Any]]:
        lines = self.log_path.read_text(encoding="utf-8").splitlines()
        return [json.loads(line) for line in lines if line.strip()]
