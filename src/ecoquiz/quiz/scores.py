"""Score ranking and persistence for finished quiz sessions.

Records are ranked by score (higher first) and then by elapsed time (lower
first). On a full tie the record already stored wins, so the ordering is
reproducible regardless of how often the same result is submitted.

Two persistence policies are available:

``per_player``
    One entry per player name. A player's entry is replaced only by a
    strictly better result; a first result is stored only when it scored at
    least one point (unless ``record_zero_scores`` is set).
``global_best``
    A single record holding the best result seen so far.
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
import threading
import time
from dataclasses import dataclass
from datetime import timedelta
from enum import Enum
from pathlib import Path
from typing import Any, Mapping, MutableMapping, Protocol

__all__ = [
    "DEFAULT_SCORES_KEY",
    "JsonFileKeyValueStore",
    "KeyValueStore",
    "MemoryKeyValueStore",
    "ScorePolicy",
    "ScoreRecord",
    "ScoreStore",
    "ScoreStoreError",
    "is_better",
    "rank_key",
]

logger = logging.getLogger(__name__)

DEFAULT_SCORES_KEY = "quiz_records"
_LOCK_TIMEOUT_SECONDS = 5.0


class ScoreStoreError(RuntimeError):
    """Raised when score persistence or decoding fails."""


@dataclass(frozen=True)
class ScoreRecord:
    """Result of one completed quiz session."""

    player_name: str
    score: int
    elapsed_seconds: float
    completed_at: str

    def __post_init__(self) -> None:
        if self.score < 0:
            raise ValueError("score must be non-negative")
        if self.elapsed_seconds < 0:
            raise ValueError("elapsed_seconds must be non-negative")

    @property
    def elapsed(self) -> timedelta:
        return timedelta(seconds=self.elapsed_seconds)

    def to_dict(self) -> MutableMapping[str, Any]:
        return {
            "name": self.player_name,
            "score": self.score,
            "time": self.elapsed_seconds,
            "date": self.completed_at,
        }

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any]) -> "ScoreRecord":
        try:
            name = payload["name"]
            score = payload["score"]
            elapsed = payload["time"]
        except KeyError as exc:
            raise ScoreStoreError(
                f"Score record missing required field: {exc}"
            ) from exc
        if not isinstance(name, str):
            raise ScoreStoreError("Score record name must be a string.")
        if isinstance(score, bool) or not isinstance(score, int):
            raise ScoreStoreError("Score record score must be an integer.")
        if isinstance(elapsed, bool) or not isinstance(elapsed, (int, float)):
            raise ScoreStoreError("Score record time must be a number.")
        try:
            return cls(
                player_name=name,
                score=score,
                elapsed_seconds=float(elapsed),
                completed_at=str(payload.get("date") or ""),
            )
        except ValueError as exc:
            raise ScoreStoreError(f"Invalid score record: {exc}") from exc


def rank_key(record: ScoreRecord) -> tuple[int, float]:
    """Sort key placing the best record first."""

    return (-record.score, record.elapsed_seconds)


def is_better(candidate: ScoreRecord, incumbent: ScoreRecord | None) -> bool:
    """Return ``True`` when ``candidate`` strictly beats ``incumbent``."""

    if incumbent is None:
        return True
    if candidate.score != incumbent.score:
        return candidate.score > incumbent.score
    return candidate.elapsed_seconds < incumbent.elapsed_seconds


class ScorePolicy(Enum):
    """How completed sessions are retained."""

    PER_PLAYER = "per_player"
    GLOBAL_BEST = "global_best"

    @classmethod
    def from_value(cls, value: str) -> "ScorePolicy":
        normalized = value.strip().lower()
        for member in cls:
            if member.value == normalized:
                return member
        expected = ", ".join(member.value for member in cls)
        raise ValueError(
            f"Unknown score policy '{value}'. Expected one of: {expected}."
        )


class KeyValueStore(Protocol):
    """Durable string-keyed storage."""

    def get(self, key: str) -> str | None:
        """Return the value stored at ``key`` or ``None``."""

    def set(self, key: str, value: str) -> None:
        """Store ``value`` at ``key``."""

    def remove(self, key: str) -> None:
        """Delete ``key``; missing keys are ignored."""


class MemoryKeyValueStore:
    """Dictionary-backed store for tests and throwaway sessions."""

    def __init__(self, initial: Mapping[str, str] | None = None) -> None:
        self._data: dict[str, str] = dict(initial or {})

    def get(self, key: str) -> str | None:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        self._data[key] = value

    def remove(self, key: str) -> None:
        self._data.pop(key, None)

    def keys(self) -> tuple[str, ...]:
        return tuple(self._data)


class JsonFileKeyValueStore:
    """Persist key/value pairs in a single JSON object file.

    Writes go through an exclusive lock file and an atomic replace so a
    crashed or concurrent writer never leaves a truncated file behind.
    """

    def __init__(self, path: Path) -> None:
        self._path = path
        self._lock_path = path.with_name(path.name + ".lock")

    @property
    def path(self) -> Path:
        return self._path

    def get(self, key: str) -> str | None:
        value = self._read().get(key)
        return value if isinstance(value, str) else None

    def set(self, key: str, value: str) -> None:
        try:
            with _FileLock(self._lock_path):
                data = self._read()
                data[key] = value
                _atomic_write_json(self._path, data)
        except OSError as exc:
            raise ScoreStoreError(
                f"Failed to write score file: {self._path} ({exc})"
            ) from exc

    def remove(self, key: str) -> None:
        try:
            with _FileLock(self._lock_path):
                data = self._read()
                if key not in data:
                    return
                del data[key]
                _atomic_write_json(self._path, data)
        except OSError as exc:
            raise ScoreStoreError(
                f"Failed to write score file: {self._path} ({exc})"
            ) from exc

    def _read(self) -> dict[str, Any]:
        if not self._path.is_file():
            return {}
        try:
            text = self._path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as exc:
            raise ScoreStoreError(
                f"Failed to read score file: {self._path} ({exc})"
            ) from exc
        try:
            payload = json.loads(text)
        except json.JSONDecodeError as exc:
            raise ScoreStoreError(
                f"Failed to parse score file: {self._path}"
            ) from exc
        if not isinstance(payload, dict):
            raise ScoreStoreError(
                f"Score file must contain a JSON object: {self._path}"
            )
        return payload


class ScoreStore:
    """Rank and persist :class:`ScoreRecord` entries in a key/value store."""

    def __init__(
        self,
        kv: KeyValueStore,
        *,
        policy: ScorePolicy = ScorePolicy.PER_PLAYER,
        key: str = DEFAULT_SCORES_KEY,
        record_zero_scores: bool = False,
    ) -> None:
        self._kv = kv
        self._policy = policy
        self._key = key
        self._record_zero_scores = record_zero_scores
        self._lock = threading.Lock()

    @property
    def policy(self) -> ScorePolicy:
        return self._policy

    def record(self, entry: ScoreRecord) -> bool:
        """Store ``entry`` according to the policy.

        Returns ``True`` when the persisted value changed.
        """

        with self._lock:
            if self._policy is ScorePolicy.GLOBAL_BEST:
                stored = self._record_global_best(entry)
            else:
                stored = self._record_per_player(entry)
        logger.info(
            "Score submitted",
            extra={
                "player": entry.player_name,
                "score": entry.score,
                "elapsed_seconds": entry.elapsed_seconds,
                "stored": stored,
                "policy": self._policy.value,
            },
        )
        return stored

    def query_best(self) -> ScoreRecord | None:
        best: ScoreRecord | None = None
        for record in self._load():
            if is_better(record, best):
                best = record
        return best

    def records(self) -> list[ScoreRecord]:
        """Return every stored record, best first."""

        # sorted() is stable, so full ties keep their arrival order.
        return sorted(self._load(), key=rank_key)

    def clear(self) -> None:
        with self._lock:
            self._kv.remove(self._key)

    def _record_global_best(self, entry: ScoreRecord) -> bool:
        current = self._load()
        incumbent = min(current, key=rank_key) if current else None
        if not is_better(entry, incumbent):
            return False
        payload = json.dumps(entry.to_dict(), ensure_ascii=False)
        self._kv.set(self._key, payload)
        return True

    def _record_per_player(self, entry: ScoreRecord) -> bool:
        current = self._load()
        for position, existing in enumerate(current):
            if existing.player_name != entry.player_name:
                continue
            if not is_better(entry, existing):
                return False
            current[position] = entry
            self._save_list(current)
            return True
        if entry.score <= 0 and not self._record_zero_scores:
            return False
        current.append(entry)
        self._save_list(current)
        return True

    def _save_list(self, records: list[ScoreRecord]) -> None:
        payload = [record.to_dict() for record in records]
        self._kv.set(self._key, json.dumps(payload, ensure_ascii=False))

    def _load(self) -> list[ScoreRecord]:
        raw = self._kv.get(self._key)
        if raw is None:
            return []
        try:
            payload = json.loads(raw)
        except json.JSONDecodeError as exc:
            raise ScoreStoreError(
                f"Stored scores under '{self._key}' are not valid JSON."
            ) from exc
        if isinstance(payload, Mapping):
            return [ScoreRecord.from_dict(payload)]
        if not isinstance(payload, list):
            raise ScoreStoreError(
                f"Stored scores under '{self._key}' must be a list or object."
            )
        records: list[ScoreRecord] = []
        for item in payload:
            if not isinstance(item, Mapping):
                raise ScoreStoreError("Score entries must be JSON objects.")
            records.append(ScoreRecord.from_dict(item))
        return records


class _FileLock:
    """Simple filesystem lock using exclusive file creation."""

    def __init__(self, path: Path) -> None:
        self._path = path

    def __enter__(self) -> "_FileLock":
        self._path.parent.mkdir(parents=True, exist_ok=True)
        deadline = time.monotonic() + _LOCK_TIMEOUT_SECONDS
        while True:
            try:
                fd = os.open(
                    self._path,
                    os.O_CREAT | os.O_EXCL | os.O_WRONLY,
                )
                os.close(fd)
                return self
            except FileExistsError:
                if time.monotonic() > deadline:
                    raise ScoreStoreError(
                        f"Timed out waiting for score lock: {self._path}"
                    )
                time.sleep(0.05)

    def __exit__(self, exc_type, exc, tb) -> None:  # noqa: D401
        self._path.unlink(missing_ok=True)


def _atomic_write_json(path: Path, payload: Mapping[str, Any]) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    handle = tempfile.NamedTemporaryFile(
        "w",
        delete=False,
        encoding="utf-8",
        dir=str(path.parent),
    )
    try:
        json.dump(
            payload, handle, indent=2, sort_keys=True, ensure_ascii=False
        )
        handle.flush()
        os.fsync(handle.fileno())
    finally:
        handle.close()
    try:
        os.replace(handle.name, path)
    except OSError:
        Path(handle.name).unlink(missing_ok=True)
        raise
    try:
        path.chmod(0o600)
    except PermissionError:  # pragma: no cover - depends on filesystem
        pass
