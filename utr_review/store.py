"""
File-backed persistence for season reviews.

Records live as one JSON file per (player, season) under the data dir and
carry a status of pending, completed or failed plus timestamps.
"""

from __future__ import annotations

import json
import re
import time
from pathlib import Path
from typing import Any, Callable, Dict, Optional

from utr_review.logging_utils import _dbg

STATUS_PENDING = "pending"
STATUS_COMPLETED = "completed"
STATUS_FAILED = "failed"
STATUSES = (STATUS_PENDING, STATUS_COMPLETED, STATUS_FAILED)

_SAFE_ID_RE = re.compile(r"^[A-Za-z0-9_-]+$")


class StoreError(RuntimeError):
    pass


def _now_iso() -> str:
    return time.strftime("%Y-%m-%dT%H:%M:%SZ", time.gmtime())


def _dump_json(path: Path, payload: Any) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(payload, ensure_ascii=False, indent=2), encoding="utf-8")


def _load_json(path: Path) -> Any:
    try:
        return json.loads(path.read_text(encoding="utf-8"))
    except FileNotFoundError:
        return None
    except ValueError as ex:
        raise StoreError(f"code=corrupt_record path={path} error={ex}") from ex


class ReviewStore:
    def __init__(self, root: Path) -> None:
        self.root = Path(root)

    def _path(self, player_id: str, season: int) -> Path:
        pid = str(player_id).strip()
        if not _SAFE_ID_RE.match(pid):
            raise StoreError(f"code=bad_player_id player_id={player_id!r}")
        return self.root / "reviews" / pid / f"{int(season)}.json"

    def get(self, player_id: str, season: int) -> Optional[Dict[str, Any]]:
        data = _load_json(self._path(player_id, season))
        return data if isinstance(data, dict) else None

    def put(
        self,
        player_id: str,
        season: int,
        *,
        status: str,
        data: Any = None,
        error: Optional[str] = None,
    ) -> Dict[str, Any]:
        if status not in STATUSES:
            raise StoreError(f"code=bad_status status={status!r}")
        path = self._path(player_id, season)
        prev = self.get(player_id, season) or {}
        now = _now_iso()
        record = {
            "playerId": str(player_id),
            "season": int(season),
            "status": status,
            "data": data,
            "error": error,
            "createdAt": prev.get("createdAt") or now,
            "updatedAt": now,
        }
        _dump_json(path, record)
        _dbg(f"store: {player_id}/{season} -> {status}")
        return record

    def mark_pending(self, player_id: str, season: int) -> Dict[str, Any]:
        return self.put(player_id, season, status=STATUS_PENDING)

    def mark_completed(self, player_id: str, season: int, data: Any) -> Dict[str, Any]:
        return self.put(player_id, season, status=STATUS_COMPLETED, data=data)

    def mark_failed(self, player_id: str, season: int, error: str) -> Dict[str, Any]:
        return self.put(player_id, season, status=STATUS_FAILED, error=error)


class TTLCache:
    """
    Key-value cache with a per-entry time-to-live.

    With a `path`, entries are loaded from and written back to a JSON file so
    they survive between runs.
    """

    def __init__(
        self,
        ttl_s: float,
        *,
        path: Optional[Path] = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.ttl_s = float(ttl_s)
        self.path = Path(path) if path is not None else None
        self._clock = clock
        self._entries: Dict[str, Dict[str, Any]] = {}
        if self.path is not None:
            raw = _load_json(self.path)
            if isinstance(raw, dict):
                self._entries = {str(k): v for k, v in raw.items() if isinstance(v, dict) and "ts" in v}

    def get(self, key: str) -> Any:
        entry = self._entries.get(key)
        if entry is None:
            return None
        try:
            ts = float(entry.get("ts"))
        except Exception:
            ts = 0.0
        if self._clock() - ts > self.ttl_s:
            self._entries.pop(key, None)
            return None
        return entry.get("value")

    def set(self, key: str, value: Any) -> None:
        self._entries[key] = {"ts": self._clock(), "value": value}
        if self.path is not None:
            _dump_json(self.path, self._entries)

    def __contains__(self, key: str) -> bool:
        return self.get(key) is not None

    def __len__(self) -> int:
        return len(self._entries)
