from __future__ import annotations

import os
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

UTR_BASE_URL = "https://app.utrsports.net"

DEFAULT_MIN_HEAD_TO_HEAD = 2
DEFAULT_CACHE_TTL_S = 7 * 24 * 3600
DEFAULT_MAX_OPPONENTS = 15


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    try:
        return int(raw) if raw not in (None, "") else default
    except Exception:
        return default


def _env_flag(name: str, default: bool = False) -> bool:
    raw = os.getenv(name)
    if raw in (None, ""):
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


def current_season() -> int:
    return int(time.strftime("%Y"))


@dataclass(frozen=True)
class ReviewConfig:
    season: int
    exclude_zero_ratings: bool = False
    min_head_to_head: int = DEFAULT_MIN_HEAD_TO_HEAD
    data_dir: Path = Path("data")
    cache_ttl_s: int = DEFAULT_CACHE_TTL_S
    max_opponents: int = DEFAULT_MAX_OPPONENTS
    utr_email: str = ""
    utr_password: str = ""

    @classmethod
    def from_env(cls, *, season: Optional[int] = None) -> "ReviewConfig":
        return cls(
            season=int(season) if season is not None else _env_int("UTR_REVIEW_SEASON", current_season()),
            exclude_zero_ratings=_env_flag("UTR_REVIEW_EXCLUDE_ZERO_RATINGS"),
            min_head_to_head=max(1, _env_int("UTR_REVIEW_MIN_H2H", DEFAULT_MIN_HEAD_TO_HEAD)),
            data_dir=Path(os.getenv("UTR_REVIEW_DATA_DIR") or "data"),
            cache_ttl_s=max(0, _env_int("UTR_REVIEW_CACHE_TTL_S", DEFAULT_CACHE_TTL_S)),
            max_opponents=max(0, _env_int("UTR_REVIEW_MAX_OPPONENTS", DEFAULT_MAX_OPPONENTS)),
            utr_email=(os.getenv("UTR_EMAIL") or "").strip(),
            utr_password=os.getenv("UTR_PASSWORD") or "",
        )

    @property
    def has_credentials(self) -> bool:
        return bool(self.utr_email and self.utr_password)
