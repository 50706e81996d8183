"""Logging helpers shared by the review pipeline."""

from __future__ import annotations

import os

_TRUTHY = ("1", "true", "yes")


def _dbg(msg: str) -> None:
    if os.getenv("UTR_REVIEW_DEBUG") in _TRUTHY:
        print(f"[debug] {msg}", flush=True)


def _log_step(msg: str) -> None:
    """
    Verbose progress logging for long-running scrapes and recomputes.
    Enabled when UTR_REVIEW_PROGRESS (or UTR_REVIEW_DEBUG) is set.
    """
    if os.getenv("UTR_REVIEW_PROGRESS") in _TRUTHY or os.getenv("UTR_REVIEW_DEBUG") in _TRUTHY:
        print(f"[progress] {msg}", flush=True)
