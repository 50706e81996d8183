from __future__ import annotations

import csv
import io
import json
from pathlib import Path
from typing import Any, List, Optional, Sequence

from utr_review.season_stats import SeasonStats


def _fmt_rating(value: float) -> str:
    return f"{value:.2f}" if value else ""


def _result(won: Optional[bool]) -> str:
    if won is True:
        return "Win"
    if won is False:
        return "Loss"
    return ""


def season_rows(stats: SeasonStats, *, player_name: str = "", rating: Optional[float] = None) -> List[Sequence[Any]]:
    rows: List[Sequence[Any]] = [
        ["Year", "Player Name", "UTR", "Wins", "Losses", "Win %", "Games Won", "Games Lost", "Games Win %"],
        [
            stats.season or "",
            player_name,
            _fmt_rating(rating) if rating else "",
            stats.record.won,
            stats.record.lost,
            stats.record.pct,
            stats.games_record.won,
            stats.games_record.lost,
            stats.games_record.pct,
        ],
    ]
    if stats.matches:
        rows.append([])
        rows.append(["Matches:"])
        rows.append(["Date", "Opponent", "Result", "Score", "UTR", "Opponent UTR", "UTR Diff"])
        for m in stats.matches:
            diff = f"{m.rating_diff:.2f}" if m.my_rating and m.opponent_rating else ""
            rows.append(
                [
                    m.date,
                    m.opponent_name,
                    _result(m.won),
                    m.score,
                    _fmt_rating(m.my_rating),
                    _fmt_rating(m.opponent_rating),
                    diff,
                ]
            )
    if stats.frequent_opponents:
        rows.append([])
        rows.append(["Frequent Opponents:"])
        rows.append(["Opponent", "Matches", "Record", "Games Record", "UTR"])
        for o in stats.frequent_opponents:
            rows.append([o.name, o.played, o.record, o.games_record, _fmt_rating(o.rating)])
    return rows


def season_to_csv(stats: SeasonStats, *, player_name: str = "", rating: Optional[float] = None) -> str:
    buf = io.StringIO()
    writer = csv.writer(buf, lineterminator="\n")
    writer.writerows(season_rows(stats, player_name=player_name, rating=rating))
    return buf.getvalue().rstrip("\n")


def write_json(path: Path, payload: Any) -> Path:
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(payload, ensure_ascii=False, indent=2), encoding="utf-8")
    return path


def write_csv(path: Path, stats: SeasonStats, *, player_name: str = "", rating: Optional[float] = None) -> Path:
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(season_to_csv(stats, player_name=player_name, rating=rating) + "\n", encoding="utf-8")
    return path
