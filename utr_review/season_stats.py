"""
Season aggregation.

`SeasonFold` folds normalized matches one at a time, in date order, into
running counters; `snapshot()` freezes the counters into a `SeasonStats`.
Folding a prefix and then the rest gives the same snapshot as folding the
whole list, so callers may feed matches incrementally.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Any, Dict, List, Optional, Sequence, Tuple

from utr_review.logging_utils import _dbg
from utr_review.match_normalizer import Match, match_to_dict
from utr_review.score_decoder import MINE, RegularSet, SuperTiebreak, TiebreakSet, tally_sets

MONTH_LABELS = ("Jan", "Feb", "Mar", "Apr", "May", "Jun", "Jul", "Aug", "Sep", "Oct", "Nov", "Dec")


def _pct(part: int, total: int) -> int:
    # Half-up rounding, so 62.5 reads as 63.
    if total <= 0:
        return 0
    return int(part * 100 / total + 0.5)


@dataclass(frozen=True)
class WinLoss:
    won: int = 0
    lost: int = 0

    @property
    def total(self) -> int:
        return self.won + self.lost

    @property
    def pct(self) -> int:
        return _pct(self.won, self.total)

    def bump(self, won: bool) -> "WinLoss":
        return WinLoss(self.won + 1, self.lost) if won else WinLoss(self.won, self.lost + 1)

    def to_dict(self) -> Dict[str, int]:
        return {"won": self.won, "lost": self.lost, "winPct": self.pct}


@dataclass
class OpponentAggregate:
    """Head-to-head counters for one opponent (or one opposing doubles team)."""

    key: str
    name: str
    opponent_id: Optional[str] = None
    played: int = 0
    wins: int = 0
    losses: int = 0
    games_won: int = 0
    games_lost: int = 0
    sets_won: int = 0
    sets_lost: int = 0
    rating: float = 0.0

    def add(self, match: Match, games: Tuple[int, int], sets: Tuple[int, int]) -> None:
        self.played += 1
        if match.won is True:
            self.wins += 1
        elif match.won is False:
            self.losses += 1
        self.games_won += games[0]
        self.games_lost += games[1]
        self.sets_won += sets[0]
        self.sets_lost += sets[1]

    @property
    def game_diff(self) -> int:
        return self.games_won - self.games_lost

    @property
    def total_games(self) -> int:
        return self.games_won + self.games_lost

    @property
    def record(self) -> str:
        return f"{self.wins}-{self.losses}"

    @property
    def games_record(self) -> str:
        return f"{self.games_won}-{self.games_lost}"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "key": self.key,
            "name": self.name,
            "opponentId": self.opponent_id,
            "played": self.played,
            "wins": self.wins,
            "losses": self.losses,
            "record": self.record,
            "gamesWon": self.games_won,
            "gamesLost": self.games_lost,
            "gamesRecord": self.games_record,
            "gameDiff": self.game_diff,
            "setsWon": self.sets_won,
            "setsLost": self.sets_lost,
            "rating": self.rating,
        }


@dataclass(frozen=True)
class MonthSummary:
    month: str
    wins: int
    losses: int

    @property
    def label(self) -> str:
        return MONTH_LABELS[int(self.month[5:7]) - 1]

    @property
    def played(self) -> int:
        return self.wins + self.losses

    @property
    def win_pct(self) -> int:
        return _pct(self.wins, self.played)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "month": self.month,
            "label": self.label,
            "wins": self.wins,
            "losses": self.losses,
            "played": self.played,
            "winPct": self.win_pct,
        }


@dataclass(frozen=True)
class HeadToHead:
    quality_wins: Tuple[Match, ...] = ()
    splits: Tuple[OpponentAggregate, ...] = ()


@dataclass(frozen=True)
class SeasonStats:
    player_id: str = ""
    season: int = 0
    record: WinLoss = WinLoss()
    walkovers: int = 0
    unknown_results: int = 0
    vs_higher_rated: WinLoss = WinLoss()
    vs_lower_rated: WinLoss = WinLoss()
    sets_record: WinLoss = WinLoss()
    games_record: WinLoss = WinLoss()
    bagels_given: int = 0
    bagels_received: int = 0
    breadsticks_given: int = 0
    breadsticks_received: int = 0
    tiebreaks: WinLoss = WinLoss()
    super_tiebreaks: WinLoss = WinLoss()
    deciding_sets: WinLoss = WinLoss()
    won_with_fewer_games: int = 0
    lost_with_more_games: int = 0
    comebacks: int = 0
    chokes: int = 0
    current_streak: int = 0
    longest_win_streak: int = 0
    longest_loss_streak: int = 0
    monthly: Tuple[MonthSummary, ...] = ()
    best_month: Optional[MonthSummary] = None
    worst_month: Optional[MonthSummary] = None
    opponents: Dict[str, OpponentAggregate] = field(default_factory=dict)
    partners: Dict[str, OpponentAggregate] = field(default_factory=dict)
    matches: Tuple[Match, ...] = ()
    # Filled in by the callout ranker.
    nemesis: Optional[OpponentAggregate] = None
    dominated_opponent: Optional[OpponentAggregate] = None
    closest_rival: Optional[OpponentAggregate] = None
    best_win: Optional[Match] = None
    worst_loss: Optional[Match] = None
    most_frequent_partner: Optional[OpponentAggregate] = None
    frequent_opponents: Tuple[OpponentAggregate, ...] = ()
    partner_records: Tuple[OpponentAggregate, ...] = ()
    head_to_head: HeadToHead = HeadToHead()
    rating_summary: Optional[Dict[str, Any]] = None


def _month_rank_best(m: MonthSummary) -> Tuple[float, int, str]:
    return (-m.wins / m.played, -m.played, m.month)


def _month_rank_worst(m: MonthSummary) -> Tuple[float, int, str]:
    return (m.wins / m.played, -m.played, m.month)


def _rated(match: Match, exclude_zero_ratings: bool) -> bool:
    if not exclude_zero_ratings:
        return True
    return match.my_rating > 0 and match.opponent_rating > 0


def _went_to_decider(match: Match) -> bool:
    sets = match.sets
    if not sets:
        return False
    if isinstance(sets[-1], SuperTiebreak):
        return True
    mine, theirs = tally_sets(sets[:-1])
    return mine >= 1 and theirs >= 1


class SeasonFold:
    def __init__(self, *, exclude_zero_ratings: bool = False) -> None:
        self.exclude_zero_ratings = exclude_zero_ratings
        self._c: Dict[str, int] = {}
        self._wl: Dict[str, WinLoss] = {}
        self._win_run = 0
        self._loss_run = 0
        self._months: Dict[str, List[int]] = {}
        self._opponents: Dict[str, OpponentAggregate] = {}
        self._partners: Dict[str, OpponentAggregate] = {}
        self._matches: List[Match] = []
        self._last_date: Optional[str] = None

    def _inc(self, name: str, by: int = 1) -> None:
        self._c[name] = self._c.get(name, 0) + by

    def _bump(self, name: str, won: bool) -> None:
        self._wl[name] = self._wl.get(name, WinLoss()).bump(won)

    def _add_games(self, name: str, games: Tuple[int, int]) -> None:
        cur = self._wl.get(name, WinLoss())
        self._wl[name] = WinLoss(cur.won + games[0], cur.lost + games[1])

    def add(self, match: Match) -> None:
        if self._last_date is not None and match.date < self._last_date:
            _dbg(f"season fold: {match.date} arrived after {self._last_date}; streaks assume date order")
        self._last_date = match.date

        if match.is_walkover:
            self._inc("walkovers")
            return
        self._matches.append(match)

        won = match.won
        if won is None:
            self._inc("unknown_results")
        else:
            self._bump("record", won)
            if won:
                self._win_run += 1
                self._loss_run = 0
                self._c["longest_win_streak"] = max(self._c.get("longest_win_streak", 0), self._win_run)
            else:
                self._loss_run += 1
                self._win_run = 0
                self._c["longest_loss_streak"] = max(self._c.get("longest_loss_streak", 0), self._loss_run)
            if _rated(match, self.exclude_zero_ratings):
                if match.opponent_rating > match.my_rating:
                    self._bump("vs_higher_rated", won)
                else:
                    self._bump("vs_lower_rated", won)
            bucket = self._months.setdefault(match.month, [0, 0])
            bucket[0 if won else 1] += 1

        games_won = games_lost = 0
        sets_won, sets_lost = tally_sets(match.sets)
        for s in match.sets:
            g = s.games()
            games_won += g[0]
            games_lost += g[1]
            if isinstance(s, SuperTiebreak):
                self._bump("super_tiebreaks", s.winner == MINE)
            elif isinstance(s, TiebreakSet):
                self._bump("tiebreaks", s.winner == MINE)
            elif isinstance(s, RegularSet):
                self._count_bagels(s)
        if match.sets:
            self._add_games("sets_record", (sets_won, sets_lost))
            self._add_games("games_record", (games_won, games_lost))

        if won is not None and match.sets:
            if won and games_won < games_lost:
                self._inc("won_with_fewer_games")
            elif not won and games_won > games_lost:
                self._inc("lost_with_more_games")
            if _went_to_decider(match):
                self._bump("deciding_sets", won)
            if len(match.sets) >= 2:
                first_won = match.sets[0].winner == MINE
                if won and not first_won:
                    self._inc("comebacks")
                elif not won and first_won:
                    self._inc("chokes")

        games = (games_won, games_lost)
        sets = (sets_won, sets_lost)
        key = match.opponent_key
        if key is not None:
            agg = self._opponents.get(key)
            if agg is None:
                agg = OpponentAggregate(key=key, name=match.opponent_name, opponent_id=match.opponent_id)
                self._opponents[key] = agg
            agg.add(match, games, sets)
            if match.opponent_rating > 0:
                agg.rating = match.opponent_rating
        if match.partner_name:
            partner = self._partners.get(match.partner_name)
            if partner is None:
                partner = OpponentAggregate(key=match.partner_name, name=match.partner_name)
                self._partners[match.partner_name] = partner
            partner.add(match, games, sets)

    def _count_bagels(self, s: RegularSet) -> None:
        pair = (s.my, s.opp)
        if pair == (6, 0):
            self._inc("bagels_given")
        elif pair == (0, 6):
            self._inc("bagels_received")
        elif pair == (6, 1):
            self._inc("breadsticks_given")
        elif pair == (1, 6):
            self._inc("breadsticks_received")

    def extend(self, matches: Sequence[Match]) -> "SeasonFold":
        for m in matches:
            self.add(m)
        return self

    def snapshot(self) -> SeasonStats:
        months = tuple(
            MonthSummary(month=k, wins=v[0], losses=v[1]) for k, v in sorted(self._months.items()) if v[0] + v[1] > 0
        )
        c = self._c
        wl = self._wl
        return SeasonStats(
            record=wl.get("record", WinLoss()),
            walkovers=c.get("walkovers", 0),
            unknown_results=c.get("unknown_results", 0),
            vs_higher_rated=wl.get("vs_higher_rated", WinLoss()),
            vs_lower_rated=wl.get("vs_lower_rated", WinLoss()),
            sets_record=wl.get("sets_record", WinLoss()),
            games_record=wl.get("games_record", WinLoss()),
            bagels_given=c.get("bagels_given", 0),
            bagels_received=c.get("bagels_received", 0),
            breadsticks_given=c.get("breadsticks_given", 0),
            breadsticks_received=c.get("breadsticks_received", 0),
            tiebreaks=wl.get("tiebreaks", WinLoss()),
            super_tiebreaks=wl.get("super_tiebreaks", WinLoss()),
            deciding_sets=wl.get("deciding_sets", WinLoss()),
            won_with_fewer_games=c.get("won_with_fewer_games", 0),
            lost_with_more_games=c.get("lost_with_more_games", 0),
            comebacks=c.get("comebacks", 0),
            chokes=c.get("chokes", 0),
            current_streak=self._win_run if self._win_run else -self._loss_run,
            longest_win_streak=c.get("longest_win_streak", 0),
            longest_loss_streak=c.get("longest_loss_streak", 0),
            monthly=months,
            best_month=min(months, key=_month_rank_best, default=None),
            worst_month=min(months, key=_month_rank_worst, default=None),
            opponents={k: replace(v) for k, v in self._opponents.items()},
            partners={k: replace(v) for k, v in self._partners.items()},
            matches=tuple(self._matches),
        )


def aggregate(matches: Sequence[Match], *, exclude_zero_ratings: bool = False) -> SeasonStats:
    """Fold `matches` (date ascending) into a SeasonStats. The input is never re-sorted."""
    return SeasonFold(exclude_zero_ratings=exclude_zero_ratings).extend(matches).snapshot()


def _opt(value: Any) -> Any:
    return value.to_dict() if value is not None else None


def _match_callout(match: Optional[Match]) -> Optional[Dict[str, Any]]:
    if match is None:
        return None
    return {
        "date": match.date,
        "opponent": match.opponent_name,
        "opponentRating": match.opponent_rating,
        "myRating": match.my_rating,
        "ratingDiff": match.rating_diff,
        "score": match.score,
    }


def season_to_dict(stats: SeasonStats) -> Dict[str, Any]:
    return {
        "playerId": stats.player_id,
        "season": stats.season,
        "record": {
            "wins": stats.record.won,
            "losses": stats.record.lost,
            "walkovers": stats.walkovers,
            "unknown": stats.unknown_results,
            "winPct": stats.record.pct,
        },
        "vsHigherRated": stats.vs_higher_rated.to_dict(),
        "vsLowerRated": stats.vs_lower_rated.to_dict(),
        "setsRecord": stats.sets_record.to_dict(),
        "gamesRecord": stats.games_record.to_dict(),
        "bagels": {"given": stats.bagels_given, "received": stats.bagels_received},
        "breadsticks": {"given": stats.breadsticks_given, "received": stats.breadsticks_received},
        "tiebreaks": stats.tiebreaks.to_dict(),
        "superTiebreaks": stats.super_tiebreaks.to_dict(),
        "decidingSets": stats.deciding_sets.to_dict(),
        "gamesDifferential": {
            "wonWithFewer": stats.won_with_fewer_games,
            "lostWithMore": stats.lost_with_more_games,
        },
        "comebacks": {"won": stats.comebacks, "lost": stats.chokes},
        "currentStreak": stats.current_streak,
        "longestWinStreak": stats.longest_win_streak,
        "longestLossStreak": stats.longest_loss_streak,
        "monthlyBreakdown": [m.to_dict() for m in stats.monthly],
        "bestMonth": _opt(stats.best_month),
        "worstMonth": _opt(stats.worst_month),
        "opponents": {k: v.to_dict() for k, v in stats.opponents.items()},
        "partners": {k: v.to_dict() for k, v in stats.partners.items()},
        "matches": [match_to_dict(m) for m in stats.matches],
        "nemesis": _opt(stats.nemesis),
        "dominatedOpponent": _opt(stats.dominated_opponent),
        "closestRival": _opt(stats.closest_rival),
        "bestWin": _match_callout(stats.best_win),
        "worstLoss": _match_callout(stats.worst_loss),
        "mostFrequentPartner": _opt(stats.most_frequent_partner),
        "frequentOpponents": [o.to_dict() for o in stats.frequent_opponents],
        "partnerRecords": [p.to_dict() for p in stats.partner_records],
        "h2hNetwork": {
            "qualityWins": [_match_callout(m) for m in stats.head_to_head.quality_wins],
            "splits": [o.to_dict() for o in stats.head_to_head.splits],
        },
        "ratingSummary": stats.rating_summary,
    }
