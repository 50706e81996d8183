"""
Decoder for UTR score-card digit runs.

A score card shows each side's games as one run of concatenated digits with
no separators, e.g. "677" vs "363" for 6-3 7-6(3). The same run can hold
regular sets, a 7-6 set followed by the tiebreak sub-score, or a
1-0 / 0-1 decider indicator followed by a super-tiebreak score of 10+.

Decoding scans both runs left to right one digit pair at a time. At each
position an ordered list of matchers is tried (tiebreak signature,
super-tiebreak signature, regular set, fallback) and the first hit wins.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple, Union

from utr_review.logging_utils import _dbg

MINE = "mine"
OPPONENT = "opponent"

SINGLES = "singles"
DOUBLES = "doubles"

UNPARSEABLE_SCORE = "unparseable_score"

_TIEBREAK_PAIRS = {(7, 6), (6, 7)}
_DECIDER_PAIRS = {(1, 0), (0, 1)}
_CONTINUATION_PAIR = (1, 1)
_SUPER_TIEBREAK_MIN = 10
_MAX_POINT_DIGITS = 3


@dataclass(frozen=True)
class RegularSet:
    my: int
    opp: int

    @property
    def winner(self) -> str:
        return MINE if self.my > self.opp else OPPONENT

    def games(self) -> Tuple[int, int]:
        return self.my, self.opp

    def label(self) -> str:
        return f"{self.my}-{self.opp}"


@dataclass(frozen=True)
class TiebreakSet:
    my: int
    opp: int
    loser_points: Optional[int] = None

    @property
    def winner(self) -> str:
        return MINE if self.my > self.opp else OPPONENT

    def games(self) -> Tuple[int, int]:
        return self.my, self.opp

    def label(self) -> str:
        if self.loser_points is None:
            return f"{self.my}-{self.opp}"
        return f"{self.my}-{self.opp}({self.loser_points})"


@dataclass(frozen=True)
class SuperTiebreak:
    winner_side: str
    my_points: Optional[int] = None
    opp_points: Optional[int] = None

    @property
    def winner(self) -> str:
        return self.winner_side

    @property
    def has_score(self) -> bool:
        return self.my_points is not None and self.opp_points is not None

    def games(self) -> Tuple[int, int]:
        # Match tiebreaks never count towards game totals.
        return 0, 0

    def label(self) -> str:
        if self.has_score:
            return f"{self.my_points}-{self.opp_points}"
        return "1-0" if self.winner_side == MINE else "0-1"


SetOutcome = Union[RegularSet, TiebreakSet, SuperTiebreak]


@dataclass(frozen=True)
class DecodedScore:
    sets: Tuple[SetOutcome, ...]
    won: Optional[bool]
    my_sets: int
    opp_sets: int

    @property
    def error_code(self) -> Optional[str]:
        return None if self.sets else UNPARSEABLE_SCORE

    @property
    def score(self) -> str:
        return format_sets(self.sets)


@dataclass(frozen=True)
class _Step:
    outcome: SetOutcome
    consumed: int
    final: bool = False


_Matcher = Callable[[Sequence[int], Sequence[int], int], Optional[_Step]]


def _digits(raw: Optional[str]) -> List[int]:
    return [int(ch) for ch in (raw or "") if ch in "0123456789"]


def _pair(my: Sequence[int], opp: Sequence[int], i: int) -> Optional[Tuple[int, int]]:
    if i < len(my) and i < len(opp):
        return my[i], opp[i]
    return None


def _in_set_range(m: int, o: int) -> bool:
    return 0 <= m <= 7 and 0 <= o <= 7


def _is_plausible_set(m: int, o: int) -> bool:
    if m == o or not _in_set_range(m, o):
        return False
    if (m == 6 and o <= 4) or (o == 6 and m <= 4):
        return True
    if {m, o} in ({7, 5}, {7, 6}):
        return True
    # Short or unfinished sets (4-2, 5-3, ...) still count as played sets.
    return m <= 6 and o <= 6


def _join(ds: Sequence[int]) -> Optional[int]:
    """Points read from a digit run; None when the run is too long to be a tiebreak score."""
    if not ds or len(ds) > _MAX_POINT_DIGITS:
        return None
    return int("".join(str(d) for d in ds))


def _valid_super_tiebreak(a: int, b: int) -> bool:
    return max(a, b) >= _SUPER_TIEBREAK_MIN and abs(a - b) >= 2


def _super_tiebreak_score(rest_my: Sequence[int], rest_opp: Sequence[int]) -> Optional[Tuple[int, int]]:
    """Read the match-tiebreak points from the digits left after the indicator."""
    if not rest_my or not rest_opp:
        return None
    if len(rest_my) > _MAX_POINT_DIGITS or len(rest_opp) > _MAX_POINT_DIGITS:
        return None
    candidates: List[Tuple[Optional[int], Optional[int]]] = []
    if len(rest_opp) >= 2:
        candidates.append((rest_my[-1], _join(rest_opp[:2])))
    if len(rest_my) >= 2:
        candidates.append((_join(rest_my[:2]), rest_opp[-1]))
    candidates.append((_join(rest_my), _join(rest_opp)))
    for my_pts, opp_pts in candidates:
        if my_pts is None or opp_pts is None:
            continue
        if _valid_super_tiebreak(my_pts, opp_pts):
            return my_pts, opp_pts
    return None


def _match_tiebreak(my: Sequence[int], opp: Sequence[int], i: int) -> Optional[_Step]:
    m, o = my[i], opp[i]
    if (m, o) not in _TIEBREAK_PAIRS:
        return None
    nxt = _pair(my, opp, i + 1)
    if nxt is None or not _in_set_range(*nxt):
        return _Step(TiebreakSet(m, o), 1)
    # An in-range pair after 7-6 is read as the tiebreak sub-score even when
    # it could also be the next regular set; a further in-range pair (or the
    # end of the run) does not change that reading.
    m1, o1 = nxt
    loser_points = o1 if m > o else m1
    return _Step(TiebreakSet(m, o, loser_points), 2)


def _match_super_tiebreak(my: Sequence[int], opp: Sequence[int], i: int) -> Optional[_Step]:
    m, o = my[i], opp[i]
    if (m, o) not in _DECIDER_PAIRS:
        return None
    start = i + 1
    if _pair(my, opp, start) == _CONTINUATION_PAIR and _pair(my, opp, start + 1) is not None:
        start += 1
    indicated = MINE if m == 1 else OPPONENT
    score = _super_tiebreak_score(my[start:], opp[start:])
    if score is None:
        return _Step(SuperTiebreak(indicated), 0, final=True)
    my_pts, opp_pts = score
    winner = MINE if my_pts > opp_pts else OPPONENT
    if winner != indicated:
        _dbg(f"super tiebreak {my_pts}-{opp_pts} disagrees with indicator {m}-{o}")
    return _Step(SuperTiebreak(winner, my_pts, opp_pts), 0, final=True)


def _match_regular(my: Sequence[int], opp: Sequence[int], i: int) -> Optional[_Step]:
    m, o = my[i], opp[i]
    if not _is_plausible_set(m, o):
        return None
    return _Step(RegularSet(m, o), 1)


def _match_fallback(my: Sequence[int], opp: Sequence[int], i: int) -> Optional[_Step]:
    rest_my, rest_opp = my[i:], opp[i:]
    if not rest_my or not rest_opp:
        return None
    my_pts, opp_pts = _join(rest_my), _join(rest_opp)
    if my_pts is None or opp_pts is None:
        return None
    if max(my_pts, opp_pts) < _SUPER_TIEBREAK_MIN or my_pts == opp_pts:
        return None
    winner = MINE if my_pts > opp_pts else OPPONENT
    return _Step(SuperTiebreak(winner, my_pts, opp_pts), 0, final=True)


_MATCHERS: Tuple[_Matcher, ...] = (
    _match_tiebreak,
    _match_super_tiebreak,
    _match_regular,
    _match_fallback,
)


def tally_sets(sets: Sequence[SetOutcome]) -> Tuple[int, int]:
    mine = sum(1 for s in sets if s.winner == MINE)
    return mine, len(sets) - mine


def won_from_sets(sets: Sequence[SetOutcome]) -> Optional[bool]:
    if not sets:
        return None
    mine, theirs = tally_sets(sets)
    return mine > theirs


def decode(my_digits: Optional[str], opp_digits: Optional[str], discipline: str = SINGLES) -> DecodedScore:
    """
    Decode two parallel digit runs into ordered set outcomes.

    Never raises: input with no recognisable set yields no sets and
    won=None (error_code "unparseable_score"). The scan core is the same
    for singles and doubles; `discipline` only tags debug output.
    """
    my = _digits(my_digits)
    opp = _digits(opp_digits)
    sets: List[SetOutcome] = []
    i = 0
    while i < len(my) and i < len(opp):
        step: Optional[_Step] = None
        for matcher in _MATCHERS:
            step = matcher(my, opp, i)
            if step is not None:
                break
        if step is None:
            _dbg(f"decode[{discipline}] stopped at pair {i}: {my_digits!r} vs {opp_digits!r}")
            break
        sets.append(step.outcome)
        if step.final:
            break
        i += step.consumed
    mine, theirs = tally_sets(sets)
    return DecodedScore(sets=tuple(sets), won=won_from_sets(sets), my_sets=mine, opp_sets=theirs)


def format_sets(sets: Sequence[SetOutcome]) -> str:
    return " ".join(s.label() for s in sets)


def outcome_to_dict(outcome: SetOutcome) -> Dict[str, Any]:
    if isinstance(outcome, TiebreakSet):
        return {"kind": "tiebreak", "my": outcome.my, "opp": outcome.opp, "loserPoints": outcome.loser_points}
    if isinstance(outcome, SuperTiebreak):
        return {
            "kind": "super_tiebreak",
            "winner": outcome.winner_side,
            "my": outcome.my_points,
            "opp": outcome.opp_points,
        }
    return {"kind": "regular", "my": outcome.my, "opp": outcome.opp}


def outcome_from_dict(data: Dict[str, Any]) -> SetOutcome:
    kind = data.get("kind") or "regular"
    if kind == "tiebreak":
        lp = data.get("loserPoints")
        return TiebreakSet(int(data["my"]), int(data["opp"]), int(lp) if lp is not None else None)
    if kind == "super_tiebreak":
        my_pts = data.get("my")
        opp_pts = data.get("opp")
        return SuperTiebreak(
            str(data.get("winner") or MINE),
            int(my_pts) if my_pts is not None else None,
            int(opp_pts) if opp_pts is not None else None,
        )
    if kind != "regular":
        raise ValueError(f"unknown set kind: {kind!r}")
    return RegularSet(int(data["my"]), int(data["opp"]))
