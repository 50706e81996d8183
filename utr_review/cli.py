from __future__ import annotations

import argparse
import asyncio
import json
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional

from utr_review.config import ReviewConfig
from utr_review.logging_utils import _log_step
from utr_review.report import write_csv, write_json
from utr_review.review import review_payload
from utr_review.score_decoder import DOUBLES, SINGLES, decode, outcome_to_dict
from utr_review.store import ReviewStore, StoreError, TTLCache
from utr_review.utr_client import UtrClientError, error_code_from, scrape_profile


def _read_json(path: str) -> Any:
    if path == "-":
        return json.load(sys.stdin)
    return json.loads(Path(path).read_text(encoding="utf-8"))


def _print_json(payload: Any) -> None:
    print(json.dumps(payload, ensure_ascii=False, indent=2))


def cmd_decode(my_digits: str, opp_digits: str, *, doubles: bool, as_json: bool) -> int:
    decoded = decode(my_digits, opp_digits, DOUBLES if doubles else SINGLES)
    if as_json:
        _print_json(
            {
                "sets": [outcome_to_dict(s) for s in decoded.sets],
                "score": decoded.score,
                "won": decoded.won,
                "mySets": decoded.my_sets,
                "oppSets": decoded.opp_sets,
                "error": decoded.error_code,
            }
        )
    else:
        won = {True: "won", False: "lost", None: "unknown"}[decoded.won]
        print(f"{decoded.score or '-'}  ({decoded.my_sets}-{decoded.opp_sets}, {won})")
    return 0 if decoded.sets else 1


def _review_and_save(
    profile_id: str,
    payload: Dict[str, Any],
    *,
    cfg: ReviewConfig,
    out_dir: Optional[str],
    csv: bool,
    save: bool,
) -> int:
    result = review_payload(profile_id, cfg.season, payload, config=cfg)
    doc = result.to_dict()
    if save:
        ReviewStore(cfg.data_dir).mark_completed(profile_id, cfg.season, doc)
    if out_dir:
        base = Path(out_dir)
        write_json(base / f"{profile_id}_{cfg.season}.json", doc)
        if csv:
            write_csv(
                base / f"{profile_id}_{cfg.season}.csv",
                result.singles,
                player_name=result.player_name,
                rating=result.singles_rating,
            )
        _log_step(f"review: wrote {base}")
    else:
        _print_json(doc)
    s = result.singles
    print(
        f"{result.player_name or profile_id} {cfg.season}: singles {s.record.won}-{s.record.lost} "
        f"({s.record.pct}%), doubles {result.doubles.record.won}-{result.doubles.record.lost}, "
        f"skipped={sum(result.skip_reasons.values())}",
        file=sys.stderr,
    )
    return 0


def cmd_review(args: argparse.Namespace, cfg: ReviewConfig) -> int:
    payload = _read_json(args.input)
    if isinstance(payload, list):
        payload = {"fragments": payload}
    if not isinstance(payload, dict):
        raise SystemExit("review: input must be a JSON object or a list of fragments")
    if args.player_name:
        payload = {**payload, "playerName": args.player_name}
    profile_id = args.profile_id or str(payload.get("profileId") or "")
    if not profile_id:
        raise SystemExit("review: --profile-id is required when the input has no profileId")
    return _review_and_save(profile_id, payload, cfg=cfg, out_dir=args.out_dir, csv=args.csv, save=not args.no_store)


def cmd_status(profile_id: str, cfg: ReviewConfig) -> int:
    record = ReviewStore(cfg.data_dir).get(profile_id, cfg.season)
    if record is None:
        print(f"{profile_id} {cfg.season}: no record")
        return 1
    line = f"{profile_id} {cfg.season}: {record.get('status')} updated={record.get('updatedAt')}"
    if record.get("error"):
        line += f" error={record.get('error')}"
    print(line)
    return 0


async def cmd_scrape(args: argparse.Namespace, cfg: ReviewConfig) -> int:
    store = ReviewStore(cfg.data_dir)
    cache = TTLCache(cfg.cache_ttl_s, path=cfg.data_dir / "opponent_cache.json")
    store.mark_pending(args.profile_id, cfg.season)
    try:
        payload = await scrape_profile(args.profile_id, config=cfg, cache=cache, headless=not args.headed)
    except UtrClientError as ex:
        store.mark_failed(args.profile_id, cfg.season, str(ex))
        print(f"scrape failed: code={error_code_from(ex) or '-'} {ex}", file=sys.stderr)
        return 2
    if args.out_dir:
        write_json(Path(args.out_dir) / f"{args.profile_id}_raw.json", payload)
    return _review_and_save(args.profile_id, payload, cfg=cfg, out_dir=args.out_dir, csv=args.csv, save=True)


def main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(prog="utr_review")
    parser.add_argument("--year", type=int, default=None, help="Season year (default: UTR_REVIEW_SEASON or current year)")
    sub = parser.add_subparsers(dest="cmd", required=True)

    p_decode = sub.add_parser("decode", help="Decode one pair of score digit runs")
    p_decode.add_argument("my_digits")
    p_decode.add_argument("opp_digits")
    p_decode.add_argument("--doubles", action="store_true")
    p_decode.add_argument("--json", action="store_true", help="Print the decoded sets as JSON")

    p_review = sub.add_parser("review", help="Compute a season review from scraped fragments JSON")
    p_review.add_argument("--input", required=True, help="Path to payload JSON ('-' for stdin)")
    p_review.add_argument("--profile-id", default="")
    p_review.add_argument("--player-name", default="")
    p_review.add_argument("--out-dir", default=None, help="Write <id>_<year>.json (and .csv) here instead of stdout")
    p_review.add_argument("--csv", action="store_true", help="With --out-dir: also write the singles CSV report")
    p_review.add_argument("--no-store", action="store_true", help="Do not save the review in the data dir")

    p_status = sub.add_parser("status", help="Show the stored review status for a profile")
    p_status.add_argument("profile_id")

    p_scrape = sub.add_parser("scrape", help="Scrape a UTR profile with Playwright and review it")
    p_scrape.add_argument("profile_id")
    p_scrape.add_argument("--headed", action="store_true", help="Run with visible browser window")
    p_scrape.add_argument("--out-dir", default=None)
    p_scrape.add_argument("--csv", action="store_true")

    args = parser.parse_args(argv)
    cfg = ReviewConfig.from_env(season=args.year)

    try:
        if args.cmd == "decode":
            return cmd_decode(args.my_digits, args.opp_digits, doubles=args.doubles, as_json=args.json)
        if args.cmd == "review":
            return cmd_review(args, cfg)
        if args.cmd == "status":
            return cmd_status(args.profile_id, cfg)
        if args.cmd == "scrape":
            return asyncio.run(cmd_scrape(args, cfg))
    except StoreError as ex:
        print(f"store error: code={error_code_from(ex) or '-'} {ex}", file=sys.stderr)
        return 2
    raise SystemExit(2)


if __name__ == "__main__":
    raise SystemExit(main())
