"""Playwright client for the UTR web app: login, results tab, rating history."""

from __future__ import annotations

import re
from typing import Any, Awaitable, Callable, Dict, List, Optional, Tuple, TypeVar

from playwright.async_api import Page, async_playwright

from utr_review.browser_utils import (
    disable_network_cache,
    dismiss_overlays,
    page_is_usable,
    safe_goto,
    scroll_to_bottom,
)
from utr_review.config import UTR_BASE_URL, ReviewConfig
from utr_review.fragments import WALKOVER_MARKERS, extract_date_text, first_name, mentions_name
from utr_review.logging_utils import _dbg, _log_step
from utr_review.rating_history import RatingPoint, history_from_dicts, history_to_dicts, parse_rating_history
from utr_review.score_decoder import DOUBLES, SINGLES
from utr_review.store import TTLCache

T = TypeVar("T")

RESULTS_TAB = 2
RATING_HISTORY_TAB = 6

_CODE_RE = re.compile(r"\bcode=([a-z0-9_]+)\b")
_PROFILE_HREF_RE = re.compile(r"profiles/(\d+)")
_SINGLES_UTR_RE = re.compile(r"UTR\s+\d*\s*\(?Singles\)?[:\s]+(\d+\.\d{2})", re.I)
_DOUBLES_UTR_RE = re.compile(r"UTR\s+\d*\s*\(?Doubles\)?[:\s]+(\d+\.\d{2})", re.I)

EMAIL_SELECTORS = (
    "input[type='email']",
    "input[name='email']",
    "input#emailInput",
    "input[name*='email' i]",
)
PASSWORD_SELECTORS = (
    "input[type='password']",
    "input[name='password']",
    "input[id*='password' i]",
)
CARD_SELECTOR = ".utr-card.score-card, .score-card, [class*='scorecard__link']"

_CARDS_JS = """
(selector) => Array.from(document.querySelectorAll(selector)).map((card) => ({
  text: (card.innerText || '').replace(/\\s+/g, ' ').trim(),
  links: Array.from(card.querySelectorAll('a[href*="/profiles/"]')).map((a) => ({
    href: a.getAttribute('href') || '',
    text: (a.innerText || '').trim(),
  })),
}))
"""


class UtrClientError(RuntimeError):
    pass


def error_code_from(ex: BaseException) -> Optional[str]:
    """Extract the `code=<slug>` tag carried in collaborator error messages."""
    m = _CODE_RE.search(str(ex or "").lower())
    return m.group(1) if m else None


def profile_url(profile_id: str, *, tab: Optional[int] = None) -> str:
    url = f"{UTR_BASE_URL}/profiles/{profile_id}"
    return f"{url}?t={tab}" if tab is not None else url


def opponent_id_from_href(href: str) -> Optional[str]:
    m = _PROFILE_HREF_RE.search(href or "")
    return m.group(1) if m else None


def parse_profile_ratings(text: str) -> Dict[str, Optional[float]]:
    singles = _SINGLES_UTR_RE.search(text or "")
    doubles = _DOUBLES_UTR_RE.search(text or "")
    return {
        "singlesUtr": float(singles.group(1)) if singles else None,
        "doublesUtr": float(doubles.group(1)) if doubles else None,
    }


def card_to_fragment(card: Dict[str, Any], *, player_name: str, discipline: str = SINGLES) -> Dict[str, Any]:
    """
    Turn one scraped score card ({"text", "links"}) into a fragment row.

    The opponent is the first profile link whose text does not carry the
    player's first name. Doubles cards list two links per team; the ids of
    the pair without the player are kept.
    """
    text = str(card.get("text") or "")
    fn = first_name(player_name)
    links: List[Tuple[str, str]] = []
    for link in card.get("links") or []:
        pid = opponent_id_from_href(str(link.get("href") or ""))
        if pid is not None and pid not in [x[0] for x in links]:
            links.append((pid, str(link.get("text") or "").strip()))
    mine = [i for i, (_, label) in enumerate(links) if mentions_name(label, fn)]
    opponent_id: Optional[str] = None
    opponent: Optional[str] = None
    for pid, label in links:
        if mentions_name(label, fn):
            continue
        opponent_id, opponent = pid, label or None
        break
    ids: List[str] = []
    if discipline == DOUBLES and len(links) >= 4:
        other = links[2:4] if mine and mine[0] < 2 else links[0:2]
        ids = [pid for pid, _ in other]
    elif discipline == DOUBLES:
        ids = [pid for i, (pid, _) in enumerate(links) if i not in mine]
    lo = text.lower()
    row: Dict[str, Any] = {
        "type": discipline,
        "rawText": text,
        "date": extract_date_text(text),
        "isWalkover": any(marker in lo for marker in WALKOVER_MARKERS),
        "playerName": player_name,
    }
    if discipline == DOUBLES:
        row["opponentIds"] = ids
    else:
        row["opponentId"] = opponent_id
        row["opponent"] = opponent
    return row


async def _first_locator(page: Page, selectors: tuple, *, timeout_ms: int):
    for sel in selectors:
        loc = page.locator(sel)
        try:
            await loc.first.wait_for(state="visible", timeout=timeout_ms)
            return loc.first
        except Exception:
            continue
    return None


async def login(page: Page, email: str, password: str) -> None:
    """Two-step UTR login: email, Continue, then password."""
    if not email or not password:
        raise UtrClientError("code=missing_credentials UTR_EMAIL/UTR_PASSWORD are not set")
    await safe_goto(page, f"{UTR_BASE_URL}/login")
    await dismiss_overlays(page)
    email_input = await _first_locator(page, EMAIL_SELECTORS, timeout_ms=8_000)
    if email_input is None:
        raise UtrClientError(f"code=login_form_missing url={page.url}")
    await email_input.fill(email)
    try:
        cont = page.locator("button").filter(has_text=re.compile(r"continue", re.I))
        if await cont.count():
            await cont.first.click(timeout=3_000)
    except Exception:
        pass
    password_input = await _first_locator(page, PASSWORD_SELECTORS, timeout_ms=8_000)
    if password_input is None:
        raise UtrClientError(f"code=login_password_missing url={page.url}")
    await password_input.fill(password)
    try:
        await password_input.press("Enter")
    except Exception:
        pass
    try:
        await page.wait_for_url(lambda u: "/login" not in u, timeout=20_000)
    except Exception as ex:
        raise UtrClientError(f"code=login_failed url={page.url}") from ex
    _log_step("utr: logged in")


async def collect_cards(page: Page) -> List[Dict[str, Any]]:
    await scroll_to_bottom(page)
    try:
        cards = await page.evaluate(_CARDS_JS, CARD_SELECTOR)
    except Exception as ex:
        raise UtrClientError(f"code=cards_unavailable url={page.url} error={type(ex).__name__}") from ex
    return [c for c in cards or [] if isinstance(c, dict) and c.get("text")]


async def switch_to_doubles(page: Page) -> bool:
    """Open the singles/doubles selector on the results tab and pick doubles (best-effort)."""
    try:
        toggle = page.get_by_text(re.compile(r"^\s*singles\s*$", re.I))
        if await toggle.count():
            await toggle.first.click(timeout=3_000)
            await page.wait_for_timeout(500)
        option = page.get_by_text(re.compile(r"^\s*doubles\s*$", re.I))
        if not await option.count():
            return False
        await option.first.click(timeout=3_000)
        await page.wait_for_timeout(1_500)
        return True
    except Exception as ex:
        _dbg(f"utr: doubles switch failed: {type(ex).__name__}: {ex}")
        return False


async def scrape_rating_history(page: Page, profile_id: str) -> List[RatingPoint]:
    await safe_goto(page, profile_url(profile_id, tab=RATING_HISTORY_TAB))
    await scroll_to_bottom(page, max_rounds=10)
    try:
        text = await page.inner_text("body")
    except Exception as ex:
        raise UtrClientError(f"code=history_unavailable profile={profile_id}") from ex
    return parse_rating_history(text)


async def _opponent_history(
    page: Page, opponent_id: str, cache: Optional[TTLCache]
) -> List[RatingPoint]:
    key = f"history:{opponent_id}"
    if cache is not None:
        cached = cache.get(key)
        if isinstance(cached, list):
            return history_from_dicts(cached)
    history = await scrape_rating_history(page, opponent_id)
    if cache is not None:
        cache.set(key, history_to_dicts(history))
    return history


async def with_browser(headless: bool, fn: Callable[[Page], Awaitable[T]]) -> T:
    async with async_playwright() as p:
        browser = await p.chromium.launch(
            headless=headless,
            args=[
                "--disable-blink-features=AutomationControlled",
                "--no-default-browser-check",
                "--disable-dev-shm-usage",
            ],
        )
        context = await browser.new_context(
            locale="en-US",
            viewport={"width": 1440, "height": 900},
        )
        context.set_default_timeout(15_000)
        context.set_default_navigation_timeout(25_000)
        page = await context.new_page()
        try:
            await disable_network_cache(page)
            return await fn(page)
        finally:
            try:
                await context.close()
            finally:
                await browser.close()


async def scrape_profile_page(
    page: Page,
    profile_id: str,
    *,
    config: ReviewConfig,
    cache: Optional[TTLCache] = None,
    include_doubles: bool = True,
) -> Dict[str, Any]:
    """
    Scrape one profile into the payload `build_review` consumes.
    """
    await login(page, config.utr_email, config.utr_password)
    await safe_goto(page, profile_url(profile_id, tab=RESULTS_TAB))
    await dismiss_overlays(page)
    try:
        player_name = (await page.locator("h1").first.inner_text(timeout=5_000)).strip()
    except Exception:
        player_name = ""
    try:
        ratings = parse_profile_ratings(await page.inner_text("body"))
    except Exception:
        ratings = {"singlesUtr": None, "doublesUtr": None}
    _log_step(f"utr: profile {profile_id} name={player_name or '-'}")

    singles = [card_to_fragment(c, player_name=player_name) for c in await collect_cards(page)]
    _log_step(f"utr: singles cards={len(singles)}")
    doubles: List[Dict[str, Any]] = []
    if include_doubles and page_is_usable(page) and await switch_to_doubles(page):
        doubles = [
            card_to_fragment(c, player_name=player_name, discipline=DOUBLES) for c in await collect_cards(page)
        ]
        _log_step(f"utr: doubles cards={len(doubles)}")

    history = await scrape_rating_history(page, profile_id)
    opponent_histories: Dict[str, Dict[str, Any]] = {}
    opponent_ids: List[str] = []
    for row in singles:
        oid = row.get("opponentId")
        if oid and oid not in opponent_ids:
            opponent_ids.append(oid)
    for oid in opponent_ids[: config.max_opponents]:
        if not page_is_usable(page):
            raise UtrClientError(f"code=page_closed profile={profile_id}")
        try:
            opp_history = await _opponent_history(page, oid, cache)
        except UtrClientError as ex:
            _dbg(f"utr: opponent {oid} history skipped code={error_code_from(ex)}")
            continue
        opponent_histories[oid] = {"history": history_to_dicts(opp_history)}
    _log_step(f"utr: opponent histories={len(opponent_histories)}/{len(opponent_ids)}")

    return {
        "profileId": str(profile_id),
        "playerName": player_name,
        **ratings,
        "singlesMatches": singles,
        "doublesMatches": doubles,
        "singlesHistory": history_to_dicts(history),
        "opponentHistories": opponent_histories,
    }


async def scrape_profile(
    profile_id: str,
    *,
    config: ReviewConfig,
    cache: Optional[TTLCache] = None,
    headless: bool = True,
) -> Dict[str, Any]:
    if not config.has_credentials:
        raise UtrClientError("code=missing_credentials UTR_EMAIL/UTR_PASSWORD are not set")

    async def _run(page: Page) -> Dict[str, Any]:
        return await scrape_profile_page(page, profile_id, config=config, cache=cache)

    return await with_browser(headless, _run)
