# Helpers that keep a long-lived Chromium session on the UTR app responsive.

import re
from typing import Optional

from playwright.async_api import Page

from utr_review.logging_utils import _dbg


async def disable_network_cache(page: Page) -> bool:
    """
    Turn off the HTTP cache over CDP so repeated profile visits see fresh
    results. Returns False when the context has no CDP session (non-Chromium).
    """
    new_sess = getattr(getattr(page, "context", None), "new_cdp_session", None)
    if not callable(new_sess):
        return False
    try:
        sess = await new_sess(page)
        await sess.send("Network.enable")
        await sess.send("Network.setCacheDisabled", {"cacheDisabled": True})
    except Exception as ex:
        _dbg(f"browser: cache not disabled: {type(ex).__name__}")
        return False
    return True


def page_is_usable(page: Optional[Page]) -> bool:
    if page is None:
        return False
    try:
        return not page.is_closed()
    except Exception:
        return False


async def safe_goto(page: Page, url: str, *, timeout_ms: int = 25_000) -> None:
    """
    Navigate with domcontentloaded; on timeout retry with wait_until='commit'.
    """
    try:
        await page.goto(url, wait_until="domcontentloaded", timeout=timeout_ms)
        return
    except Exception:
        pass
    try:
        await page.goto(url, wait_until="commit", timeout=timeout_ms)
    except Exception:
        pass


async def scroll_to_bottom(page: Page, *, max_rounds: int = 30, pause_ms: int = 600) -> int:
    """Scroll until the page height stops growing. Returns the number of rounds used."""
    previous = 0
    for i in range(max_rounds):
        try:
            await page.evaluate("() => window.scrollTo(0, document.body.scrollHeight)")
            await page.wait_for_timeout(pause_ms)
            height = await page.evaluate("() => document.body.scrollHeight")
        except Exception:
            return i
        if height == previous:
            return i + 1
        previous = height
    return max_rounds


async def dismiss_overlays(page: Page) -> None:
    try:
        await page.keyboard.press("Escape")
    except Exception:
        pass
    for rx in (r"accept all|allow all|agree|ok|okay|got it", r"close|no thanks|dismiss"):
        try:
            btn = page.locator("button").filter(has_text=re.compile(rx, re.I))
            if await btn.count() and await btn.first.is_visible():
                await btn.first.click(timeout=2000, force=True)
                await page.wait_for_timeout(350)
        except Exception:
            pass
