"""
Example: wait for page state with Playwright, across a navigation.

Starts a wait on a page that will only become ready after it navigates
twice. The wait survives both navigations and resolves on the final page.

Usage:
  python examples/wait_for_function_playwright.py
"""

import asyncio
import logging

from playwright.async_api import async_playwright

from pagewait import WaitTimeoutError, wait_for_function
from pagewait.backends import PlaywrightWorld

FIRST = "data:text/html,<title>loading</title>"
SECOND = "data:text/html,<title>still loading</title>"
READY = "data:text/html,<title>ready</title><div id=done>done</div>"


async def main() -> None:
    logging.basicConfig(level=logging.DEBUG, format="%(name)s: %(message)s")

    async with async_playwright() as p:
        browser = await p.chromium.launch(headless=True)
        page = await browser.new_page()
        world = PlaywrightWorld(page).attach()
        await page.goto(FIRST)

        waiting = asyncio.ensure_future(
            wait_for_function(
                world,
                "document.querySelector('#done')",
                polling="mutation",
                timeout=10_000,
            )
        )

        await page.goto(SECOND)
        await page.goto(READY)

        try:
            handle = await waiting
            print("found:", await handle.evaluate("el => el.textContent"))
            await handle.dispose()
        except WaitTimeoutError as exc:
            print("gave up:", exc)

        # Function source with arguments, polled every 100ms.
        title = await wait_for_function(
            world,
            "(expected) => document.title === expected && document.title",
            "ready",
            polling=100,
            timeout=2_000,
        )
        print("title:", await title.json_value())

        await browser.close()


if __name__ == "__main__":
    asyncio.run(main())
