"""Playwright Browser Backend Implementation

Implements AbstractBrowserBackend using Playwright's async API.

Dependency: playwright
Setup: playwright install chromium
"""

import logging
import os
from pathlib import Path
from typing import Any, Dict, List, Tuple

from .base import AbstractBrowserBackend, CONTAINER_ARGS, FORCED_ARGS


def in_container() -> bool:
    """Docker drops this marker file in every container."""
    return os.path.exists("/.dockerenv")


def launch_args() -> List[str]:
    """Chromium command-line flags for a bot browser."""
    args = list(FORCED_ARGS)
    if in_container():
        for flag in CONTAINER_ARGS:
            if flag not in args:
                args.append(flag)
    return args


class PlaywrightEngine(AbstractBrowserBackend):
    """Playwright implementation of browser backend."""

    def __init__(self):
        self._playwright = None
        self._async_playwright = None

    async def _ensure_playwright(self):
        """Lazily initialize Playwright."""
        if self._playwright is None:
            try:
                from playwright.async_api import async_playwright
            except ImportError:
                raise RuntimeError(
                    "Playwright not installed. Run: pip install playwright && playwright install chromium"
                )
            self._async_playwright = async_playwright()
            self._playwright = await self._async_playwright.start()
            logging.info("Playwright engine initialized")

    async def launch(
        self,
        headless: bool = True,
        user_data_dir: str = ""
    ) -> Tuple[Any, Any, Any]:
        """Launch chromium and return (browser, context, page).

        Persistent context (user_data_dir is a path):
        - Uses launch_persistent_context()
        - Keeps the Hubs profile (avatar, display name) across runs
        - Returns (None, context, page) - no separate browser handle

        Ephemeral context (user_data_dir empty):
        - Uses browser.new_context()
        - Returns (browser, context, page)
        """
        await self._ensure_playwright()
        chromium = self._playwright.chromium

        launch_opts: Dict[str, Any] = {
            "headless": headless,
            "args": launch_args(),
        }

        if user_data_dir:
            profile_path = Path(user_data_dir)
            profile_path.mkdir(parents=True, exist_ok=True)
            logging.info(f"Using persistent profile: {profile_path}")

            try:
                context = await chromium.launch_persistent_context(
                    str(profile_path),
                    ignore_https_errors=True,
                    **launch_opts
                )
                page = context.pages[0] if context.pages else await context.new_page()
                logging.info(f"Launched chromium with persistent profile (headless={headless})")
                return None, context, page
            except Exception as e:
                logging.error(f"Failed to launch persistent context: {e}")
                raise RuntimeError(f"Persistent browser launch failed: {e}")

        try:
            browser = await chromium.launch(**launch_opts)
            context = await browser.new_context(ignore_https_errors=True)
            page = await context.new_page()
            logging.info(f"Launched chromium ephemeral (headless={headless})")
            return browser, context, page
        except Exception as e:
            logging.error(f"Failed to launch chromium: {e}")
            raise RuntimeError(f"Browser launch failed: {e}")

    async def close(self, browser: Any) -> None:
        """Close browser instance."""
        try:
            if browser:
                await browser.close()
                logging.info("Browser closed")
        except Exception as e:
            logging.warning(f"Error closing browser: {e}")

    async def shutdown(self) -> None:
        """Gracefully stop Playwright.

        CRITICAL: async_playwright().start() MUST be matched with .stop().
        """
        if self._playwright:
            try:
                await self._playwright.stop()
                logging.info("Playwright engine stopped")
            except Exception as e:
                logging.warning(f"Error stopping Playwright: {e}")
            finally:
                self._playwright = None
                self._async_playwright = None
