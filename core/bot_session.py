"""Bot Session - the one browser + page pair a HubsBot drives

RESPONSIBILITY:
- Hold browser, context and page handles together
- Report whether they are still usable
- Tear them down in order (page, then context, then browser)

DOES NOT:
- Launch browsers (the engine's job)
- Decide when a session is created (HubsBot memoizes that)

GUARDRAIL: One HubsBot owns at most one live BotSession.
"""

import logging
import uuid
from dataclasses import dataclass, field
from typing import Any


@dataclass
class BotSession:
    """A live browser session.

    INVARIANT: session_id is always present.
    """
    page: Any = None  # Playwright Page object (typed loosely for abstraction)
    context: Any = None  # Playwright BrowserContext
    browser: Any = None  # Playwright Browser, None for persistent profiles
    headless: bool = True
    session_id: str = field(default_factory=lambda: str(uuid.uuid4())[:8])

    def is_active(self) -> bool:
        """Check if session is still usable.

        Persistent-profile launches return (None, context, page), so a missing
        browser handle alone does NOT imply an inactive session.
        """
        try:
            if self.browser and not self.browser.is_connected():
                return False
            if not self.page or self.page.is_closed():
                return False
            return True
        except Exception:
            return False

    async def close(self, engine: Any = None) -> None:
        """Close page, then context, then browser. Best-effort."""
        for label, handle in (("page", self.page), ("context", self.context)):
            if handle is None:
                continue
            try:
                await handle.close()
            except Exception as e:
                logging.warning(f"Error closing {label} of session {self.session_id}: {e}")

        if self.browser is not None:
            if engine is not None:
                await engine.close(self.browser)
            else:
                try:
                    await self.browser.close()
                except Exception as e:
                    logging.warning(f"Error closing browser of session {self.session_id}: {e}")

        logging.info(f"Closed bot session: {self.session_id}")
