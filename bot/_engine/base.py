"""Abstract Browser Backend Interface

Private abstraction layer for browser automation.
NOT part of the bot surface. NOT user-configurable directly.

RESPONSIBILITY:
- Define interface for launching and closing the bot's browser
- Allow backend swapping (and test doubles) without HubsBot changes

DOES NOT:
- Make policy decisions (BotConfig's job)
- Own sessions (HubsBot's job)
- Evaluate anything inside the page
"""

from abc import ABC, abstractmethod
from typing import Any, Tuple


# Flags forced on every launch. The Hubs client needs WebGL on machines whose
# GPU is blocklisted, and dev rooms are often served with self-signed certs.
FORCED_ARGS = [
    "--no-sandbox",
    "--disable-setuid-sandbox",
    "--ignore-gpu-blocklist",
    "--ignore-certificate-errors",
]

# Containers have no user namespaces, so the sandbox must always be off there.
CONTAINER_ARGS = ["--no-sandbox", "--disable-setuid-sandbox"]


class AbstractBrowserBackend(ABC):
    """Interface for browser automation backends.

    Implementations:
    - PlaywrightEngine (playwright.py)

    All methods are coroutines; HubsBot runs on a single asyncio loop.
    """

    @abstractmethod
    async def launch(
        self,
        headless: bool = True,
        user_data_dir: str = ""
    ) -> Tuple[Any, Any, Any]:
        """Launch a browser and return (browser, context, page).

        Args:
            headless: Run without a visible window
            user_data_dir: "" for an ephemeral profile, else a profile path

        Returns:
            (browser_instance, browser_context, page)
        """
        raise NotImplementedError

    @abstractmethod
    async def close(self, browser: Any) -> None:
        """Close browser instance."""
        raise NotImplementedError

    async def shutdown(self) -> None:
        """Release engine-level resources. Default: nothing to release."""
        return None
