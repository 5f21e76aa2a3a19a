"""Bot domain - puppets an avatar in a Hubs room through a headless browser

- hubs_bot: HubsBot, the host-side controller
- capabilities: the in-page operation catalog
- builder: renders a bot as developer-console code
"""

from bot.capabilities import IN_BROWSER_BOT, RemoteMethod
from bot.hubs_bot import HubsBot

__all__ = ["HubsBot", "IN_BROWSER_BOT", "RemoteMethod"]
