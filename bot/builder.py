"""InBrowserBotBuilder - renders a bot as a script for the developer console

The output rebuilds the capability surface inside any tab that already has
the Hubs client loaded, then runs the caller's function against it:

    class InBrowserBot { ... }          base catalog
    var HubsBot = InBrowserBot;         so subclasses can extend HubsBot
    class MyBot extends HubsBot { ... } each subclass, base-first
    var _fn = <fn>;
    var _args = <json>;
    window.bot = new MyBot(); _fn(window.bot, ..._args);

INVARIANT: statements are emitted in dependency order; every `extends`
names a class declared earlier in the script.
"""

import json
from typing import Any, List, Type

from core.exceptions import RemoteArgumentError
from bot.capabilities import IN_BROWSER_BOT


BASE_CLASS_NAME = "InBrowserBot"


class InBrowserBotBuilder:
    """Builds console-pasteable code that runs `fn(bot, *args)` in the page.

    Args:
        base_bot: HubsBot (or subclass) instance whose type chain is rendered
        fn: JS function source; receives the in-browser bot as first argument
        args: JSON-representable arguments passed after the bot
    """

    def __init__(self, base_bot: Any, fn: str, *args: Any):
        if not isinstance(fn, str):
            raise RemoteArgumentError(
                f"fn must be JS function source, got {type(fn).__name__}"
            )
        try:
            json.dumps(list(args))
        except (TypeError, ValueError) as e:
            raise RemoteArgumentError(f"Arguments are not JSON-serializable: {e}")

        self.base_bot = base_bot
        self.fn = fn.strip()
        self.args = list(args)

    def subclass_chain(self) -> List[Type]:
        """Classes between type(base_bot) and HubsBot, most-derived first."""
        from bot.hubs_bot import HubsBot

        chain = []
        for cls in type(self.base_bot).__mro__:
            if cls is HubsBot:
                break
            if issubclass(cls, HubsBot):
                chain.append(cls)
        return chain

    @staticmethod
    def _parent_name(cls: Type) -> str:
        from bot.hubs_bot import HubsBot

        parent = next(base for base in cls.__bases__ if issubclass(base, HubsBot))
        return parent.__name__

    def to_lines(self, include_class_definition: bool = True) -> List[str]:
        lines = []
        if include_class_definition:
            lines.append(IN_BROWSER_BOT.render_class(BASE_CLASS_NAME))

        lines.append(f"var HubsBot = {BASE_CLASS_NAME};")

        for cls in reversed(self.subclass_chain()):
            lines.append(cls.own_catalog().render_class(cls.__name__, extends=self._parent_name(cls)))

        lines.append(f"var _fn = {self.fn};")
        lines.append(f"var _args = {json.dumps(self.args)};")
        lines.append(f"window.bot = new {type(self.base_bot).__name__}(); _fn(window.bot, ..._args);")
        return lines

    def to_string(self, include_class_definition: bool = True) -> str:
        return "\n".join(self.to_lines(include_class_definition=include_class_definition))

    def __str__(self):
        return self.to_string()
