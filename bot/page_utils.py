"""Page helpers that drive the Hubs UI rather than its scene graph."""

import logging
import re
from typing import Any, Pattern, Union


CLICK_BY_CLASS_JS = """
([selector, classRegex]) => {
  const re = new RegExp(classRegex);
  const buttons = Array.from(document.querySelectorAll(selector));
  const button = buttons.find(b => Array.from(b.classList).some(c => re.test(c)));
  if (!button) throw new Error(`No ${selector} with a class matching ${classRegex}`);
  button.click();
}
"""


class PageUtils:
    """UI-level helpers bound to one page.

    Hubs hashes its CSS module class names (e.g. `enter-button__a1b2c`), so
    buttons are found by a class regex instead of an exact class.
    """

    def __init__(self, page: Any, auto_log: bool = True):
        self.page = page
        self.auto_log = auto_log

    async def click_selector_class_regex(self, selector: str, class_regex: Union[str, Pattern]) -> None:
        pattern = class_regex.pattern if isinstance(class_regex, re.Pattern) else class_regex
        if self.auto_log:
            logging.info(f"Clicking for a {selector} matching {pattern}")
        await self.page.evaluate(CLICK_BY_CLASS_JS, [selector, pattern])
