"""HubsBot - host-side controller for an avatar in a Hubs room

Every entry of the capability catalog that HubsBot does not define itself
gets a generated forwarding method, so in-page operations read like local
calls:

    bot = HubsBot(name="Greeter")

    async def main(bot):
        await bot.enter_room("https://hubs.mozilla.com/abc123/my-room")
        await bot.go_to(0, 1, 0)           # catalog goTo, proxied
        await bot.say("Hello!")            # catalog say, proxied
        await bot.spawn_object(url="https://example.com/duck.glb", dynamic=True)

    bot.exec(main)

Subclasses add in-page operations through `remote_methods`; they are
proxied the same way and rendered by InBrowserBotBuilder.

RESPONSIBILITY:
- Own exactly one BotSession, created lazily and shared by concurrent callers
- Funnel all page work through evaluate()
- Supervise top-level runs (screenshot on error, exit on dog-pile)

DOES NOT:
- Define in-page behavior (capabilities.py does)
- Launch Chromium itself (the engine does)
"""

import asyncio
import json
import logging
import re
from pathlib import Path
from typing import Any, Awaitable, Callable, Dict, Optional, Tuple, Union
from urllib.parse import parse_qsl, urldefrag, urlencode, urlsplit, urlunsplit

from playwright.async_api import Error as PlaywrightError

from core.bot_config import BotConfig, BotSettings
from core.bot_session import BotSession
from core.exceptions import (
    InteractionRetryError,
    NameValidationError,
    RemoteArgumentError,
    RemoteEvaluationError,
    RoomUrlError,
)
from core.sanity import SanityMonitor
from bot.builder import InBrowserBotBuilder
from bot.capabilities import IN_BROWSER_BOT, CapabilityCatalog, RemoteMethod, to_camel
from bot.page_utils import PageUtils


BOT_PREFIX = "bot - "
NAME_PATTERN = re.compile(r"[A-Za-z0-9 -]{1,26}")

# Hidden inputs the Hubs bot build exposes for feeding media into the room.
FILE_INPUTS = {
    ".mp3": "#bot-audio-input",
    ".json": "#bot-data-input",
}


def normalize_bot_name(name: str) -> str:
    """Validate a display name and prefix it so users know it's a bot.

    Raises:
        NameValidationError: name is not 1-26 letters, digits, spaces or hyphens
    """
    if not isinstance(name, str) or not NAME_PATTERN.fullmatch(name):
        raise NameValidationError(name)
    if not name.startswith(BOT_PREFIX):
        name = BOT_PREFIX + name
    return name


def build_room_url(
    room_url: str,
    spawn_point: Optional[str] = None,
    audio_volume: Optional[float] = None
) -> str:
    """Add the bot query parameters (and spawn point fragment) to a room URL.

    Raises:
        RoomUrlError: room_url is not an absolute http(s) URL
    """
    try:
        parts = urlsplit(room_url)
    except (TypeError, ValueError, AttributeError):
        raise RoomUrlError(room_url)
    if parts.scheme not in ("http", "https") or not parts.netloc:
        raise RoomUrlError(room_url)

    params = {"bot": "true", "allow_multi": "true"}
    if audio_volume is not None:
        params["audio_volume"] = str(audio_volume)

    query = [(k, v) for k, v in parse_qsl(parts.query, keep_blank_values=True) if k not in params]
    query.extend(params.items())

    fragment = spawn_point if spawn_point else parts.fragment
    return urlunsplit((parts.scheme, parts.netloc, parts.path, urlencode(query), fragment))


def _json_args(args: Tuple[Any, ...]) -> list:
    payload = list(args)
    try:
        json.dumps(payload)
    except (TypeError, ValueError) as e:
        raise RemoteArgumentError(f"Arguments are not JSON-serializable: {e}")
    return payload


def _make_proxy(method: RemoteMethod):
    async def proxy(self, *args, **kwargs):
        # In-page methods take option objects, so keywords become one.
        if kwargs:
            args = args + ({to_camel(key): value for key, value in kwargs.items()},)
        return await self.evaluate(method, *args)

    proxy.__name__ = method.attr
    proxy.__doc__ = f"{method.doc or method.name} (runs `{method.name}` in the page)"
    proxy.remote_method = method
    return proxy


def _is_host_defined(cls: type, attr: str) -> bool:
    """True when the effective `attr` on cls is a real method, not a proxy."""
    for klass in cls.__mro__:
        if attr in klass.__dict__:
            return getattr(klass.__dict__[attr], "remote_method", None) is None
    return False


def _install_proxies(cls: type) -> None:
    for method in cls.catalog():
        if _is_host_defined(cls, method.attr):
            continue
        inherited = getattr(cls, method.attr, None)
        if getattr(inherited, "remote_method", None) is method:
            continue
        proxy = _make_proxy(method)
        proxy.__qualname__ = f"{cls.__name__}.{method.attr}"
        setattr(cls, method.attr, proxy)


class HubsBot:
    """Puppets one avatar in one browser tab.

    Keyword arguments to a proxied method become its options object, with
    snake_case keys sent as camelCase: spawn_object(auto_drop_timeout=5000)
    reaches the page as spawnObject({autoDropTimeout: 5000}).

    Args:
        headless: False to show the Chromium window
        user_data_dir: Chromium profile path, "" for a throwaway profile
        name: Display name for the bot (see set_name)
        auto_log: Forward the page's console to the log
        engine: Browser backend; PlaywrightEngine when omitted
        settings: Config snapshot; BotConfig.get().settings when omitted
    """

    remote_methods: Tuple[RemoteMethod, ...] = ()

    def __init__(
        self,
        headless: Optional[bool] = None,
        user_data_dir: Optional[str] = None,
        name: Optional[str] = None,
        auto_log: Optional[bool] = None,
        engine: Any = None,
        settings: Optional[BotSettings] = None,
    ):
        self.settings = settings or BotConfig.get().settings
        self.headless = self.settings.headless if headless is None else headless
        self.user_data_dir = self.settings.user_data_dir if user_data_dir is None else user_data_dir
        self.name = name or self.settings.name
        self.auto_log = self.settings.auto_log if auto_log is None else auto_log

        self._engine = engine
        self._session_task: Optional[asyncio.Future] = None
        self.session: Optional[BotSession] = None
        self.monitor = SanityMonitor(self.sample_sanity, period_s=self.settings.sanity_period_s)

    def __init_subclass__(cls, **kwargs):
        super().__init_subclass__(**kwargs)
        _install_proxies(cls)

    # ---- catalog ----

    @classmethod
    def own_catalog(cls) -> CapabilityCatalog:
        """In-page methods declared by this class itself."""
        return CapabilityCatalog(cls.__dict__.get("remote_methods", ()))

    @classmethod
    def catalog(cls) -> CapabilityCatalog:
        """Base catalog overlaid with every subclass's remote_methods."""
        catalog = IN_BROWSER_BOT
        for klass in reversed(cls.__mro__):
            if isinstance(klass, type) and issubclass(klass, HubsBot):
                catalog = catalog.overlay(klass.__dict__.get("remote_methods", ()))
        return catalog

    @classmethod
    def proxied_methods(cls) -> Dict[str, RemoteMethod]:
        """attr -> RemoteMethod for every catalog entry reached through a proxy."""
        return {
            m.attr: m for m in cls.catalog()
            if not _is_host_defined(cls, m.attr)
        }

    def _remote(self, name: str) -> RemoteMethod:
        method = self.catalog().get(name)
        if method is None:
            raise KeyError(f"No remote method '{name}'")
        return method

    # ---- session ----

    def _get_engine(self):
        """Lazily initialize browser engine."""
        if self._engine is None:
            from bot._engine.playwright import PlaywrightEngine
            self._engine = PlaywrightEngine()
        return self._engine

    @property
    def page(self) -> Any:
        return self.session.page if self.session else None

    async def acquire_session(self) -> BotSession:
        """Return the bot's session, launching the browser on first use.

        Concurrent first calls await the same pending launch. A failed launch
        is forgotten so the next call can try again.
        """
        task = self._session_task
        if task is None:
            task = self._session_task = asyncio.ensure_future(self.launch_browser())
        try:
            return await asyncio.shield(task)
        except Exception:
            if self._session_task is task and task.done():
                self._session_task = None
            raise

    async def launch_browser(self) -> BotSession:
        """Launch the browser and open the page. Prefer acquire_session()."""
        engine = self._get_engine()
        browser, context, page = await engine.launch(
            headless=self.headless,
            user_data_dir=self.user_data_dir
        )

        if self.auto_log:
            page.on("console", lambda message: logging.info(f">> {message.text}"))

        self.session = BotSession(page=page, context=context, browser=browser, headless=self.headless)
        logging.info(f"Created bot session: {self.session.session_id} (headless={self.headless})")
        return self.session

    async def quit(self) -> None:
        """Leave the room and close the browser without exiting Python."""
        self.monitor.stop()
        task, self._session_task = self._session_task, None
        if task is None:
            return
        try:
            session = await task
        except Exception as e:
            logging.info(f"No session to close, launch had failed: {e}")
            return
        await session.close(self._engine)
        if self._engine is not None:
            await self._engine.shutdown()
        self.session = None

    # ---- remote execution ----

    async def evaluate(self, remote: Union[RemoteMethod, str], *args: Any) -> Any:
        """Run a function inside the page and return its (JSON) result.

        Args:
            remote: RemoteMethod, or JS function source
            args: JSON-representable arguments for the function

        Raises:
            RemoteArgumentError: remote is neither, or args are not JSON
            RemoteEvaluationError: the page threw
        """
        if isinstance(remote, RemoteMethod):
            label, source = remote.name, remote.as_function()
            variadic = any(p.startswith("...") for p in remote.params)
            if not variadic and len(args) > len(remote.params):
                raise RemoteArgumentError(
                    f"{remote.name}() takes {len(remote.params)} arguments, got {len(args)}"
                )
        elif isinstance(remote, str):
            label, source = "script", remote.strip()
        else:
            raise RemoteArgumentError(
                f"Expected RemoteMethod or JS source, got {type(remote).__name__}"
            )
        payload = _json_args(args)

        session = await self.acquire_session()
        try:
            return await session.page.evaluate(f"(args) => ({source})(...args)", payload)
        except PlaywrightError as e:
            raise RemoteEvaluationError(label, e.message) from e

    def as_browser_bot(self, fn: str, *args: Any) -> InBrowserBotBuilder:
        """Builder for console-pasteable code that runs `fn(bot, *args)` in a tab.

        Subclass remote_methods are included in the generated code.
        """
        return InBrowserBotBuilder(self, fn, *args)

    async def page_utils(self) -> PageUtils:
        session = await self.acquire_session()
        return PageUtils(session.page, auto_log=self.auto_log)

    # ---- room ----

    async def enter_room(
        self,
        room_url: str,
        name: Optional[str] = None,
        spawn_point: Optional[str] = None,
        audio_volume: Optional[float] = None
    ) -> str:
        """Enter a room and start the sanity check.

        Args:
            room_url: Absolute URL of the room
            name: Display name to commit after entering
            spawn_point: Waypoint name to spawn at
            audio_volume: Volume for the room's audio, passed to the client

        Returns:
            The URL navigated to
        """
        url = build_room_url(room_url, spawn_point=spawn_point, audio_volume=audio_volume)
        if name:
            normalize_bot_name(name)
        session = await self.acquire_session()

        logging.info(f"Entering room: {url}")
        await session.page.goto(
            url,
            wait_until="domcontentloaded",
            timeout=self.settings.navigation_timeout_ms
        )

        await self.check_sanity()

        if name:
            await self.change_name(name)
        return url

    async def jump_to(self, spawn_point: str) -> None:
        """Respawn at a named waypoint by reloading with a new fragment."""
        session = await self.acquire_session()
        url = f"{urldefrag(session.page.url).url}#{spawn_point}"
        logging.info(f"Jumping to: {url}")
        await session.page.goto(url, timeout=self.settings.navigation_timeout_ms)

    async def check_sanity(self) -> SanityMonitor:
        """Start the in-page sampler and the host-side dog-pile monitor."""
        period_s = self.monitor.period_s
        await self.evaluate(self._remote("checkSanity"), int(period_s * 1000))
        self.monitor.start()
        return self.monitor

    # ---- identity ----

    async def set_name(self, name: str) -> str:
        """Set the display name; "bot - " is prepended when missing.

        The page checks the raw name against the same pattern and adds the
        prefix itself, so the unprefixed name is what gets sent.
        """
        prefixed = normalize_bot_name(name)
        committed = await self.evaluate(self._remote("setName"), name)
        self.name = committed or prefixed
        return self.name

    async def get_name(self) -> str:
        return await self.evaluate(self._remote("getName"))

    async def change_name(self, name: str) -> str:
        await self.set_name(name)
        self.name = await self.get_name()
        return self.name

    # ---- objects ----

    async def delete_all_objects(self) -> int:
        """Delete every networked media object, one at a time.

        Best-effort: the first failure is logged and the rest are left alone.

        Returns:
            Number of objects deleted
        """
        deleted = 0
        try:
            object_ids = await self.evaluate(self._remote("listNetworkedMedia")) or []
            logging.info(f"Deleting {len(object_ids)} networked objects")
            for object_id in object_ids:
                await self.evaluate(self._remote("deleteObject"), object_id)
                deleted += 1
                # Give the replication layer time before the next delete.
                await asyncio.sleep(self.settings.delete_delay_s)
        except Exception as e:
            logging.error(f"Error deleting objects after {deleted} deletions: {e}")
        return deleted

    # ---- media ----

    async def play_file(self, file_path: str) -> bool:
        """Upload an .mp3 (audio) or .json (data) file into the bot inputs.

        Retries with exponential backoff while the inputs are not ready.

        Raises:
            InteractionRetryError: every attempt failed
        """
        selector = FILE_INPUTS.get(Path(file_path).suffix.lower())
        if selector is None:
            logging.warning(f"Unsupported file type, not playing: {file_path}")
            return False

        session = await self.acquire_session()
        attempts = max(1, self.settings.play_retry_count)
        backoff = self.settings.play_backoff_s

        for attempt in range(1, attempts + 1):
            try:
                # Interact with the page so that audio can play.
                await session.page.mouse.click(100, 100)
                input_field = await session.page.wait_for_selector(selector)
                await input_field.set_input_files(file_path)
                logging.info(f"File to play: {file_path}")
                return True
            except PlaywrightError as e:
                if attempt == attempts:
                    raise InteractionRetryError("play_file", attempts, e) from e
                logging.warning(f"Interaction error ({attempt}/{attempts}): {e.message}. Retrying in {backoff}s")
                await asyncio.sleep(backoff)
                backoff *= 2
        return False

    # ---- supervision ----

    async def run_guarded(
        self,
        fn: Callable[["HubsBot"], Awaitable[Any]],
        path: Optional[str] = None
    ) -> Any:
        """Run `fn(self)`; screenshot the page if it raises, then re-raise."""
        path = path or self.settings.screenshot_path
        try:
            return await fn(self)
        except Exception:
            if self.page is not None:
                logging.warning(f"Caught error. Trying to screenshot to {path}")
                try:
                    await self.page.screenshot(path=path)
                except Exception as e:
                    logging.warning(f"Screenshot failed: {e}")
            raise

    async def supervise(self, fn: Callable[["HubsBot"], Awaitable[Any]]) -> Any:
        """Run `fn` guarded, aborting it if the sanity monitor reports a dog-pile."""
        fatal = self.monitor.fatal
        main = asyncio.ensure_future(self.run_guarded(fn))
        try:
            await asyncio.wait({main, fatal}, return_when=asyncio.FIRST_COMPLETED)
            if not main.done():
                main.cancel()
                await asyncio.gather(main, return_exceptions=True)
                fatal.result()
            return main.result()
        finally:
            if fatal.done() and not fatal.cancelled():
                fatal.exception()
            else:
                fatal.cancel()
            await self.quit()

    def exec(self, fn: Callable[["HubsBot"], Awaitable[Any]]) -> Any:
        """Main-program wrapper: run `fn(self)` to completion.

        Any unhandled error, including a detected dog-pile, is logged and
        turned into SystemExit(1) so a process supervisor can restart the bot.
        """
        try:
            return asyncio.run(self.supervise(fn))
        except Exception as e:
            logging.error(
                f"Failed to run. Check {self.settings.screenshot_path} if it exists. Error: {e}"
            )
            raise SystemExit(1)


_install_proxies(HubsBot)
