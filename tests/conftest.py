import pytest

from core.bot_config import BotConfig, BotSettings
from fakes import FakeEngine, FakePage


@pytest.fixture
def settings():
    return BotSettings(**{
        **BotConfig.DEFAULTS,
        "auto_log": False,
        "sanity_period_s": 0.01,
        "delete_delay_s": 0.0,
        "play_backoff_s": 0.0,
        "play_retry_count": 3,
    })


@pytest.fixture
def page():
    return FakePage()


@pytest.fixture
def engine(page):
    return FakeEngine(page)


@pytest.fixture
def make_bot(engine, settings):
    from bot.hubs_bot import HubsBot

    def _factory(cls=HubsBot, **kwargs):
        kwargs.setdefault("engine", engine)
        kwargs.setdefault("settings", settings)
        return cls(**kwargs)
    return _factory
