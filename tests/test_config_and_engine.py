import pytest

from bot._engine import playwright as engine_module
from bot._engine.base import FORCED_ARGS
from core.bot_config import BotConfig


@pytest.fixture
def config():
    config = BotConfig.get()
    yield config
    config.reload()


def test_defaults_when_file_missing(config, tmp_path):
    config.reload(tmp_path / "missing.yaml")
    assert config.settings.headless is True
    assert config.settings.name == "HubsBot"
    assert config.settings.sanity_period_s == 60.0
    assert config.settings.screenshot_path == "botError.png"


def test_yaml_overrides_defaults(config, tmp_path):
    path = tmp_path / "bot.yaml"
    path.write_text(
        "bot:\n"
        "  headless: false\n"
        "  name: Greeter\n"
        "  delete_delay_s: 0.5\n"
        "  not_a_setting: 1\n",
        encoding="utf-8",
    )
    config.reload(path)
    assert config.settings.headless is False
    assert config.settings.name == "Greeter"
    assert config.settings.delete_delay_s == 0.5
    assert config.settings.auto_log is True


def test_invalid_yaml_falls_back(config, tmp_path):
    path = tmp_path / "bot.yaml"
    path.write_text("bot: [unclosed\n", encoding="utf-8")
    config.reload(path)
    assert config.settings.name == "HubsBot"


def test_singleton():
    assert BotConfig.get() is BotConfig.get()


def test_bot_reads_config_when_not_overridden(make_bot, settings):
    bot = make_bot(headless=False)
    assert bot.headless is False
    assert bot.user_data_dir == settings.user_data_dir
    assert bot.name == settings.name


def test_launch_args_forced(monkeypatch):
    monkeypatch.setattr(engine_module, "in_container", lambda: False)
    args = engine_module.launch_args()
    assert args == FORCED_ARGS
    assert "--ignore-certificate-errors" in args


def test_launch_args_in_container(monkeypatch):
    monkeypatch.setattr(engine_module, "in_container", lambda: True)
    args = engine_module.launch_args()
    assert args.count("--no-sandbox") == 1
    assert "--disable-setuid-sandbox" in args
