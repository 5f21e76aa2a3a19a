import re
from urllib.parse import parse_qs, urlsplit

import pytest

from bot.hubs_bot import build_room_url
from core.exceptions import NameValidationError, RoomUrlError


ROOM = "https://hubs.mozilla.com/abc123/my-room"


def test_bot_params_appended():
    parts = urlsplit(build_room_url(ROOM))
    assert parts.path == "/abc123/my-room"
    assert parse_qs(parts.query) == {"bot": ["true"], "allow_multi": ["true"]}
    assert parts.fragment == ""


def test_spawn_point_and_audio_volume():
    parts = urlsplit(build_room_url(ROOM, spawn_point="stage", audio_volume=0.5))
    assert parse_qs(parts.query)["audio_volume"] == ["0.5"]
    assert parts.fragment == "stage"


def test_existing_query_kept():
    parts = urlsplit(build_room_url(ROOM + "?vr_entry_type=2d_now&bot=false"))
    query = parse_qs(parts.query)
    assert query["vr_entry_type"] == ["2d_now"]
    assert query["bot"] == ["true"]


@pytest.mark.parametrize("url", ["not a url", "/abc123/my-room", "ftp://hubs.example/room", "https://", None])
def test_malformed_room_url(url):
    with pytest.raises(RoomUrlError):
        build_room_url(url)


@pytest.mark.asyncio
async def test_enter_room_navigates_and_checks_sanity(make_bot, page):
    page.handle("sampleSanity", lambda: {"connectionCount": 1, "avatarCount": 0})
    bot = make_bot()

    url = await bot.enter_room(ROOM, spawn_point="stage")

    assert page.gotos == [(url, "domcontentloaded")]
    sanity_calls = [e for e in page.evaluations if "function checkSanity(" in e[0]]
    assert len(sanity_calls) == 1
    assert sanity_calls[0][1] == [10]
    assert bot.monitor.running
    await bot.quit()
    assert not bot.monitor.running


@pytest.mark.asyncio
async def test_enter_room_with_name(make_bot, page):
    page.handle("setName", lambda name: name)
    page.handle("getName", lambda: "bot - Greeter")
    bot = make_bot()

    await bot.enter_room(ROOM, name="Greeter")

    assert bot.name == "bot - Greeter"
    await bot.quit()


@pytest.mark.asyncio
async def test_enter_room_rejects_bad_url_before_launch(make_bot, engine):
    bot = make_bot()
    with pytest.raises(RoomUrlError):
        await bot.enter_room("nope")
    assert engine.launches == 0


@pytest.mark.asyncio
async def test_jump_to_replaces_fragment(make_bot, page):
    page.url = ROOM + "?bot=true#lobby"
    bot = make_bot()

    await bot.jump_to("stage")

    assert page.gotos[-1][0] == ROOM + "?bot=true#stage"


@pytest.mark.asyncio
async def test_page_utils_clicks_by_class_regex(make_bot, page):
    bot = make_bot()
    utils = await bot.page_utils()

    await utils.click_selector_class_regex("button", re.compile(r"^enter-button__"))

    expression, arg = page.evaluations[-1]
    assert "button.click()" in expression
    assert arg == ["button", "^enter-button__"]


@pytest.mark.asyncio
async def test_enter_room_rejects_bad_name_before_launch(make_bot, engine, page):
    bot = make_bot()
    with pytest.raises(NameValidationError):
        await bot.enter_room(ROOM, name="semi;colon")
    assert engine.launches == 0
    assert page.gotos == []
