import pytest
from playwright.async_api import Error as PlaywrightError

from bot.capabilities import IN_BROWSER_BOT, RemoteMethod
from bot.hubs_bot import HubsBot
from core.exceptions import RemoteArgumentError, RemoteEvaluationError


HOST_DEFINED = {
    "enter_room", "evaluate", "check_sanity", "set_name", "get_name", "delete_all_objects",
}


def test_proxy_set_is_catalog_minus_host_methods():
    expected = {m.attr for m in IN_BROWSER_BOT} - HOST_DEFINED
    assert set(HubsBot.proxied_methods()) == expected
    for attr in HOST_DEFINED:
        assert not hasattr(getattr(HubsBot, attr), "remote_method")


@pytest.mark.asyncio
@pytest.mark.parametrize("attr", sorted(HubsBot.proxied_methods()))
async def test_proxy_forwards_exactly_one_evaluation(make_bot, page, attr):
    method = HubsBot.proxied_methods()[attr]
    page.handle(method.name, lambda *args: {"echo": list(args)})
    bot = make_bot()

    args = (1,) if method.params else ()
    result = await getattr(bot, attr)(*args)

    assert len(page.evaluations) == 1
    expression, payload = page.evaluations[0]
    assert method.as_function() in expression
    assert payload == list(args)
    assert result == {"echo": list(args)}


@pytest.mark.asyncio
async def test_proxy_keywords_become_options_object(make_bot, page):
    page.handle("spawnObject", lambda opts: opts["url"])
    bot = make_bot()

    result = await bot.spawn_object(url="https://example.com/duck.glb", dynamic=True)

    assert result == "https://example.com/duck.glb"
    assert page.evaluations[0][1] == [{"url": "https://example.com/duck.glb", "dynamic": True}]


@pytest.mark.asyncio
async def test_proxy_keywords_sent_as_camel_case(make_bot, page):
    bot = make_bot()

    await bot.spawn_object(url="https://example.com/duck.glb", auto_drop_timeout=5000, fit_to_box=False)

    assert page.evaluations[0][1] == [
        {"url": "https://example.com/duck.glb", "autoDropTimeout": 5000, "fitToBox": False}
    ]


@pytest.mark.asyncio
async def test_go_to_accepts_positional_and_object_forms(make_bot, page):
    bot = make_bot()
    await bot.go_to(1, 2, 3)
    await bot.go_to({"x": 1, "y": 2, "z": 3})
    assert page.evaluations[0][1] == [1, 2, 3]
    assert page.evaluations[1][1] == [{"x": 1, "y": 2, "z": 3}]


class Dancer(HubsBot):
    remote_methods = (
        RemoteMethod(name="dance", params=("steps",), body="return steps;"),
        RemoteMethod(name="say", params=("message",), body="console.log(message);"),
    )

    async def get_position(self):
        return {"x": 0, "y": 0, "z": 0}


@pytest.mark.asyncio
async def test_subclass_remote_methods_are_proxied(make_bot, page):
    page.handle("dance", lambda steps: steps * 2)
    bot = make_bot(Dancer)

    assert await bot.dance(4) == 8
    assert "dance" in Dancer.proxied_methods()
    assert "dance" not in HubsBot.proxied_methods()


@pytest.mark.asyncio
async def test_subclass_overlay_and_host_shadowing(make_bot, page):
    bot = make_bot(Dancer)

    await bot.say("hi")
    assert "console.log(message);" in page.evaluations[0][0]

    assert await bot.get_position() == {"x": 0, "y": 0, "z": 0}
    assert len(page.evaluations) == 1
    assert "get_position" not in Dancer.proxied_methods()


@pytest.mark.asyncio
async def test_non_json_arguments_rejected(make_bot, page, engine):
    bot = make_bot()
    with pytest.raises(RemoteArgumentError):
        await bot.say(lambda: "closure")
    assert page.evaluations == []


@pytest.mark.asyncio
async def test_too_many_arguments_rejected(make_bot, page):
    bot = make_bot()
    with pytest.raises(RemoteArgumentError):
        await bot.say("a", "b")
    assert page.evaluations == []


@pytest.mark.asyncio
async def test_evaluate_accepts_js_source(make_bot, page):
    bot = make_bot()
    await bot.evaluate("(a, b) => a + b", 1, 2)
    expression, payload = page.evaluations[0]
    assert expression == "(args) => ((a, b) => a + b)(...args)"
    assert payload == [1, 2]


@pytest.mark.asyncio
async def test_evaluate_rejects_callables(make_bot):
    bot = make_bot()
    with pytest.raises(RemoteArgumentError):
        await bot.evaluate(lambda: None)


@pytest.mark.asyncio
async def test_page_errors_are_wrapped(make_bot, page):
    def boom(*args):
        raise PlaywrightError("Selector not found")

    page.handle("getPosition", boom)
    bot = make_bot()

    with pytest.raises(RemoteEvaluationError) as excinfo:
        await bot.get_position()
    assert excinfo.value.method == "getPosition"
    assert "Selector not found" in str(excinfo.value)
