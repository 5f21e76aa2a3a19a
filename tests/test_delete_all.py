import pytest
from playwright.async_api import Error as PlaywrightError


class FakeScene:
    """Networked media entities; deleting `failing_id` removes it, then throws."""

    def __init__(self, ids, failing_id=None):
        self.entities = list(ids)
        self.failing_id = failing_id
        self.attempted = []

    def list_ids(self):
        return list(self.entities)

    def delete(self, object_id):
        self.attempted.append(object_id)
        self.entities.remove(object_id)
        if object_id == self.failing_id:
            raise PlaywrightError("NAF: entity is not networked")
        return object_id


@pytest.mark.asyncio
async def test_partial_failure_is_swallowed(make_bot, page, caplog):
    scene = FakeScene(["naf-1", "naf-2", "naf-3"], failing_id="naf-2")
    page.handle("listNetworkedMedia", scene.list_ids)
    page.handle("deleteObject", scene.delete)
    bot = make_bot()

    deleted = await bot.delete_all_objects()

    assert deleted == 1
    assert scene.entities == ["naf-3"]
    assert scene.attempted == ["naf-1", "naf-2"]
    assert "Error deleting objects" in caplog.text


@pytest.mark.asyncio
async def test_deletes_every_entity_in_order(make_bot, page):
    scene = FakeScene(["naf-1", "naf-2", "naf-3"])
    page.handle("listNetworkedMedia", scene.list_ids)
    page.handle("deleteObject", scene.delete)
    bot = make_bot()

    assert await bot.delete_all_objects() == 3
    assert scene.entities == []
    assert scene.attempted == ["naf-1", "naf-2", "naf-3"]


@pytest.mark.asyncio
async def test_listing_failure_is_swallowed(make_bot, page):
    def broken():
        raise PlaywrightError("NAF is not defined")

    page.handle("listNetworkedMedia", broken)
    bot = make_bot()

    assert await bot.delete_all_objects() == 0
