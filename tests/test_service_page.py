"""
Tests for the service page workflow and menu editing
"""

import pytest
import pytest_asyncio

from svcportal.errors import ServerError, ValidationError
from svcportal.models import MenuItem
from svcportal.service_page import LOAD_FAILED_MESSAGE, MenuDraft


@pytest_asyncio.fixture
async def owner(portal, provider):
    await portal.session.login("owner@example.com", "secret")
    return portal.service_page


class TestFetch:

    @pytest.mark.asyncio
    async def test_missing_page_is_not_an_error(self, owner):
        page = await owner.fetch_service_page()

        assert page is None
        assert owner.page is None
        assert owner.error is None
        assert not owner.loading

    @pytest.mark.asyncio
    async def test_page_is_unwrapped_from_data_envelope(self, owner, backend, provider):
        backend.add_page(provider["id"], content="Best cuts in town", menu=["Trim"])

        page = await owner.fetch_service_page()

        assert page.content == "Best cuts in town"
        assert [m.name for m in page.menu] == ["Trim"]

    @pytest.mark.asyncio
    async def test_other_failures_set_load_error(self, owner, backend):
        backend.fail("GET", "/service-page", 500, {"message": "boom"})

        assert await owner.fetch_service_page() is None
        assert owner.error == LOAD_FAILED_MESSAGE

    @pytest.mark.asyncio
    async def test_admin_lists_every_page(self, portal, backend, admin, provider):
        backend.add_page(provider["id"], content="a")
        await portal.session.login("admin@example.com", "secret")

        pages = await portal.service_page.fetch_all_pages_admin()

        assert [p.user_id for p in pages] == [provider["id"]]


class TestSavePage:

    @pytest.mark.asyncio
    async def test_created_menus_come_back_on_fetch(self, owner, backend, provider):
        backend.add_page(provider["id"], content="old", menu=["Embedded default"])
        await owner.fetch_service_page()

        await owner.save_page(provider["id"], "Classic barbershop", ["Haircut", "Shave"])
        menus = await owner.fetch_menus(provider["id"])

        assert sorted(m.name for m in menus) == ["Haircut", "Shave"]
        assert sorted(m.name for m in owner.effective_menu()) == ["Haircut", "Shave"]
        assert owner.success is True
        assert owner.page.content == "Classic barbershop"

    @pytest.mark.asyncio
    async def test_page_failure_keeps_created_menus(self, owner, backend, provider):
        backend.fail("POST", "/service-page", 500, {"message": "Storage unavailable"})

        with pytest.raises(ServerError) as exc_info:
            await owner.save_page(provider["id"], "content", ["Wash"])

        assert exc_info.value.message == "Storage unavailable"
        assert owner.error == "Storage unavailable"
        assert owner.success is False
        menus = await owner.fetch_menus(provider["id"])
        assert [m.name for m in menus] == ["Wash"]
        assert not [c for c in backend.calls if c["method"] == "DELETE"]

    @pytest.mark.asyncio
    async def test_menu_failure_skips_page_upload(self, owner, backend, provider):
        backend.fail("POST", f"/service-page/{provider['id']}/menus", 422,
                     {"errors": {"name": ["The name field is required."]}})

        with pytest.raises(ValidationError):
            await owner.save_page(provider["id"], "content", ["A", "B"])

        assert len(backend.calls_to("POST", f"/service-page/{provider['id']}/menus")) == 2
        assert backend.calls_to("POST", "/service-page") == []
        assert owner.error == "The name field is required."

    @pytest.mark.asyncio
    async def test_upload_is_multipart_and_images_are_optional(self, owner, backend, provider):
        await owner.save_page(provider["id"], "text only", [])

        call = backend.calls_to("POST", "/service-page")[-1]
        assert call["content_type"].startswith("multipart/form-data")
        assert call["authorization"] == f"Bearer {owner.dispatcher.token_provider()}"
        assert backend.pages[provider["id"]]["logo"] is None

        await owner.save_page(provider["id"], "with logo", [],
                              logo=("logo.png", b"\x89PNG", "image/png"))
        await owner.save_page(provider["id"], "logo untouched", [])

        page = backend.pages[provider["id"]]
        assert page["logo"] == "logos/logo.png"
        assert page["banner"] is None
        assert page["content"] == "logo untouched"

    @pytest.mark.asyncio
    async def test_items_with_ids_are_not_recreated(self, owner, backend, provider):
        existing = MenuItem(id=99, name="Haircut")

        await owner.save_page(provider["id"], "c", [existing, "Beard trim"])

        created = [m["name"] for m in backend.menus[provider["id"]]]
        assert created == ["Beard trim"]


class TestEffectiveMenu:

    @pytest.mark.asyncio
    async def test_embedded_menu_used_until_fetch_returns_items(self, owner, backend, provider):
        backend.add_page(provider["id"], menu=["Embedded"])
        await owner.fetch_service_page()
        await owner.fetch_menus(provider["id"])

        assert [m.name for m in owner.effective_menu()] == ["Embedded"]

        await owner.create_menu(provider["id"], "Fetched")
        await owner.fetch_menus(provider["id"])

        assert [m.name for m in owner.effective_menu()] == ["Fetched"]
        assert [m.name for m in owner.draft()] == ["Fetched"]


class TestMenuDraft:

    def test_duplicates_ignored_case_insensitively(self):
        draft = MenuDraft(["Haircut"])

        assert draft.add("  haircut ") is False
        assert draft.add("Shave") is True
        assert draft.add("   ") is False
        assert draft.names == ["Haircut", "Shave"]

    def test_remove(self):
        draft = MenuDraft(["Haircut", "Shave"])

        assert draft.remove("SHAVE") is True
        assert draft.remove("Wash") is False
        assert draft.names == ["Haircut"]
        assert len(draft) == 1

    def test_seeded_items_keep_their_ids(self):
        draft = MenuDraft([MenuItem(id=3, name="Haircut"), "Shave"])

        assert [(m.id, m.name) for m in draft.items] == [(3, "Haircut"), (None, "Shave")]

    def test_padded_seed_names_are_trimmed_and_still_deduplicate(self):
        draft = MenuDraft([MenuItem(id=1, name=" Haircut ")])

        assert draft.add("haircut") is False
        assert draft.names == ["Haircut"]
        assert draft.items[0].id == 1
        assert draft.remove("HAIRCUT ") is True
        assert draft.names == []
