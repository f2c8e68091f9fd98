# service_page.py
"""A provider's public service page and its menu.

Saving is two independent kinds of backend call with no transaction around
them: one menu-create per new item (run concurrently), then a single
multipart page upload. When the upload fails, menus created before it stay
on the server; the next ``fetch_menus`` is what reconciles the client.
"""
import asyncio
import logging
from typing import Any, Iterable, Iterator, List, Optional

import pydantic

from .dispatcher import Dispatcher, unwrap
from .errors import ApiError, NotFoundError
from .models import MenuCreate, MenuItem, ServicePage
from .store import Store

logger = logging.getLogger(__name__)

LOAD_FAILED_MESSAGE = "Failed to load page data. Please refresh."


class MenuDraft:
    """Menu items being edited before a save.

    Pure local state: names are trimmed, blanks dropped and duplicates
    rejected case-insensitively. Nothing here talks to the backend.
    """

    def __init__(self, items: Iterable[MenuItem | str] = ()):
        self._items: List[MenuItem] = []
        for item in items:
            if isinstance(item, MenuItem):
                self._add_item(item)
            else:
                self.add(item)

    def _index(self, name: str) -> int:
        folded = name.strip().casefold()
        for i, item in enumerate(self._items):
            if item.name.strip().casefold() == folded:
                return i
        return -1

    def _add_item(self, item: MenuItem) -> bool:
        if not item.name.strip() or self._index(item.name) >= 0:
            return False
        if item.name != item.name.strip():
            item = item.model_copy(update={"name": item.name.strip()})
        self._items.append(item)
        return True

    def add(self, name: str) -> bool:
        return self._add_item(MenuItem(name=name.strip()))

    def remove(self, name: str) -> bool:
        i = self._index(name)
        if i < 0:
            return False
        del self._items[i]
        return True

    @property
    def items(self) -> List[MenuItem]:
        return list(self._items)

    @property
    def names(self) -> List[str]:
        return [item.name for item in self._items]

    def __iter__(self) -> Iterator[MenuItem]:
        return iter(list(self._items))

    def __len__(self) -> int:
        return len(self._items)


class ServicePageWorkflow(Store):

    def __init__(self, dispatcher: Dispatcher):
        super().__init__()
        self.dispatcher = dispatcher
        self.page: Optional[ServicePage] = None
        self.pages: List[ServicePage] = []
        self.menus: List[MenuItem] = []
        self.loading = False
        self.error: Optional[str] = None
        self.success = False

    # ---- reads ----

    async def fetch_service_page(self) -> Optional[ServicePage]:
        """Load the caller's page. A 404 means "no page yet" and is not an error."""
        self._set(loading=True, error=None)
        try:
            body = await self.dispatcher.get("/service-page")
            data = unwrap(body)
            page = ServicePage.model_validate(data) if data else None
        except NotFoundError:
            self._set(page=None, loading=False, error=None)
            return None
        except (ApiError, pydantic.ValidationError) as e:
            logger.error("failed to load service page: %s", e)
            self._set(page=None, loading=False, error=LOAD_FAILED_MESSAGE)
            return None
        self._set(page=page, loading=False)
        return page

    async def fetch_menus(self, owner_id: int | str) -> List[MenuItem]:
        self._set(loading=True, error=None)
        try:
            body = unwrap(await self.dispatcher.get(f"/service-page/users/{owner_id}/menus"))
            menus = [MenuItem.model_validate(m) for m in (body or [])]
        except ApiError as e:
            self._set(loading=False, error=e.message)
            return self.menus
        except pydantic.ValidationError as e:
            logger.error("unreadable menu list for owner %s: %s", owner_id, e)
            self._set(loading=False, error=LOAD_FAILED_MESSAGE)
            return self.menus
        self._set(menus=menus, loading=False)
        return menus

    async def fetch_all_pages_admin(self) -> List[ServicePage]:
        self._set(loading=True, error=None)
        try:
            body = unwrap(await self.dispatcher.get("/admin/service-pages"))
            pages = [ServicePage.model_validate(p) for p in (body or [])]
        except ApiError as e:
            self._set(loading=False, error=e.message)
            return self.pages
        except pydantic.ValidationError as e:
            logger.error("unreadable service page list: %s", e)
            self._set(loading=False, error=LOAD_FAILED_MESSAGE)
            return self.pages
        self._set(pages=pages, loading=False)
        return pages

    def effective_menu(self) -> List[MenuItem]:
        """Fetched menus win over the page's embedded snapshot once non-empty."""
        if self.menus:
            return list(self.menus)
        if self.page is not None:
            return list(self.page.menu)
        return []

    def draft(self) -> MenuDraft:
        return MenuDraft(self.effective_menu())

    # ---- writes ----

    async def _create_menu(self, owner_id: int | str, name: str) -> MenuItem:
        body = await self.dispatcher.post(
            f"/service-page/{owner_id}/menus", json=MenuCreate(name=name).model_dump(exclude_none=True),
        )
        data = unwrap(body)
        item = MenuItem.model_validate(data) if isinstance(data, dict) else MenuItem(name=name)
        self._set(menus=[*self.menus, item])
        return item

    async def create_menu(self, owner_id: int | str, name: str) -> MenuItem:
        self._set(loading=True, error=None)
        try:
            item = await self._create_menu(owner_id, name)
        except ApiError as e:
            self._set(loading=False, error=e.message)
            raise
        self._set(loading=False)
        return item

    async def save_page(self, owner_id: int | str, content: str,
                        menu_items: Iterable[MenuItem | str],
                        logo: Any = None, banner: Any = None) -> ServicePage:
        """Create the new menu items, then upload the page as one multipart body.

        ``logo`` and ``banner`` are sent only when given; leaving them out
        keeps whatever the server already has. Items that already carry an
        id exist on the server and are not created again.

        Not atomic. If a menu create fails the page upload is skipped; if the
        upload fails the menus created just before remain. Either way the
        error is recorded and raised, and nothing is rolled back.
        """
        names = []
        for item in menu_items:
            if isinstance(item, MenuItem):
                if item.id is None:
                    names.append(item.name)
            else:
                names.append(str(item))

        self._set(loading=True, error=None, success=False)

        results = await asyncio.gather(
            *(self._create_menu(owner_id, name) for name in names),
            return_exceptions=True,
        )
        failures = [r for r in results if isinstance(r, BaseException)]
        if failures:
            first = failures[0]
            logger.warning("%d of %d menu creates failed for owner %s",
                           len(failures), len(names), owner_id)
            message = first.message if isinstance(first, ApiError) else str(first)
            self._set(loading=False, error=message)
            raise first

        files: dict = {"content": (None, (content or "").encode("utf-8"))}
        if logo is not None:
            files["logo"] = logo
        if banner is not None:
            files["banner"] = banner

        try:
            body = await self.dispatcher.post("/service-page", files=files)
        except ApiError as e:
            logger.warning("service page save failed after creating %d menu item(s): %s",
                           len(names), e.message)
            self._set(loading=False, error=e.message, success=False)
            raise

        data = unwrap(body)
        try:
            page = ServicePage.model_validate(data) if isinstance(data, dict) else self.page
        except pydantic.ValidationError:
            logger.warning("service page saved but reply was unreadable; keeping local copy")
            page = self.page
        self._set(page=page, loading=False, success=True)
        logger.info("service page saved for owner %s", owner_id)
        return page

    def reset_error(self) -> None:
        self._set(error=None)

    def reset_status(self) -> None:
        self._set(error=None, success=False)
