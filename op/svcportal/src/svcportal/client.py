# client.py
import logging
from pathlib import Path

import httpx

from .db import SessionStorage
from .dispatcher import Dispatcher
from .provider_requests import ProviderRequestWorkflow
from .service_page import ServicePageWorkflow
from .session import SessionManager
from .settings import settings
from .uploads import UploadWorkflow
from .users import UserDirectory

logger = logging.getLogger(__name__)


class PortalClient:
    """Wires one session and every workflow around a single dispatcher.

    The persisted session is restored while this object is built, before
    any request can go out. Use as ``async with PortalClient() as portal:``
    or call ``close()`` when done.
    """

    def __init__(self, base_url: str | None = None,
                 storage_path: str | Path | None = None,
                 transport: httpx.AsyncBaseTransport | None = None,
                 timeout: float | None = None):
        self.storage = SessionStorage(storage_path or settings.STORAGE_PATH)
        self.dispatcher = Dispatcher(
            base_url=base_url,
            token_provider=lambda: self.session.current_token(),
            timeout=timeout,
            transport=transport,
        )
        self.session = SessionManager(self.dispatcher, self.storage)
        self.provider_requests = ProviderRequestWorkflow(self.dispatcher)
        self.uploads = UploadWorkflow(self.dispatcher)
        self.service_page = ServicePageWorkflow(self.dispatcher)
        self.users = UserDirectory(self.dispatcher)
        logger.debug("portal client ready for %s (authenticated=%s)",
                     self.dispatcher.base_url, self.session.is_authenticated)

    async def close(self):
        await self.dispatcher.close()

    async def __aenter__(self) -> "PortalClient":
        return self

    async def __aexit__(self, *exc_info):
        await self.close()
