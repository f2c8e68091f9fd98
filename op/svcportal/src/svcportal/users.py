# users.py
import logging
from typing import List, Optional

import pydantic

from .dispatcher import Dispatcher, unwrap
from .errors import ApiError
from .models import User
from .store import Store

logger = logging.getLogger(__name__)


class UserDirectory(Store):
    """Admin listing of every account on the platform."""

    def __init__(self, dispatcher: Dispatcher):
        super().__init__()
        self.dispatcher = dispatcher
        self.users: List[User] = []
        self.loading = False
        self.error: Optional[str] = None

    async def fetch_all_users(self) -> List[User]:
        self._set(loading=True, error=None)
        try:
            body = unwrap(await self.dispatcher.get("/admin/users"))
            users = [User.model_validate(u) for u in (body or [])]
        except ApiError as e:
            self._set(loading=False, error=e.message or "Failed to fetch users")
            return self.users
        except pydantic.ValidationError as e:
            logger.error("unreadable user list: %s", e)
            self._set(loading=False, error="Failed to fetch users")
            return self.users
        self._set(users=users, loading=False)
        return users

    def clear(self) -> None:
        self._set(users=[], error=None)
