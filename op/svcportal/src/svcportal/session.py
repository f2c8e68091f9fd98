# session.py
"""Session lifetime: login, registration, identity refresh, token rotation, logout.

``SessionManager`` is the only writer of the bearer token. The dispatcher reads
it through ``current_token`` on every call. The durable record holds exactly
``{token, user}`` and is written after a successful login, registration or
token refresh, and removed on logout.
"""
import logging
from enum import Enum
from typing import Any, Optional

import pydantic

from .db import SessionStorage
from .dispatcher import Dispatcher
from .errors import (
    ApiError,
    AuthorizationError,
    InvalidCredentials,
    MalformedResponseError,
    ValidationError,
)
from .models import AuthResponse, LoginRequest, MeResponse, RegisterRequest, TokenResponse, User
from .store import Store

logger = logging.getLogger(__name__)


class SessionState(str, Enum):
    ANONYMOUS = "anonymous"
    AUTHENTICATING = "authenticating"
    AUTHENTICATED = "authenticated"
    ERROR = "error"   # no identity, last attempt failed; see ``error``


class SessionManager(Store):

    def __init__(self, dispatcher: Dispatcher, storage: SessionStorage | None = None):
        super().__init__()
        self.dispatcher = dispatcher
        self.storage = storage

        self.user: Optional[User] = None
        self.token: Optional[str] = None
        self.state = SessionState.ANONYMOUS
        self.loading = False
        self.error: Optional[str] = None
        # bumped whenever a session starts or ends; late replies from an older
        # session are dropped
        self._generation = 0

        self.hydrate()

    @property
    def is_authenticated(self) -> bool:
        return self.token is not None and self.user is not None

    def current_token(self) -> Optional[str]:
        return self.token

    # ---- persistence ----

    def hydrate(self) -> None:
        """Restore the persisted ``{token, user}`` record. Never touches the network."""
        if self.storage is None:
            return
        record = self.storage.load()
        if not record:
            return
        token, raw_user = record.get("token"), record.get("user")
        if not token or not raw_user:
            # half a session is no session
            logger.warning("discarding incomplete persisted session")
            self.storage.clear()
            return
        try:
            user = User.model_validate(raw_user)
        except pydantic.ValidationError:
            logger.warning("discarding persisted session with unreadable user")
            self.storage.clear()
            return
        self._set(user=user, token=token, state=SessionState.AUTHENTICATED)
        logger.debug("session restored for user %s", user.id)

    def _persist(self) -> None:
        if self.storage is not None and self.token and self.user:
            self.storage.save(self.token, self.user.model_dump(mode="json"))

    def _establish(self, user: User, token: str) -> None:
        self._generation += 1
        self._set(user=user, token=token, state=SessionState.AUTHENTICATED,
                  loading=False, error=None)
        self._persist()

    def _fail(self, err: ApiError) -> None:
        # a failed attempt leaves any existing session exactly as it was
        state = SessionState.AUTHENTICATED if self.is_authenticated else SessionState.ERROR
        self._set(state=state, loading=False, error=err.message)

    def _clear(self) -> None:
        self._generation += 1
        if self.storage is not None:
            self.storage.clear()
        self._set(user=None, token=None, state=SessionState.ANONYMOUS, loading=False)

    @staticmethod
    def _parse_auth(body: Any, message: str) -> AuthResponse:
        if not isinstance(body, dict) or not body.get("user") or not body.get("token"):
            raise MalformedResponseError(message)
        try:
            return AuthResponse.model_validate(body)
        except pydantic.ValidationError as e:
            raise MalformedResponseError(message) from e

    # ---- transitions ----

    async def login(self, email: str, password: str) -> User:
        """Authenticate with email/password.

        Raises ``InvalidCredentials`` when the server rejects the pair and
        ``MalformedResponseError`` when a success reply lacks user or token.
        """
        payload = LoginRequest(email=email, password=password)
        self._set(state=SessionState.AUTHENTICATING, loading=True, error=None)
        try:
            body = await self.dispatcher.post("/login", json=payload.model_dump())
            auth = self._parse_auth(body, "Invalid login response. Please try again.")
        except AuthorizationError as e:
            err = InvalidCredentials(e.message, status=e.status, errors=e.errors)
            self._fail(err)
            raise err from e
        except ApiError as e:
            self._fail(e)
            raise

        self._establish(auth.user, auth.token)
        logger.info("logged in as user %s (role=%s)", auth.user.id, auth.user.role)
        return auth.user

    async def register(self, name: str, email: str, password: str, confirmation: str) -> User:
        payload = RegisterRequest(
            name=name, email=email, password=password, password_confirmation=confirmation,
        )
        self._set(state=SessionState.AUTHENTICATING, loading=True, error=None)
        try:
            body = await self.dispatcher.post("/register", json=payload.model_dump())
            auth = self._parse_auth(body, "Invalid registration response")
        except ValidationError as e:
            for field, messages in e.errors.items():
                logger.info("registration rejected on %s: %s", field, ", ".join(messages))
            self._fail(e)
            raise
        except ApiError as e:
            self._fail(e)
            raise

        self._establish(auth.user, auth.token)
        logger.info("registered user %s", auth.user.id)
        return auth.user

    async def fetch_user(self) -> Optional[User]:
        """Refresh the identity behind the current token.

        Any failure means the identity can no longer be trusted, so it ends
        in ``logout()`` instead of an exception. Returns None in that case.
        """
        if not self.is_authenticated:
            return None
        generation = self._generation
        try:
            body = await self.dispatcher.get("/me")
            user = MeResponse.model_validate(body).user
        except (ApiError, pydantic.ValidationError) as e:
            if self._generation != generation:
                logger.debug("ignoring failed user fetch from an ended session: %s", e)
                return None
            logger.error("failed to fetch user, ending session: %s", e)
            await self.logout()
            return None
        if self._generation != generation:
            logger.debug("dropping user fetched for an ended session")
            return None
        self._set(user=user, state=SessionState.AUTHENTICATED, error=None)
        return user

    async def refresh_token(self) -> Optional[str]:
        """Rotate the bearer token in place; identity is untouched."""
        if not self.is_authenticated:
            return None
        generation = self._generation
        try:
            body = await self.dispatcher.post("/refresh")
            token = TokenResponse.model_validate(body).token
        except (ApiError, pydantic.ValidationError) as e:
            if self._generation != generation:
                logger.debug("ignoring failed refresh from an ended session: %s", e)
                return None
            logger.error("token refresh failed, ending session: %s", e)
            await self.logout()
            return None
        if self._generation != generation:
            logger.debug("dropping token rotated for an ended session")
            return None
        self._set(token=token)
        self._persist()
        logger.debug("token rotated for user %s", self.user.id if self.user else None)
        return token

    async def logout(self) -> None:
        """Tell the server (best effort), then drop identity and token.

        Safe to call repeatedly; when already anonymous nothing happens.
        """
        if self.token is None and self.user is None:
            return
        try:
            await self.dispatcher.post("/logout")
        except ApiError as e:
            logger.warning("logout request failed: %s", e.message)
        finally:
            self._clear()
        logger.info("logged out")

    def reset_error(self) -> None:
        state = self.state
        if state is SessionState.ERROR:
            state = SessionState.ANONYMOUS
        self._set(error=None, state=state)
