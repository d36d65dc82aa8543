"""
Session controller: the login gate in front of the dashboard.

The controller is either logged out or logged in as an email address. Logging
in mounts a fresh conversation manager; logging out unmounts it, so nothing
from the previous session survives.
"""

import logging
from collections.abc import Callable

from .auth import AuthProvider, FakeAuthProvider
from .config import Settings
from .content import CLIENT_INIT_ERROR
from .conversation import ConversationManager
from .generator import GeneratorUnavailable, create_generator
from .models import Session

logger = logging.getLogger(__name__)

ManagerFactory = Callable[[str], ConversationManager]


class NotAuthenticated(Exception):
    """The dashboard was requested while logged out."""


class AlreadyLoggedIn(Exception):
    """Login was attempted while a session is active."""


def gemini_manager_factory(settings: Settings) -> ManagerFactory:
    """
    Build conversation managers backed by Gemini.

    A new client is created for every mounted dashboard. When it cannot be
    created, the dashboard still mounts and shows the error banner.
    """

    def mount(email: str) -> ConversationManager:
        try:
            generator = create_generator(settings)
        except GeneratorUnavailable as e:
            logger.error("Gemini client unavailable: %s", e)
            return ConversationManager(email, None, client_error=CLIENT_INIT_ERROR)
        return ConversationManager(email, generator)

    return mount


class SessionController:
    """Holds the authentication state for the lifetime of the process."""

    def __init__(
        self,
        manager_factory: ManagerFactory,
        auth: AuthProvider | None = None,
    ) -> None:
        self._manager_factory = manager_factory
        self._auth = auth or FakeAuthProvider()
        self._email: str | None = None
        self._dashboard: ConversationManager | None = None

    @classmethod
    def from_settings(cls, settings: Settings) -> "SessionController":
        return cls(gemini_manager_factory(settings))

    @property
    def session(self) -> Session:
        if self._email is None:
            return Session()
        return Session(authenticated=True, email=self._email)

    @property
    def dashboard(self) -> ConversationManager:
        """
        The mounted conversation manager.

        Raises:
            NotAuthenticated: If nobody is logged in
        """
        if self._dashboard is None:
            raise NotAuthenticated("Log in to open the dashboard")
        return self._dashboard

    async def login(self, email: str, password: str) -> Session:
        """
        Log in and mount a fresh dashboard.

        Raises:
            AlreadyLoggedIn: If a session is active; log out first
            LoginError: If the auth provider rejects the form
        """
        if self._email is not None:
            raise AlreadyLoggedIn(f"Already logged in as {self._email}")

        identity = self._auth.authenticate(email, password)

        self._email = identity
        self._dashboard = self._manager_factory(identity)
        logger.info("Logged in as %s", identity)
        return self.session

    async def logout(self) -> Session:
        if self._dashboard is not None:
            await self._dashboard.close()
            logger.info("Logged out %s", self._email)

        self._email = None
        self._dashboard = None
        return self.session
