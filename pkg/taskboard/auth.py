"""
Login/registration session.

On success the bearer token is stored on the session and handed to the
ApiClient so every later request carries it.
"""
import logging
import time
from typing import Any, Callable, Dict, Optional

from .api import ApiClient
from .errors import ApiError, ValidationError
from .store import ErrorSlot

logger = logging.getLogger(__name__)


class AuthSession:
    """Current user and token for one API client."""

    def __init__(self, api: ApiClient, clock: Callable[[], float] = time.monotonic,
                 error_clear_secs: float = 5.0):
        self.api = api
        self.user: Optional[Dict[str, Any]] = None
        self.token: Optional[str] = api.token
        self.is_loading = False
        self._error = ErrorSlot(error_clear_secs, clock)

    @property
    def error(self) -> Optional[str]:
        return self._error.get()

    @property
    def is_authenticated(self) -> bool:
        return bool(self.token)

    def clear_error(self) -> None:
        self._error.dismiss()

    def _accept(self, response: Dict[str, Any]) -> None:
        self.user = response.get("user")
        self.token = response.get("token")
        self.api.token = self.token
        self.is_loading = False

    def _fail(self, error: Exception, fallback: str) -> bool:
        msg = str(error) or fallback
        logger.error("%s: %s", fallback, msg)
        self._error.set(msg)
        self.is_loading = False
        return False

    def login(self, email: str, password: str) -> bool:
        self.is_loading = True
        self._error.dismiss()
        try:
            response = self.api.login(email, password)
        except ApiError as e:
            return self._fail(e, "Login failed")
        self._accept(response)
        logger.info("Logged in as %s", email)
        return True

    def register(self, name: str, email: str, password: str, confirm_password: str) -> bool:
        self.is_loading = True
        self._error.dismiss()
        try:
            if password != confirm_password:
                raise ValidationError("Passwords do not match")
            response = self.api.register(name, email, password)
        except (ApiError, ValidationError) as e:
            return self._fail(e, "Registration failed")
        self._accept(response)
        logger.info("Registered %s", email)
        return True

    def logout(self) -> None:
        self.user = None
        self.token = None
        self.api.token = None
        self._error.dismiss()
