import logging
import os
from threading import Lock
from typing import Any, Callable, Dict, List, Optional

from pydantic import ValidationError

from marketplace.data.fixtures import initial_state
from marketplace.errors import MarketplaceError, MarketplaceNotFoundError
from marketplace.models import (
    ACTION_KINDS,
    ClearCurrentUser,
    MarketplaceState,
    Role,
    SetCurrentUser,
    User,
    parse_action,
)
from marketplace.services.reducer import reduce
from marketplace.services.validation import validate_action
from marketplace.session import authenticate, find_login_user

logger = logging.getLogger(__name__)

Listener = Callable[[MarketplaceState], None]


def _env_flag(name: str, default: bool = False) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes"}


STRICT_ACTIONS = _env_flag("MARKETPLACE_STRICT_ACTIONS")


class MarketplaceStore:
    """Owns the authoritative snapshot and admits one action at a time."""

    def __init__(self, initial: Optional[MarketplaceState] = None, strict: Optional[bool] = None) -> None:
        self._lock = Lock()
        self._state = initial if initial is not None else MarketplaceState()
        self._strict = STRICT_ACTIONS if strict is None else strict
        self._listeners: List[Listener] = []

    @property
    def state(self) -> MarketplaceState:
        return self._state

    @property
    def strict(self) -> bool:
        return self._strict

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        with self._lock:
            self._listeners.append(listener)

        def unsubscribe() -> None:
            with self._lock:
                if listener in self._listeners:
                    self._listeners.remove(listener)

        return unsubscribe

    def dispatch(self, action: Any) -> MarketplaceState:
        kind = getattr(action, "kind", type(action).__name__)
        with self._lock:
            current = self._state
            if self._strict:
                try:
                    validate_action(current, action)
                except MarketplaceError as exc:
                    logger.warning("action rejected kind=%s reason=%s", kind, exc)
                    raise
            updated = reduce(current, action)
            self._state = updated
            listeners = list(self._listeners)
        if updated is current:
            logger.info("action ignored kind=%s", kind)
            return updated
        logger.info("action applied kind=%s", kind)
        for listener in listeners:
            listener(updated)
        return updated

    def dispatch_raw(self, payload: Dict[str, Any]) -> MarketplaceState:
        """Dispatch an action given as a plain mapping.

        Unknown kinds are ignored; a known kind with a malformed payload raises
        pydantic's ValidationError.
        """
        kind = payload.get("kind")
        if kind not in ACTION_KINDS:
            logger.warning("unknown action kind=%s", kind)
            return self._state
        try:
            action = parse_action(payload)
        except ValidationError:
            logger.warning("malformed action payload kind=%s", kind)
            raise
        return self.dispatch(action)

    def login(self, email: str, password: str) -> User:
        user = authenticate(self._state.users, email=email, password=password)
        if user is None:
            raise MarketplaceNotFoundError("Invalid email or password")
        self.dispatch(SetCurrentUser(user=user))
        return user

    def login_as(self, role: Role, email: Optional[str] = None) -> User:
        user = find_login_user(self._state.users, role=role, email=email)
        if user is None:
            raise MarketplaceNotFoundError(f"No user found with role {role}")
        self.dispatch(SetCurrentUser(user=user))
        return user

    def logout(self) -> None:
        self.dispatch(ClearCurrentUser())


def create_store(strict: Optional[bool] = None) -> MarketplaceStore:
    return MarketplaceStore(initial=initial_state(), strict=strict)
