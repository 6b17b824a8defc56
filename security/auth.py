"""
security/auth.py
-----------------
Authorization seam for ledger mutations.

The acting user is always passed explicitly as an ActorContext; nothing is
read from ambient or global state. Authentication itself (who the user is,
which capabilities they hold) is decided by the caller.
"""

from dataclasses import dataclass, field
from functools import wraps
from typing import Callable

from errors import PermissionDeniedError
from utils.logger import get_logger

logger = get_logger(__name__)

WRITE = "write"
ADMIN = "admin"


@dataclass(frozen=True)
class ActorContext:
    """
    Identity and capabilities of the user invoking an operation.

    Attributes:
        user_id: Identifier recorded on created documents (createdById).
        display_name: Name recorded in the activity history.
        capabilities: Capability names granted by the caller's auth layer.
    """
    user_id: str
    display_name: str = ""
    capabilities: frozenset[str] = field(default_factory=frozenset)

    @classmethod
    def writer(cls, user_id: str, display_name: str = "") -> "ActorContext":
        return cls(user_id, display_name or user_id, frozenset({WRITE}))

    @classmethod
    def reader(cls, user_id: str, display_name: str = "") -> "ActorContext":
        return cls(user_id, display_name or user_id, frozenset())

    def can(self, capability: str) -> bool:
        return capability in self.capabilities or ADMIN in self.capabilities

    @property
    def name(self) -> str:
        return self.display_name or self.user_id or "Utilisateur inconnu"


def _find_actor(args: tuple, kwargs: dict):
    actor = kwargs.get("actor")
    if actor is None:
        actor = next((a for a in args if isinstance(a, ActorContext)), None)
    return actor


def authorized_only(func: Callable = None, *, capability: str = WRITE):
    """
    Decorator that restricts a ledger operation to actors holding `capability`.

    Usage:
        @authorized_only
        def create_cash_inflow(self, fields, actor): ...

    Behavior:
        - The actor is taken from the ``actor`` keyword or the first
          positional ActorContext argument.
        - A missing actor or missing capability raises PermissionDeniedError
          before the wrapped operation runs.
        - Refused attempts are logged.
    """
    def decorate(fn: Callable):
        @wraps(fn)
        def wrapper(*args, **kwargs):
            actor = _find_actor(args, kwargs)
            if actor is None or not actor.can(capability):
                who = actor.user_id if actor else "anonymous"
                logger.warning(f"Refused {fn.__name__} for user={who}: missing '{capability}'")
                raise PermissionDeniedError(
                    f"{who} is not allowed to run {fn.__name__}"
                )
            return fn(*args, **kwargs)

        return wrapper

    if func is not None:
        return decorate(func)
    return decorate
