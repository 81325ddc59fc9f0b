# services/identity.py
import logging
from typing import Mapping, MutableMapping, Optional, Tuple

from pydantic import BaseModel, ConfigDict, ValidationError

from event_judging.db.enums import IdentityKind
from event_judging.db.schemas.admin_user import AdminSession

logger = logging.getLogger(__name__)

ADMIN_LOGGED_IN_KEY = "admin_logged_in"
ADMIN_USER_KEY = "admin_user"

# Any str -> str mapping works as a session store (web session, dict, ...).
SessionStore = MutableMapping[str, str]


class Identity(BaseModel):
    """Who is calling. Built once per request from the session store and passed explicitly."""
    model_config = ConfigDict(frozen=True)

    kind: IdentityKind = IdentityKind.UNAUTHENTICATED
    username: Optional[str] = None
    event_ids: Tuple[int, ...] = ()

    @classmethod
    def unauthenticated(cls) -> "Identity":
        return cls()

    @classmethod
    def event_admin(cls, username: str, event_ids) -> "Identity":
        return cls(kind=IdentityKind.EVENT_ADMIN, username=username, event_ids=tuple(int(i) for i in event_ids))

    @classmethod
    def god_admin(cls, username: str) -> "Identity":
        return cls(kind=IdentityKind.GOD_ADMIN, username=username)

    @property
    def is_admin(self) -> bool:
        return self.kind != IdentityKind.UNAUTHENTICATED

    @property
    def is_god_admin(self) -> bool:
        return self.kind == IdentityKind.GOD_ADMIN

    @property
    def actor_label(self) -> str:
        return self.username or "anonymous"

    def has_event_access(self, event_id: int) -> bool:
        if self.kind == IdentityKind.GOD_ADMIN:
            return True
        if self.kind == IdentityKind.EVENT_ADMIN:
            return event_id in self.event_ids
        return False


def identity_from_session(store: Mapping[str, str]) -> Identity:
    if store.get(ADMIN_LOGGED_IN_KEY) != "true":
        return Identity.unauthenticated()

    raw = store.get(ADMIN_USER_KEY)
    if not raw:
        logger.warning("Session says logged in but carries no admin user; treating as unauthenticated")
        return Identity.unauthenticated()

    try:
        admin = AdminSession.model_validate_json(raw)
    except (ValidationError, ValueError):
        logger.warning("Unreadable admin user in session; treating as unauthenticated")
        return Identity.unauthenticated()

    if admin.is_god_admin:
        return Identity.god_admin(admin.username)
    return Identity.event_admin(admin.username, admin.event_access)


def write_session(store: SessionStore, admin: AdminSession) -> None:
    store[ADMIN_LOGGED_IN_KEY] = "true"
    store[ADMIN_USER_KEY] = admin.model_dump_json()


def clear_session(store: SessionStore) -> None:
    store.pop(ADMIN_LOGGED_IN_KEY, None)
    store.pop(ADMIN_USER_KEY, None)
