# services/auth.py
import logging
import secrets
from typing import ClassVar, Optional, Self

from event_judging.db.database import DataBase
from event_judging.db.schemas.admin_user import AdminSession
from event_judging.errors import InvalidCredentials
from event_judging.services.audit_log import audit_logger
from event_judging.services.identity import (
    Identity,
    SessionStore,
    clear_session,
    identity_from_session,
    write_session,
)

logger = logging.getLogger(__name__)


class AuthService:
    _instance: ClassVar[Optional["AuthService"]] = None

    def __new__(cls) -> Self:
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __init__(self) -> None:
        if getattr(self, "_initialized", False):
            return

        self._database = DataBase()
        self._initialized = True

    async def login(self, store: SessionStore, username: str, password: str) -> Identity:
        """
        Check the credentials against ``admin_users`` and write the admin into the session.
        The stored value is compared as-is; hashing is out of scope here.
        """
        admin = await self._database.get_admin_user(username.strip() if username else None)
        if admin is None or not secrets.compare_digest(password.encode("utf-8"), admin.password_hash.encode("utf-8")):
            logger.info("Rejected admin login for %r", username)
            await audit_logger.log(action="auth.login.error", actor=username or None)
            raise InvalidCredentials()

        write_session(store, AdminSession.model_validate(admin))
        identity = identity_from_session(store)
        await audit_logger.log(action="auth.login", actor=identity.actor_label, payload={"kind": identity.kind})
        return identity

    async def logout(self, store: SessionStore) -> None:
        identity = identity_from_session(store)
        clear_session(store)
        if identity.is_admin:
            await audit_logger.log(action="auth.logout", actor=identity.actor_label)

    def current_identity(self, store: SessionStore) -> Identity:
        return identity_from_session(store)
