# services/audit_log.py
from __future__ import annotations

import inspect
import logging
from datetime import date, datetime
from enum import Enum
from functools import wraps
from typing import Any, ClassVar, Iterable, Mapping, Optional

from sqlalchemy.exc import SQLAlchemyError

from event_judging.config import Settings
from event_judging.db.database import DataBase
from event_judging.db.schemas.audit_log import AuditLogCreate, AuditLogRead


def to_jsonable(value: Any) -> Any:
    """Reduce DTOs, identities, dates and containers to plain JSON values."""
    if value is None or isinstance(value, (bool, int, float)):
        return value
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, str):
        return value
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if hasattr(value, "model_dump"):
        return to_jsonable(value.model_dump())
    if isinstance(value, Mapping):
        return {str(k): to_jsonable(v) for k, v in value.items()}
    if isinstance(value, (list, tuple, set, frozenset)):
        return [to_jsonable(v) for v in value]
    # MISSING and other opaque markers
    return repr(value)


class AuditLogService:
    """
    Records who changed what: mark saves, lock changes, participant edits, logins.

    Every entry is written to the ``event_judging.audit`` logger. With
    ``AUDIT_PERSIST`` on (the default) it is also stored in ``audit_log``.
    """

    _instance: ClassVar[Optional["AuditLogService"]] = None

    def __new__(cls) -> "AuditLogService":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __init__(self) -> None:
        if getattr(self, "_initialized", False):
            return

        self._database = DataBase()
        self._persist = Settings().audit_persist
        self._logger = logging.getLogger("event_judging.audit")
        self._initialized = True

    async def log(
        self,
        *,
        action: str,
        actor: Any = None,
        payload: Any = None,
    ) -> Optional[AuditLogRead]:
        """
        :param action: dotted label, e.g. ``marks.save_marks`` or ``auth.login``
        :param actor: username string or anything with an ``actor_label``
        :param payload: details, reduced with :func:`to_jsonable`
        :returns: the stored row, or None when persistence is off or the insert failed
        """
        label = self._actor_label(actor)
        data = to_jsonable(payload) if payload is not None else {}
        if not isinstance(data, dict):
            data = {"value": data}

        entry = None
        if self._persist:
            try:
                entry = await self._database.create_audit_log(AuditLogCreate(action=action, actor=label, payload=data))
            except SQLAlchemyError as e:
                # the audited call already finished; its outcome is what the caller gets
                self._logger.warning("AUDIT action=%s actor=%s not stored: %s", action, label or "-", e)
        self._logger.info("AUDIT action=%s actor=%s entry=%s", action, label or "-", entry.id if entry else "-")
        return entry

    async def list_entries(
        self,
        *,
        limit: int = 100,
        offset: int = 0,
        actor: str | None = None,
        action: str | None = None,
    ) -> tuple[list[AuditLogRead], int]:
        """Newest entries first, with the total count for the same filter."""
        return await self._database.list_audit_logs(limit=limit, offset=offset, actor=actor, action=action)

    @staticmethod
    def _actor_label(actor: Any) -> Optional[str]:
        if actor is None or isinstance(actor, str):
            return actor
        label = getattr(actor, "actor_label", None)
        return label if isinstance(label, str) else repr(actor)


audit_logger = AuditLogService()


def _audited(fn, action: str, actor_field: Optional[str]):
    signature = inspect.signature(fn)

    @wraps(fn)
    async def wrapper(*args, **kwargs):
        arguments = dict(signature.bind(*args, **kwargs).arguments)
        arguments.pop("self", None)
        actor = arguments.pop(actor_field, None) if actor_field else None
        payload: dict[str, Any] = {
            "call": f"{fn.__module__}.{fn.__qualname__}",
            "arguments": to_jsonable(arguments),
        }
        try:
            result = await fn(*args, **kwargs)
        except Exception as exc:
            payload["error"] = repr(exc)
            await audit_logger.log(action=f"{action}.error", actor=actor, payload=payload)
            raise
        payload["result"] = to_jsonable(result)
        await audit_logger.log(action=action, actor=actor, payload=payload)
        return result

    return wrapper


def instrument_service_class(
    cls,
    *,
    prefix: str | None = None,
    exclude: Iterable[str] | None = None,
    actor_field: str | None = "identity",
) -> None:
    """Wrap the public coroutine methods of a service so each call leaves an audit entry."""
    action_prefix = prefix or cls.__name__
    excluded = set(exclude or ())

    for name, attr in list(cls.__dict__.items()):
        if name.startswith("_") or name in excluded or not inspect.iscoroutinefunction(attr):
            continue
        setattr(cls, name, _audited(attr, f"{action_prefix}.{name}", actor_field))


__all__ = [
    "AuditLogService",
    "audit_logger",
    "instrument_service_class",
    "to_jsonable",
]
