# errors.py
from typing import Optional

from event_judging.db.enums import DenialReason
from event_judging.i18n import Localizer


class NotFound(LookupError):
    """A requested event, judge, participant or criterion does not exist."""

    def __init__(self, entity: str, key: object) -> None:
        super().__init__(Localizer()("errors.not_found", entity=entity, ident=key))
        self.entity = entity
        self.key = key


class AccessDenied(PermissionError):
    def __init__(self, reason: DenialReason, message: str, locked_by: Optional[str] = None) -> None:
        super().__init__(message)
        self.reason = reason
        self.locked_by = locked_by


class InvalidCredentials(PermissionError):
    def __init__(self) -> None:
        super().__init__(Localizer()("errors.invalid_credentials"))


class InvalidInput(ValueError):
    pass


class MutationFailure(RuntimeError):
    """The store rejected or failed a write. Nothing was applied locally."""


class LockUpdateNotApplied(MutationFailure):
    """The lock update reached the store but matched no row."""

    def __init__(self, event_id: int) -> None:
        super().__init__(Localizer()("errors.lock_not_applied", event_id=event_id))
        self.event_id = event_id


__all__ = [
    "NotFound",
    "AccessDenied",
    "InvalidCredentials",
    "InvalidInput",
    "MutationFailure",
    "LockUpdateNotApplied",
]
