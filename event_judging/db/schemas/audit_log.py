# db/schemas/audit_log.py
from datetime import datetime
from typing import Optional
from event_judging.db.schemas._base import OrmModel

class AuditLogBase(OrmModel):
    actor: Optional[str] = None
    action: str
    payload: dict = {}

class AuditLogCreate(AuditLogBase): ...
class AuditLogRead(AuditLogBase):
    id: int
    created_at: datetime
