# backend/utils/audit.py
from typing import Optional
from fastapi import Request
from sqlalchemy.orm import Session
from models.log import Log, LOG_SUCCESS


def client_ip(request: Optional[Request]) -> Optional[str]:
    if request is None or request.client is None:
        return None
    return request.client.host


def write_log(db: Session, *, user_id, action, resource, resource_id=None, status=LOG_SUCCESS, request=None, meta=None):
    """Append an audit entry and commit it in its own transaction."""
    entry = Log(
        user_id=user_id,
        action=action,
        resource=resource,
        resource_id=resource_id,
        status=status,
        ip=client_ip(request),
        meta=meta or {},
    )
    db.add(entry)
    db.commit()
