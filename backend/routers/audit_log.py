from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
from typing import Optional

from database import get_db
from schemas.audit_log import AuditLog
from crud.audit_log import get_audit_logs
from utils.pagination import pagination_info
from utils.tenancy import get_tenant_id

router = APIRouter(
    prefix="/audit-logs",
    tags=["Audit Logs"],
)


@router.get("/")
def read_audit_logs(
    table_name: Optional[str] = None,
    record_id: Optional[int] = None,
    action: Optional[str] = None,
    page: int = Query(1, ge=1),
    limit: int = Query(50, ge=1, le=200),
    db: Session = Depends(get_db),
    tenant_id: str = Depends(get_tenant_id)
):
    logs, total = get_audit_logs(
        db, tenant_id,
        table_name=table_name,
        record_id=record_id,
        action=action,
        skip=(page - 1) * limit,
        limit=limit
    )
    return {
        "data": [AuditLog.model_validate(log) for log in logs],
        "pagination": pagination_info(page, limit, total),
    }
