import logging
from typing import Optional
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
from models.audit_log import AuditLog
from schemas.audit_log import AuditLogCreate

logger = logging.getLogger(__name__)

def create_audit_log(db: Session, log_entry: AuditLogCreate):
    db_log_entry = AuditLog(**log_entry.model_dump())
    db.add(db_log_entry)
    db.commit()
    db.refresh(db_log_entry)
    return db_log_entry

def record_audit(db: Session, tenant_id: str, table_name: str, record_id: int, action: str,
                 changed_by: str, old_values: Optional[dict] = None, new_values: Optional[dict] = None):
    """
    Write an audit row after the business change has been committed.

    A failure here is logged and rolled back; it never undoes the change it describes.
    """
    try:
        log_entry = AuditLogCreate(
            tenant_id=tenant_id,
            table_name=table_name,
            record_id=record_id,
            changed_by=changed_by or "system",
            action=action,
            old_values=old_values or {},
            new_values=new_values or {}
        )
        return create_audit_log(db, log_entry)
    except SQLAlchemyError:
        db.rollback()
        logger.exception(f"Failed to write audit log for {table_name}#{record_id} ({action})")
        return None

def get_audit_logs(db: Session, tenant_id: str, table_name: str = None, record_id: int = None,
                   action: str = None, skip: int = 0, limit: int = 50):
    query = db.query(AuditLog).filter(AuditLog.tenant_id == tenant_id)
    if table_name:
        query = query.filter(AuditLog.table_name == table_name)
    if record_id is not None:
        query = query.filter(AuditLog.record_id == record_id)
    if action:
        query = query.filter(AuditLog.action == action.upper())
    total = query.count()
    logs = query.order_by(AuditLog.changed_at.desc(), AuditLog.id.desc()).offset(skip).limit(limit).all()
    return logs, total
