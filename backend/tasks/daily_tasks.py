import logging
from datetime import date
from sqlalchemy.orm import Session

from database import SessionLocal
from crud import bill_reminders as bills_crud
from crud import budgets as budgets_crud
from crud.tenants import get_active_tenants
from utils.cache import report_cache, tenant_tag
from utils.dates import today_local

logger = logging.getLogger(__name__)


def run_tenant_tasks(db: Session, tenant_id: str, today: date) -> dict:
    """
    Daily housekeeping for one tenant.

    Flags unpaid bills past their due date, logs budgets over their alert
    threshold and drops the tenant's cached reports so dashboards pick up
    the new day.
    """
    overdue = bills_crud.mark_overdue_bills(db, tenant_id, today)
    if overdue:
        logger.info(f"Marked {overdue} bill(s) overdue for tenant '{tenant_id}'")

    alerts = budgets_crud.get_budget_alerts(db, tenant_id, today)
    for alert in alerts:
        logger.warning(f"Tenant '{tenant_id}': {alert['message']}")

    report_cache.invalidate_by_tags([tenant_tag(tenant_id)])
    return {"overdue_bills": overdue, "budget_alerts": len(alerts)}


def run_daily_tasks(today: date = None) -> dict:
    today = today or today_local()
    logger.info(f"Starting daily tasks for {today}")
    db: Session = SessionLocal()
    results = {}
    try:
        tenant_ids = [str(tenant.id) for tenant in get_active_tenants(db)]
        for tenant_id in tenant_ids:
            try:
                results[tenant_id] = run_tenant_tasks(db, tenant_id, today)
            except Exception:
                db.rollback()
                logger.exception(f"Daily tasks failed for tenant '{tenant_id}'")
    finally:
        db.close()
    logger.info(f"Daily tasks finished for {len(results)} tenant(s)")
    return results
