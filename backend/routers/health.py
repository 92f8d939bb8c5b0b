import logging
import os

from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from database import get_db
from utils.dates import now_local

router = APIRouter(
    prefix="/health",
    tags=["Health"],
)
logger = logging.getLogger(__name__)

APP_VERSION = os.getenv("APP_VERSION", "1.0.0")


@router.get("")
def health_check():
    return {"status": "ok", "timestamp": now_local().isoformat(), "version": APP_VERSION}


@router.get("/db")
def database_health(db: Session = Depends(get_db)):
    try:
        db.execute(text("SELECT 1"))
    except SQLAlchemyError as e:
        logger.error(f"Database health check failed: {e}")
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content={"status": "unavailable", "timestamp": now_local().isoformat(), "detail": str(e)}
        )
    return {"status": "ok", "timestamp": now_local().isoformat()}
