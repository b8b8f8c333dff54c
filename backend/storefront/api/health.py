from storefront.adapters.mock_payment import MockPaymentAdapter
from storefront.db import engine
from fastapi import APIRouter
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from storefront.utils.log import get_logger

log = get_logger("storefront.health")

router = APIRouter()


@router.get("/health", tags=["health"])
def health():
    db_ok = False
    try:
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
            db_ok = True
    except SQLAlchemyError:
        log.exception("database health check failed")
    payment_ok = MockPaymentAdapter().health_check()

    return {
        "status": "ok" if db_ok and payment_ok else "degraded",
        "db": db_ok,
        "payment_adapter": payment_ok,
    }
