from typing import Optional, Tuple

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from storefront.db import SessionLocal  # short-lived sessions so markers are visible at once
from storefront.errors import ValidationError
from storefront.models.idempotency import IdempotencyRecord, IdempotencyStatus
from storefront.utils.log import get_logger

log = get_logger("storefront.idempotency")


class IdempotencyRepository:
    def __init__(self, db: Session):
        # db is the caller's session (longer-lived)
        self.db = db

    def get(self, key: str) -> Optional[IdempotencyRecord]:
        """
        Return the idempotency record for `key`, read fresh from the DB so a
        long-lived session does not hand back a stale status.
        """
        return (
            self.db.query(IdempotencyRecord)
            .filter(IdempotencyRecord.key == key)
            .populate_existing()
            .first()
        )

    def begin(self, key: str, operation: str, owner_id: Optional[int] = None) -> Tuple[Optional[IdempotencyRecord], bool]:
        """
        Atomically ensure an idempotency row exists.
        Returns (record, created):
          - created == True  -> this call inserted the IN_PROGRESS row (owner)
          - created == False -> row already existed (concurrent / previous request)
        A FAILED row is reset to IN_PROGRESS and treated as created, so a failed
        attempt may be retried with the same key. A row belonging to another
        owner is refused before anything is touched.
        """
        created = False
        log.debug("begin(): trying insert key=%r", key)
        try:
            with SessionLocal() as s:
                s.add(
                    IdempotencyRecord(
                        key=key,
                        operation=operation,
                        owner_id=owner_id,
                        status=IdempotencyStatus.IN_PROGRESS,
                    )
                )
                s.commit()
                created = True
        except IntegrityError:
            log.debug("begin(): insert collision for key=%r", key)

        if not created:
            with SessionLocal() as s:
                rec = s.query(IdempotencyRecord).filter(IdempotencyRecord.key == key).first()
                if rec is not None and rec.owner_id not in (None, owner_id):
                    log.debug("begin(): key=%r belongs to owner=%s", key, rec.owner_id)
                    raise ValidationError("Idempotency-Key already used by another request")
                if rec is not None and rec.status == IdempotencyStatus.FAILED:
                    rec.status = IdempotencyStatus.IN_PROGRESS
                    rec.last_error = None
                    s.commit()
                    created = True
        return self.get(key), created

    def mark_completed(self, key: str, response_body: dict):
        """Persist the canonical response and mark the key COMPLETED."""
        self._finish(key, IdempotencyStatus.COMPLETED, response_body=response_body)
        log.debug("mark_completed(): key=%r", key)

    def mark_failed(self, key: str, error_message: str):
        self._finish(key, IdempotencyStatus.FAILED, last_error=error_message[:1024])
        log.debug("mark_failed(): key=%r error=%s", key, error_message)

    def _finish(self, key: str, status: IdempotencyStatus, response_body: dict = None, last_error: str = None):
        with SessionLocal() as s:
            rec = s.query(IdempotencyRecord).filter(IdempotencyRecord.key == key).first()
            if not rec:
                raise RuntimeError("Idempotency record missing for key: " + str(key))
            rec.status = status
            if response_body is not None:
                rec.response_body = response_body
            rec.last_error = last_error
            s.commit()
