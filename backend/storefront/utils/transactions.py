from contextlib import contextmanager
from typing import Iterator

from sqlalchemy.orm import Session


@contextmanager
def smart_transaction(session: Session) -> Iterator:
    """
    Run a block of DB work as one unit on the given Session.

    If the session is idle a normal transaction is started with session.begin().
    If a transaction is already open (the session autobegins on the first
    query) the block joins it and the whole transaction is committed on exit.
    Any exception rolls everything back before propagating.
    Usage:
        with smart_transaction(db):
            ... DB work ...
    """
    if not session.in_transaction():
        with session.begin():
            yield
        return
    try:
        yield
        session.commit()
    except Exception:
        session.rollback()
        raise
