import importlib

from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, declarative_base
from storefront.config import settings
from storefront.utils.log import get_logger

log = get_logger("storefront.db")

DATABASE_URL = settings.DATABASE_URL
connect_args = {"check_same_thread": False} if DATABASE_URL.startswith("sqlite") else {}
engine = create_engine(DATABASE_URL, future=True, echo=False, connect_args=connect_args)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
Base = declarative_base()

# every module defining a mapped class; imported so metadata is populated
MODEL_MODULES = [
    "storefront.models.user",
    "storefront.models.product",
    "storefront.models.coupon",
    "storefront.models.cart",
    "storefront.models.cart_item",
    "storefront.models.order",
    "storefront.models.idempotency",
    "storefront.models.wishlist",
    "storefront.models.review",
]


def init_db(reset: bool = False):
    """
    Initialize DB schema.

    With reset=True every table is dropped and recreated (tests, RESET_DB=1);
    otherwise missing tables are created and existing ones are left alone.
    """
    for mod in MODEL_MODULES:
        importlib.import_module(mod)

    if reset:
        log.info("Resetting database schema")
        Base.metadata.drop_all(bind=engine)

    Base.metadata.create_all(bind=engine)
    log.debug("Database initialized: %s", sorted(Base.metadata.tables))


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
