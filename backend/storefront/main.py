import os
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from storefront.api.health import router as health_router
from storefront.api.routes_auth import router as auth_router
from storefront.api.routes_cart import router as cart_router
from storefront.api.routes_catalogue import router as catalogue_router
from storefront.api.routes_coupons import router as coupons_router
from storefront.api.routes_order import router as order_router
from storefront.api.routes_reviews import product_reviews_router
from storefront.api.routes_reviews import router as reviews_router
from storefront.api.routes_users import router as users_router
from storefront.api.routes_wishlist import router as wishlist_router
from storefront.config import settings
from storefront.db import init_db
from storefront.errors import AppError
from storefront.utils.log import get_logger

log = get_logger("storefront.api")


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Use env var RESET_DB=1 in CI to start from an empty schema
    init_db(reset=os.environ.get("RESET_DB", "0") in ("1", "true", "True"))
    yield


app = FastAPI(title="Storefront - Backend", version="0.1.0", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.FRONTEND_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(AppError)
async def app_error_handler(request: Request, exc: AppError):
    return JSONResponse(status_code=exc.status_code, content={"error": exc.message})


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException):
    return JSONResponse(status_code=exc.status_code, content={"error": str(exc.detail)})


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    first = exc.errors()[0] if exc.errors() else {}
    where = ".".join(str(p) for p in first.get("loc", ()) if p != "body")
    msg = first.get("msg", "Invalid input data")
    return JSONResponse(status_code=400, content={"error": f"{where}: {msg}" if where else msg})


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    log.exception("unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(status_code=500, content={"error": "Internal server error"})


app.include_router(health_router, prefix="/api", tags=["health"])

app.include_router(auth_router, tags=["auth"])

app.include_router(users_router, tags=["users"])

app.include_router(catalogue_router, prefix="/api/products", tags=["catalogue"])

app.include_router(cart_router, tags=["cart"])

app.include_router(coupons_router, tags=["coupons"])

app.include_router(order_router, prefix="/api/orders", tags=["orders"])

app.include_router(wishlist_router, tags=["wishlist"])

app.include_router(product_reviews_router, tags=["reviews"])

app.include_router(reviews_router, tags=["reviews"])
