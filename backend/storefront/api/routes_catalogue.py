from fastapi import APIRouter, Depends, Query
from typing import Optional
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session
from storefront.api.deps import require
from storefront.db import get_db
from storefront.errors import NotFoundError, ValidationError
from storefront.repositories.product_repo import ProductRepository
from storefront.schemas.product_schema import ProductOut

router = APIRouter(tags=["catalogue"])


class ProductIn(BaseModel):
    sku: str
    name: str
    description: Optional[str] = None
    price_cents: int = Field(..., ge=0)
    stock: int = Field(..., ge=0)


class ProductPatch(BaseModel):
    name: Optional[str] = None
    description: Optional[str] = None
    price_cents: Optional[int] = Field(None, ge=0)
    stock: Optional[int] = Field(None, ge=0)
    active: Optional[bool] = None


def _get_or_404(repo: ProductRepository, product_id: int):
    p = repo.get(product_id, active_only=False)
    if not p:
        raise NotFoundError("Product not found")
    return p


def _page(items, total) -> dict:
    return {
        "items": [ProductOut.model_validate(p).model_dump(mode="json") for p in items],
        "total": total,
    }


@router.get("", summary="List products")
def list_products(
    q: Optional[str] = Query(None, description="search term"),
    page: int = Query(1, ge=1),
    size: int = Query(20, ge=1, le=200),
    sort: str = Query("name", description="column, '-' prefix for descending"),
    db: Session = Depends(get_db),
):
    repo = ProductRepository(db)
    try:
        items, total = repo.list(q=q, page=page, size=size, sort=sort)
    except ValueError as e:
        raise ValidationError(str(e))
    return _page(items, total)


# fixed orderings; declared before /{product_id} so the literal paths win
def _top(db: Session, sort: str, size: int) -> dict:
    return _page(*ProductRepository(db).list(page=1, size=size, sort=sort))


@router.get("/top-sold", summary="Best selling products")
def top_sold(size: int = Query(5, ge=1, le=200), db: Session = Depends(get_db)):
    return _top(db, "-sold", size)


@router.get("/top-rated", summary="Best rated products")
def top_rated(size: int = Query(5, ge=1, le=200), db: Session = Depends(get_db)):
    return _top(db, "-rating_average", size)


@router.get("/new-arrivals", summary="Newest products")
def new_arrivals(size: int = Query(5, ge=1, le=200), db: Session = Depends(get_db)):
    return _top(db, "-created_at", size)


@router.get("/{product_id}", summary="Get product")
def get_product(product_id: int, db: Session = Depends(get_db)):
    repo = ProductRepository(db)
    p = repo.get(product_id)
    if not p:
        raise NotFoundError("Product not found")
    return ProductOut.model_validate(p).model_dump(mode="json")


@router.post("", status_code=201, summary="Create product", dependencies=[Depends(require("product:manage"))])
def create_product(payload: ProductIn, db: Session = Depends(get_db)):
    repo = ProductRepository(db)
    if repo.get_by_sku(payload.sku):
        raise ValidationError("SKU already exists")
    p = repo.create_or_update(**payload.model_dump())
    db.commit()
    return ProductOut.model_validate(p).model_dump(mode="json")


@router.patch("/{product_id}", summary="Update product", dependencies=[Depends(require("product:manage"))])
def update_product(product_id: int, payload: ProductPatch, db: Session = Depends(get_db)):
    repo = ProductRepository(db)
    p = repo.update(_get_or_404(repo, product_id), **payload.model_dump(exclude_none=True))
    db.commit()
    return ProductOut.model_validate(p).model_dump(mode="json")


@router.delete("/{product_id}", summary="Deactivate product", dependencies=[Depends(require("product:manage"))])
def delete_product(product_id: int, db: Session = Depends(get_db)):
    # soft delete: order lines and carts keep pointing at the row
    repo = ProductRepository(db)
    repo.update(_get_or_404(repo, product_id), active=False)
    db.commit()
    return {"ok": True}
