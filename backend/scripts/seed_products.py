#!/usr/bin/env python3
"""
Seed the catalogue from a JSON file: either a list of product entries or an
object with an "items" list. Entries are matched on sku and updated in place.

Usage:
    python scripts/seed_products.py --file catalogue.json
"""
import json
import argparse
import sys
import os

# allow running from repo/scripts
sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

from storefront.db import SessionLocal, init_db
from storefront.repositories.product_repo import ProductRepository


def _normalize_entry(entry):
    """Return a normalized dict with keys: sku, name, price_cents, stock, description"""
    sku = entry.get("sku") or entry.get("id") or entry.get("productId")
    name = entry.get("name") or entry.get("title") or ""
    # price parsing: prefer price_cents; otherwise price in major units
    if entry.get("price_cents") is not None:
        price_cents = int(entry["price_cents"])
    else:
        price_cents = int(round(float(entry.get("price", 0) or 0) * 100))
    stock = int(entry.get("stock", entry.get("quantity", 0)) or 0)
    return {
        "sku": sku,
        "name": name,
        "price_cents": price_cents,
        "stock": stock,
        "description": entry.get("description") or "",
    }


def load_entries(path: str):
    with open(path, "r", encoding="utf-8") as f:
        data = json.load(f)
    if isinstance(data, dict):
        source_list = data.get("items", list(data.values()))
    elif isinstance(data, list):
        source_list = data
    else:
        source_list = []
    return [_normalize_entry(e) for e in source_list if isinstance(e, dict)]


def seed(entries):
    init_db()
    db = SessionLocal()
    repo = ProductRepository(db)
    created = 0
    try:
        for entry in entries:
            if not entry.get("sku"):
                continue
            repo.create_or_update(**entry)
            created += 1
        db.commit()
        print("Seeded products:", created)
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()
    return created


if __name__ == "__main__":
    parser = argparse.ArgumentParser()
    parser.add_argument("--file", "-f", required=True, help="Path to product json")
    args = parser.parse_args()
    if not os.path.exists(args.file):
        print("File not found:", args.file)
        sys.exit(1)
    seed(load_entries(args.file))
