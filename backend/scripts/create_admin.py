#!/usr/bin/env python3
"""
Create the admin account (or promote an existing user to admin).
Registration through the API only ever creates regular users; run this once
when bootstrapping an environment.

Usage:
    python scripts/create_admin.py --email admin@example.com --password secret
"""
import argparse
import os
import sys

# allow running from repo/scripts
sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

from storefront.db import SessionLocal, init_db
from storefront.services.auth_service import AuthService


def create_admin(email: str, password: str, username: str = "admin"):
    init_db()
    db = SessionLocal()
    try:
        user = AuthService(db).bootstrap_admin(email, password, username=username)
        print(f"Admin ready: id={user.id} email={user.email}")
    finally:
        db.close()


if __name__ == "__main__":
    parser = argparse.ArgumentParser()
    parser.add_argument("--email", required=True)
    parser.add_argument("--password", required=True)
    parser.add_argument("--username", default="admin")
    args = parser.parse_args()
    create_admin(args.email, args.password, args.username)
