"""
Fire concurrent checkouts (or concurrent add+checkout) for the same cart
against a running server and report how many orders were created.
Exactly one checkout per cart should succeed.

Usage:
    python tools/concurrency_checkout.py --email me@example.com --password secret --product 1
"""
import os
import sys
sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

import argparse
import concurrent.futures

from storefront.client import ApiClientError, StorefrontClient

BASE = os.environ.get("STOREFRONT_BASE", "http://127.0.0.1:8000")


def checkout_task(i, token, cart_id):
    client = StorefrontClient(BASE, token=token, timeout=20)
    try:
        order = client.checkout(cart_id, shipping_address="concurrency test")
        return (i, "checkout", 200, order["id"])
    except ApiClientError as e:
        return (i, "checkout", e.status_code, e.message)


def add_task(i, token, product_id):
    client = StorefrontClient(BASE, token=token, timeout=20)
    try:
        cart = client.add_to_cart(product_id, 1)
        return (i, "add", 201, cart["total_price_cents"])
    except ApiClientError as e:
        return (i, "add", e.status_code, e.message)


def run(workers, email, password, product_id, mixed):
    client = StorefrontClient(BASE)
    client.login(email, password)
    cart = client.add_to_cart(product_id, 1)
    print(f"Running checkout test: workers={workers}, cart={cart['id']}, mixed={mixed}")
    with concurrent.futures.ThreadPoolExecutor(max_workers=workers) as ex:
        futures = []
        for i in range(workers):
            if mixed and i % 2:
                futures.append(ex.submit(add_task, i, client.token, product_id))
            else:
                futures.append(ex.submit(checkout_task, i, client.token, cart["id"]))
        results = [f.result() for f in futures]
    for r in results:
        print(r)
    orders = {r[3] for r in results if r[1] == "checkout" and r[2] == 200}
    print("Orders created:", orders)


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Concurrent checkout test tool.")
    parser.add_argument("--email", required=True)
    parser.add_argument("--password", required=True)
    parser.add_argument("--product", type=int, required=True)
    parser.add_argument("--workers", type=int, default=8)
    parser.add_argument("--mixed", action="store_true", help="interleave add-to-cart calls")
    args = parser.parse_args()
    run(args.workers, args.email, args.password, args.product, args.mixed)
