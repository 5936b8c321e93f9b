#!/usr/bin/env python3
"""
Load test for GET /products/{id}.

Creates products concurrently, then compares repeated reads of one cached
product against reads of the freshly created (uncached) products.
"""

import argparse
import sys
import threading
import time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Callable, List, Optional, Tuple

import requests


@dataclass
class BenchmarkResult:
    total_requests: int
    successful: int
    failed: int
    duration: float

    @property
    def requests_per_second(self) -> float:
        return self.total_requests / self.duration if self.duration else 0.0


def log(message, level="INFO"):
    timestamp = time.strftime("%H:%M:%S")
    print(f"[{timestamp}] {level}: {message}")


def make_requests(urls: List[str], concurrency: int, get: Callable = requests.get) -> BenchmarkResult:
    """GET every url with ``concurrency`` workers and count 200 responses."""
    successful = 0
    failed = 0
    lock = threading.Lock()

    def fetch(url):
        nonlocal successful, failed
        try:
            resp = get(url, timeout=10)
        except requests.RequestException as e:
            log(f"Request failed: {e}", "ERROR")
            ok = False
        else:
            ok = resp.status_code == 200
            if not ok:
                log(f"Non-OK HTTP status: {resp.status_code}", "WARNING")
        with lock:
            if ok:
                successful += 1
            else:
                failed += 1

    start = time.perf_counter()
    with ThreadPoolExecutor(max_workers=concurrency) as executor:
        list(executor.map(fetch, urls))
    duration = time.perf_counter() - start

    return BenchmarkResult(len(urls), successful, failed, duration)


def create_products(
    base_url: str,
    user_id: int,
    count: int,
    workers: int,
    post: Callable = requests.post,
) -> Tuple[List[int], List[str]]:
    """Create ``count`` image-less products; returns (product ids, errors)."""

    def create(i) -> Tuple[Optional[int], Optional[str]]:
        payload = {
            "user_id": user_id,
            "product_name": f"Benchmark Product {i}",
            "product_description": f"Description for Benchmark Product {i}",
            "product_price": float(10 + i % 100),
            "product_images": [],
        }
        try:
            resp = post(f"{base_url}/products", json=payload, timeout=10)
        except requests.RequestException as e:
            return None, f"error creating product {i}: {e}"
        if resp.status_code not in (200, 201):
            return None, f"failed to create product {i}: status {resp.status_code}, body {resp.text}"
        try:
            product_id = resp.json().get("product_id")
        except ValueError as e:
            return None, f"error decoding response for product {i}: {e}"
        if not product_id:
            return None, f"no product_id returned for product {i}"
        return product_id, None

    with ThreadPoolExecutor(max_workers=workers) as executor:
        outcomes = list(executor.map(create, range(count)))

    ids = [product_id for product_id, _ in outcomes if product_id is not None]
    errors = [error for _, error in outcomes if error is not None]
    return ids, errors


def report(title: str, result: BenchmarkResult):
    print(f"Results {title}:")
    print(f"Total Requests: {result.total_requests}")
    print(f"Successful: {result.successful}")
    print(f"Failed: {result.failed}")
    print(f"Total Time: {result.duration:.2f}s")
    print(f"Requests per Second: {result.requests_per_second:.2f}")


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="Benchmark GET /products/{id} with and without cache")
    parser.add_argument("--base-url", default="http://localhost:8000")
    parser.add_argument("--requests", type=int, default=1000, help="requests per benchmark")
    parser.add_argument("--concurrency", type=int, default=50)
    parser.add_argument("--cached-product-id", default="1103")
    parser.add_argument("--user-id", type=int, default=1)
    parser.add_argument("--create-workers", type=int, default=20)
    args = parser.parse_args(argv)

    log("Creating products for the uncached benchmark...")
    start = time.perf_counter()
    ids, errors = create_products(args.base_url, args.user_id, args.requests, args.create_workers)
    log(f"Created {len(ids)} products in {time.perf_counter() - start:.2f}s")
    if errors:
        for error in errors:
            log(error, "ERROR")
        log("Failed to create products", "ERROR")
        return 1

    log("Benchmarking WITH cache (repeated requests to the same product ID)...")
    cached = make_requests(
        [f"{args.base_url}/products/{args.cached_product_id}"] * args.requests, args.concurrency
    )
    report("WITH Cache", cached)

    log("Benchmarking WITHOUT cache (unique requests to different product IDs)...")
    uncached = make_requests([f"{args.base_url}/products/{pid}" for pid in ids], args.concurrency)
    report("WITHOUT Cache", uncached)

    print(f"\nWith Cache - Total Time: {cached.duration:.2f}s, RPS: {cached.requests_per_second:.2f}")
    print(f"Without Cache - Total Time: {uncached.duration:.2f}s, RPS: {uncached.requests_per_second:.2f}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
