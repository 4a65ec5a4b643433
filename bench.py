"""
Load checker for the file server.

Fires concurrent requests at a running server and reports throughput,
a status code histogram and latency figures. Optionally plots the
latency distribution.
"""

import argparse
import asyncio
import statistics
import time
from collections import Counter
from typing import List, Tuple

import httpx
import matplotlib.pyplot as plt


async def do_get(client: httpx.AsyncClient, url: str) -> Tuple[int, float]:
    """Single request, returns (status, latency). Status 0 means a transport error."""
    start_time = time.perf_counter()
    try:
        response = await client.get(url, headers={"User-Agent": "bench/1.0"})
        code = response.status_code
    except httpx.HTTPError:
        code = 0
    return code, time.perf_counter() - start_time


async def worker(client: httpx.AsyncClient, url: str, count: int) -> List[Tuple[int, float]]:
    results = []
    for _ in range(count):
        results.append(await do_get(client, url))
    return results


def percentile(values: List[float], pct: float) -> float:
    ordered = sorted(values)
    index = min(len(ordered) - 1, int(round(pct / 100.0 * (len(ordered) - 1))))
    return ordered[index]


def plot_latencies(latencies: List[float], concurrency: int, filename: str):
    plt.figure(figsize=(10, 6))
    plt.hist([latency * 1000 for latency in latencies], bins=30, color="#2E86AB", alpha=0.8)
    plt.xlabel("Latency (ms)")
    plt.ylabel("Requests")
    plt.title(f"Request latency with {concurrency} concurrent clients")
    plt.grid(True, alpha=0.3)
    plt.tight_layout()
    plt.savefig(filename, dpi=150)
    print(f"Plot saved to {filename}")


async def run(args) -> List[Tuple[int, float]]:
    url = f"http://{args.host}:{args.port}{args.path}"
    limits = httpx.Limits(max_connections=args.concurrency)
    async with httpx.AsyncClient(timeout=args.timeout, limits=limits) as client:
        tasks = [worker(client, url, args.per_worker) for _ in range(args.concurrency)]
        batches = await asyncio.gather(*tasks)
    return [result for batch in batches for result in batch]


def main():
    ap = argparse.ArgumentParser(description="Concurrent load check for the file server.")
    ap.add_argument("host")
    ap.add_argument("port", type=int)
    ap.add_argument("path")
    ap.add_argument("--concurrency", "-c", type=int, default=10)
    ap.add_argument("--per-worker", type=int, default=1)
    ap.add_argument("--timeout", type=float, default=5.0, help="request timeout in seconds (default 5.0)")
    ap.add_argument("--plot", default=None, help="save a latency histogram to this PNG file")
    args = ap.parse_args()

    t0 = time.perf_counter()
    results = asyncio.run(run(args))
    dt = time.perf_counter() - t0

    total = len(results)
    hist = Counter(code for code, _ in results)
    latencies = [latency for code, latency in results if code != 0]

    print(f"Requests: {total} in {dt:.3f}s -> {total/dt if dt>0 else 0:.2f} req/s")
    for k in sorted(hist):
        print(f"  {k}: {hist[k]}")
    if latencies:
        print(f"Mean latency: {statistics.mean(latencies)*1000:.2f} ms")
        print(f"Median latency: {statistics.median(latencies)*1000:.2f} ms")
        print(f"P95 latency: {percentile(latencies, 95)*1000:.2f} ms")
        if args.plot:
            plot_latencies(latencies, args.concurrency, args.plot)


if __name__ == "__main__":
    main()
