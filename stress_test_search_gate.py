#!/usr/bin/env python3
"""
Stress test do Search Gate: rajadas de buscas simultâneas no proxy.

Dispara N GETs /api/search ao mesmo tempo contra um proxy rodando e mostra
como o gate distribui as respostas: quantas foram servidas (200, cache ou
eBay), quantas rejeitadas por espaçamento/circuito (429) e quantas falharam
no eBay (502). Com keywords repetidas mede também a deduplicação.

Uso:
    python stress_test_search_gate.py                # níveis padrão
    python stress_test_search_gate.py 10,50,200      # níveis custom
    SEARCH_GATE_URL=http://host:8000 python stress_test_search_gate.py
"""

import asyncio
import os
import sys
import time
from dataclasses import dataclass, field
from typing import List

import aiohttp

BASE_URL = os.getenv("SEARCH_GATE_URL", "http://localhost:8000")
TIMEOUT_S = 60

KEYWORDS = ["Charizard", "Pikachu", "Blastoise", "Venusaur", "Mewtwo", "Gengar"]


@dataclass
class TestResult:
    concurrency: int
    total: int
    status_breakdown: dict
    elapsed_s: float
    p50_ms: float
    p90_ms: float
    p99_ms: float
    max_ms: float
    error_breakdown: dict = field(default_factory=dict)


def _percentile(sorted_data: List[float], p: float) -> float:
    if not sorted_data:
        return 0
    idx = int(len(sorted_data) * p / 100)
    return sorted_data[min(idx, len(sorted_data) - 1)]


async def _single_request(session: aiohttp.ClientSession, keyword: str) -> dict:
    start = time.perf_counter()
    try:
        async with session.get(
            f"{BASE_URL}/api/search",
            params={"keyword": keyword},
            timeout=aiohttp.ClientTimeout(total=TIMEOUT_S),
        ) as resp:
            body = await resp.json(content_type=None)
            ms = (time.perf_counter() - start) * 1000
            error = body.get("error") if isinstance(body, dict) and resp.status != 200 else None
            return {"status": resp.status, "ms": ms, "error": error, "cache": resp.headers.get("X-Cache")}
    except asyncio.TimeoutError:
        return {"status": 0, "ms": (time.perf_counter() - start) * 1000, "error": "timeout"}
    except aiohttp.ClientConnectionError:
        return {"status": 0, "ms": (time.perf_counter() - start) * 1000, "error": "connection"}


async def run_test(concurrency: int) -> TestResult:
    """Dispara `concurrency` buscas simultâneas, ciclando pelas KEYWORDS."""
    async with aiohttp.ClientSession() as session:
        print(f"\n  C={concurrency:>5d} | disparando {concurrency} buscas simultâneas... ", end="", flush=True)
        start = time.perf_counter()

        tasks = [_single_request(session, KEYWORDS[i % len(KEYWORDS)]) for i in range(concurrency)]
        results = await asyncio.gather(*tasks)

        elapsed = time.perf_counter() - start

    status_breakdown: dict = {}
    error_breakdown: dict = {}
    for r in results:
        key = "cache" if r.get("cache") == "HIT" else str(r["status"])
        status_breakdown[key] = status_breakdown.get(key, 0) + 1
        if r.get("error"):
            error_breakdown[r["error"]] = error_breakdown.get(r["error"], 0) + 1

    times = sorted(r["ms"] for r in results)
    res = TestResult(
        concurrency=concurrency,
        total=len(results),
        status_breakdown=status_breakdown,
        elapsed_s=round(elapsed, 1),
        p50_ms=round(_percentile(times, 50), 0),
        p90_ms=round(_percentile(times, 90), 0),
        p99_ms=round(_percentile(times, 99), 0),
        max_ms=round(max(times) if times else 0, 0),
        error_breakdown=error_breakdown,
    )

    print(
        f"✅ {status_breakdown} | "
        f"p50={res.p50_ms:.0f}ms p90={res.p90_ms:.0f}ms p99={res.p99_ms:.0f}ms | "
        f"erros: {error_breakdown or 'nenhum'}"
    )
    return res


async def main():
    levels = [1, 10, 50, 200]

    if len(sys.argv) > 1:
        levels = [int(x) for x in sys.argv[1].split(",")]

    print("=" * 80)
    print("  STRESS TEST: Search Gate (eBay)")
    print(f"  Target:    {BASE_URL}/api/search")
    print(f"  Keywords:  {', '.join(KEYWORDS)}")
    print(f"  Timeout:   {TIMEOUT_S}s")
    print(f"  Levels:    {levels}")
    print("=" * 80)

    all_results: List[TestResult] = []

    for conc in levels:
        result = await run_test(conc)
        all_results.append(result)
        await asyncio.sleep(1)

    print(f"\n{'=' * 80}")
    print("  RESUMO FINAL")
    print(f"{'=' * 80}")
    hdr = f"  {'Conc':>6s} | {'Total':>6s} | {'p50':>7s} | {'p90':>7s} | {'p99':>7s} | {'max':>7s} | Status"
    print(hdr)
    print(f"  {'-' * len(hdr)}")

    for r in all_results:
        statuses = ", ".join(f"{k}={v}" for k, v in sorted(r.status_breakdown.items()))
        print(
            f"  {r.concurrency:>6d} | {r.total:>6d} | {r.p50_ms:>6.0f}ms | {r.p90_ms:>6.0f}ms | "
            f"{r.p99_ms:>6.0f}ms | {r.max_ms:>6.0f}ms | {statuses}"
        )

    # O eBay nunca deve receber mais de uma chamada por janela de espaçamento
    async with aiohttp.ClientSession() as session:
        async with session.get(f"{BASE_URL}/api/status") as resp:
            status = await resp.json()
    requests = status.get("requests", {})
    print(
        f"\n  Gate: dispatched={requests.get('dispatched')} "
        f"dedup={requests.get('deduplicated')} "
        f"429 spacing={requests.get('admission_rejected')} "
        f"429 circuit={requests.get('circuit_open')}"
    )
    print(f"{'=' * 80}\n")


if __name__ == "__main__":
    asyncio.run(main())
