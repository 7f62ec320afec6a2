"""
Tenant encryption benchmark CLI.

Usage:
    tenant-crypto-benchmark [tenants] [iterations]

Or run directly:
    python -m tenant_crypto.benchmark

Uses ENCRYPTION_KEY from the environment or .env file when set, otherwise an
ephemeral master key.
"""

from __future__ import annotations

import os
import sys
import time
from typing import Dict, List, Optional
from uuid import uuid4

from dotenv import load_dotenv

from tenant_crypto.codec import TenantCipher
from tenant_crypto.crypto import AesGcmCipher, generate_master_key
from tenant_crypto.envelope import V1Envelope
from tenant_crypto.kdf import TenantKeyCache, TenantKeyring

PLAINTEXT = "Sensitive data protected by tenant envelope encryption"


def _rate(count: int, duration: float) -> float:
    return count / duration if duration > 0 else float("inf")


def _report(label: str, count: int, duration: float) -> None:
    print(f"[PERF] {label:<24} {duration * 1000:.3f}ms | Rate: {_rate(count, duration):.2f} ops/sec")


def run_benchmark(
    tenant_count: int = 125,
    iterations: int = 10,
    master_key_hex: Optional[str] = None,
) -> Dict[str, float]:
    """
    Run the benchmark and return timings in seconds, keyed by phase.

    Args:
        tenant_count: Number of distinct tenants
        iterations: Encrypt/decrypt round trips per tenant
        master_key_hex: Master key; ephemeral when omitted
    """
    print("=== Tenant Envelope Encryption Benchmark ===\n")
    if master_key_hex is None:
        print("[STARTUP] Using ephemeral master key")
        master_key_hex = generate_master_key()

    tenant_ids: List[str] = [uuid4().hex[:24] for _ in range(tenant_count)]
    results: Dict[str, float] = {}

    # Key derivation without a cache
    uncached = TenantKeyring.from_hex(master_key_hex)
    start = time.perf_counter()
    for tenant_id in tenant_ids:
        uncached.derive_tenant_key(tenant_id)
    results["derive_uncached"] = time.perf_counter() - start
    _report("Derive (no cache)", tenant_count, results["derive_uncached"])

    # Key derivation through the cache: first pass fills, second pass hits
    cache = TenantKeyCache()
    keyring = TenantKeyring.from_hex(master_key_hex, cache=cache)
    for tenant_id in tenant_ids:
        keyring.derive_tenant_key(tenant_id)
    start = time.perf_counter()
    for tenant_id in tenant_ids:
        keyring.derive_tenant_key(tenant_id)
    results["derive_cached"] = time.perf_counter() - start
    _report("Derive (cached)", tenant_count, results["derive_cached"])

    cipher = TenantCipher(keyring)
    total = tenant_count * iterations

    envelopes = []
    start = time.perf_counter()
    for tenant_id in tenant_ids:
        for _ in range(iterations):
            envelopes.append((tenant_id, cipher.encrypt(PLAINTEXT, tenant_id)))
    results["encrypt"] = time.perf_counter() - start
    _report("Encrypt (v2)", total, results["encrypt"])

    start = time.perf_counter()
    for tenant_id, envelope in envelopes:
        cipher.decrypt_any(envelope, tenant_id)
    results["decrypt_v2"] = time.perf_counter() - start
    _report("Decrypt (v2)", total, results["decrypt_v2"])

    # Legacy envelopes: master key, no version or tenant segment
    legacy = []
    for _ in range(total):
        data = AesGcmCipher.encrypt(keyring.master_key, PLAINTEXT.encode("utf-8"))
        legacy.append(V1Envelope(data.iv, data.auth_tag, data.ciphertext).serialize())
    start = time.perf_counter()
    for envelope in legacy:
        cipher.decrypt_any(envelope)
    results["decrypt_legacy"] = time.perf_counter() - start
    _report("Decrypt (legacy v1)", total, results["decrypt_legacy"])

    print(f"\n[OK] {tenant_count} tenants, {total} envelopes, cache size {len(cache)}")
    return results


def main() -> None:
    """Entry point for the tenant-crypto-benchmark console script."""
    load_dotenv()
    args = sys.argv[1:]
    try:
        tenant_count = int(args[0]) if args else 125
        iterations = int(args[1]) if len(args) > 1 else 10
    except ValueError:
        print("Usage: tenant-crypto-benchmark [tenants] [iterations]")
        sys.exit(1)
    run_benchmark(tenant_count, iterations, os.environ.get("ENCRYPTION_KEY") or None)


if __name__ == "__main__":
    main()
