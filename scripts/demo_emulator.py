#!/usr/bin/env python3
"""Demo: drive queries and a transaction through a local Flow emulator.

Prerequisites
─────────────
1. `flow emulator` running (REST API at 127.0.0.1:8888)
2. Environment variables set:
     FLOW_PRIVATE_KEY      – hex key of the emulator service account

Optional env:
     FLOW_ACCESS_NODE      – defaults to the emulator preset
     FLOW_SERVICE_ADDRESS  – defaults to f8d6e0586b0a20c7
     FLOW_KEY_INDEX        – defaults to 0

Usage:
    python scripts/demo_emulator.py [requests]
"""

from __future__ import annotations

import logging
import sys
import time

from flowpool import Flow

SCRIPT = "access(all) fun main(a: Int, b: Int): Int { return a + b }"


def main() -> None:
    count = int(sys.argv[1]) if len(sys.argv) > 1 else 100
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(name)s %(message)s")

    with Flow.from_env() as flow:
        print(f"Access node      = {flow.config.endpoint}")
        print(f"Service account  = 0x{flow.service_address}")
        print(f"Workers          = {len(flow.workers)}")
        print()

        # 1) account
        print("--- get_account ---")
        account = flow.get_account(flow.service_address).result(30)
        print(f"  balance: {account.balance}")
        for key in account.keys:
            print(f"  key {key.id}: seq={key.sequence_number} weight={key.weight} revoked={key.revoked}")
        print()

        # 2) latest block
        print("--- get_block ---")
        block = flow.get_block().result(30)
        print(f"  id: {block.id}")
        print(f"  height: {block.height}")
        print()

        # 3) script
        print("--- execute_script ---")
        print(f"  1 + 2 = {flow.execute_script(SCRIPT, [1, 2]).result(30)}")
        print()

        # 4) throughput
        print(f"--- {count} x get_account ---")
        started = time.monotonic()
        futures = [flow.get_account(flow.service_address) for _ in range(count)]
        for f in futures:
            f.result(60)
        elapsed = time.monotonic() - started
        print(f"  {count} requests in {elapsed:.2f}s ({count / elapsed:.1f}/s)")
        print()

        # 5) create account
        print("--- create_account ---")
        sent = flow.create_account().result(60)
        print(f"  tx: {sent.get('id')}")


if __name__ == "__main__":
    main()
