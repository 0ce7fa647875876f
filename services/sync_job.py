"""Batch sync of linked users, meant to be called by an external scheduler.

Usage:
    python -m services.sync_job                 # one batch, oldest sync first
    python -m services.sync_job --user USER_ID  # one user
    python -m services.sync_job --link USER_ID  # interactive Google consent
"""
from __future__ import annotations

import argparse
import json
import logging
import sys
from typing import Any, Dict, List, Optional

from core.settings import GOOGLE_SYNC
from services.ports import AccountStore, ConnectionConfigStore


logger = logging.getLogger("calsync.sync.job")


def select_users(
    connections: ConnectionConfigStore,
    accounts: AccountStore,
    batch_size: int,
) -> List[str]:
    """Enabled connections least recently synced first, then linked users without one."""

    enabled = [c.user_id for c in connections.list_enabled(batch_size)]
    # Users with a disabled connection are left out by the account query.
    extra = accounts.list_unconnected_google_user_ids(limit=batch_size - len(enabled))
    return enabled + extra


def run_scheduled_sync(
    orchestrator,
    connections: ConnectionConfigStore,
    accounts: AccountStore,
    batch_size: Optional[int] = None,
) -> Dict[str, Any]:
    batch_size = batch_size or GOOGLE_SYNC.batch_size
    results: List[Dict[str, Any]] = []
    for user_id in select_users(connections, accounts, batch_size):
        try:
            summary = orchestrator.run(user_id)
        except Exception as exc:
            logger.error("[%s] Scheduled sync crashed: %s", user_id, exc)
            results.append({"user_id": user_id, "success": False, "summary": {"error": str(exc)}})
            continue
        results.append({"user_id": user_id, "success": True, "summary": summary.to_dict()})
    logger.info("Scheduled sync processed %d user(s)", len(results))
    return {"processed": len(results), "results": results}


def main(argv: Optional[List[str]] = None) -> int:
    from services.google_auth import link_account_interactive
    from services.sync_service import SyncOrchestrator
    from services.sync_store import SqlAccountStore, SqlConnectionStore
    from storage.db import init_db

    parser = argparse.ArgumentParser(description="Google Calendar sync job")
    parser.add_argument("--batch-size", type=int, default=GOOGLE_SYNC.batch_size)
    parser.add_argument("--user", help="Sync a single user and exit")
    parser.add_argument("--link", metavar="USER", help="Link a Google account for USER")
    args = parser.parse_args(argv)

    init_db()
    accounts = SqlAccountStore()
    connections = SqlConnectionStore()

    if args.link:
        link_account_interactive(args.link, accounts)
        if connections.get(args.link) is None:
            connections.upsert(args.link, enabled=True)
        print(f"Linked Google account for {args.link}")
        return 0

    orchestrator = SyncOrchestrator.create(accounts=accounts, connections=connections)
    if args.user:
        result: Dict[str, Any] = orchestrator.run(args.user).to_dict()
    else:
        result = run_scheduled_sync(orchestrator, connections, accounts, args.batch_size)
    print(json.dumps(result, indent=2, default=str, ensure_ascii=False))
    return 0


if __name__ == "__main__":
    sys.exit(main())
