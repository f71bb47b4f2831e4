#!/usr/bin/env python3
"""
KSEO Admin

Operator commands for a KSEO deployment.

Usage:
    python scripts/kseo_admin.py init-db
    python scripts/kseo_admin.py create-key "ci pipeline" --scope write
    python scripts/kseo_admin.py list-keys --all
    python scripts/kseo_admin.py revoke-key 3
    python scripts/kseo_admin.py process-batch -v
    python scripts/kseo_admin.py scan
    python scripts/kseo_admin.py encrypt "secret value"
    python scripts/kseo_admin.py decrypt-check "<base64 envelope>"
    python scripts/kseo_admin.py purge-cache
    python scripts/kseo_admin.py serve-scheduler
"""

import argparse
import json
import logging
import sys
import time
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from dotenv import load_dotenv

from src.analysis.subjects import HttpSubjectResolver
from src.auth import ApiKeyManager, Crypto, Keyring
from src.cache import get_cache_store
from src.database import EventStore, check_db_connection, init_db
from src.delivery import AlertDispatcher
from src.detectors import CannibalizationDetector, DecayDetector
from src.jobs import BatchProcessor, BatchScheduler
from src.utils.config import ConfigurationError, get_settings

logger = logging.getLogger("kseo_admin")


def setup_logging(verbose: bool = False):
    """Configure logging."""
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        handlers=[
            logging.StreamHandler(),
        ]
    )


def build_processor() -> BatchProcessor:
    settings = get_settings()
    events = EventStore()
    cache = get_cache_store()
    resolver = HttpSubjectResolver(timeout=settings.HTTP_TIMEOUT_SECONDS)
    return BatchProcessor(
        events=events,
        resolver=resolver,
        cannibalization=CannibalizationDetector(events, cache, resolver),
        decay=DecayDetector(events, cache, resolver),
        alerts=AlertDispatcher(events, cache, settings=settings),
        settings=settings,
    )


# =============================================================================
# COMMANDS
# =============================================================================

def cmd_init_db(args) -> int:
    init_db()
    if not check_db_connection():
        print("Database connection failed")
        return 1
    print("Database ready")
    return 0


def cmd_create_key(args) -> int:
    raw_key, api_key = ApiKeyManager().create_key(args.label, scope=args.scope)
    print(f"Created key {api_key.id} ({api_key.label}, scope={api_key.scope})")
    print(f"  {raw_key}")
    print("Store it now; it cannot be shown again.")
    return 0


def cmd_list_keys(args) -> int:
    keys = ApiKeyManager().list_keys(include_revoked=args.all)
    if not keys:
        print("No API keys")
        return 0
    for key in keys:
        last_used = key.last_used_at.isoformat() if key.last_used_at else "never"
        print(f"{key.id:>5}  {key.status:<8} {key.scope:<6} {key.label}  (last used: {last_used})")
    return 0


def cmd_revoke_key(args) -> int:
    if ApiKeyManager().revoke_key(args.key_id):
        print(f"Revoked key {args.key_id}")
        return 0
    print(f"Key {args.key_id} not found")
    return 1


def cmd_process_batch(args) -> int:
    report = build_processor().process_batch()
    print(json.dumps(report.to_dict(), indent=2))
    return 0


def cmd_scan(args) -> int:
    events = EventStore()
    cache = get_cache_store()
    found = {
        "cannibalization": CannibalizationDetector(events, cache).scan_recent(),
        "decay": DecayDetector(events, cache).scan_recent(),
    }
    if args.alert:
        alerts = AlertDispatcher(events, cache)
        for event_type, count in found.items():
            if count > 0:
                alerts.send_for_recent(event_type)
    print(json.dumps(found, indent=2))
    return 0


def cmd_encrypt(args) -> int:
    print(Crypto(Keyring()).encrypt(args.plaintext))
    return 0


def cmd_decrypt_check(args) -> int:
    plaintext = Crypto(Keyring()).decrypt(args.envelope)
    if plaintext is None:
        print("Envelope rejected")
        return 1
    print(f"Envelope OK ({len(plaintext)} characters)")
    return 0


def cmd_purge_cache(args) -> int:
    removed = get_cache_store().purge_expired()
    print(f"Purged {removed} expired cache entries")
    return 0


def cmd_serve_scheduler(args) -> int:
    scheduler = BatchScheduler(build_processor(), cache=get_cache_store())
    scheduler.start()
    for job in scheduler.list_jobs():
        print(f"  {job['id']}: next run {job['next_run_time']}")
    try:
        while True:
            time.sleep(60)
    except KeyboardInterrupt:
        pass
    finally:
        scheduler.stop()
    return 0


def main():
    """Main entry point."""
    parser = argparse.ArgumentParser(
        description="KSEO Booster administration"
    )
    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Enable debug logging"
    )
    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("init-db", help="Create tables").set_defaults(func=cmd_init_db)

    create = sub.add_parser("create-key", help="Create an API key")
    create.add_argument("label", help="Human-readable label")
    create.add_argument("--scope", default="read", choices=["read", "write", "admin"])
    create.set_defaults(func=cmd_create_key)

    listing = sub.add_parser("list-keys", help="List API keys")
    listing.add_argument("--all", action="store_true", help="Include revoked keys")
    listing.set_defaults(func=cmd_list_keys)

    revoke = sub.add_parser("revoke-key", help="Revoke an API key")
    revoke.add_argument("key_id", type=int)
    revoke.set_defaults(func=cmd_revoke_key)

    sub.add_parser("process-batch", help="Run one reprocess batch").set_defaults(func=cmd_process_batch)

    scan = sub.add_parser("scan", help="Run the cannibalization and decay scans")
    scan.add_argument("--alert", action="store_true", help="Send alerts for fresh findings")
    scan.set_defaults(func=cmd_scan)

    encrypt = sub.add_parser("encrypt", help="Encrypt a value with the active key")
    encrypt.add_argument("plaintext")
    encrypt.set_defaults(func=cmd_encrypt)

    check = sub.add_parser("decrypt-check", help="Verify an envelope decrypts")
    check.add_argument("envelope")
    check.set_defaults(func=cmd_decrypt_check)

    sub.add_parser("purge-cache", help="Delete expired cache entries").set_defaults(func=cmd_purge_cache)

    sub.add_parser("serve-scheduler", help="Run the weekly scheduler in the foreground").set_defaults(
        func=cmd_serve_scheduler
    )

    args = parser.parse_args()
    load_dotenv()
    setup_logging(args.verbose)

    try:
        exit_code = args.func(args)
    except (ConfigurationError, ValueError) as e:
        logger.error(str(e))
        exit_code = 2
    sys.exit(exit_code)


if __name__ == "__main__":
    main()
