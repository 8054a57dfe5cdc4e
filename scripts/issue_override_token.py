#!/usr/bin/env python3
"""
Выпустить override token (ad-hoc доступ к universe без entitlement-а).
Запуск из корня проекта: python -m scripts.issue_override_token <collection_id> --tier producer --ttl 86400
или: PYTHONPATH=. python scripts/issue_override_token.py ...
"""
import argparse
import os
import sys
from datetime import datetime, timezone

# корень проекта в PYTHONPATH
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from studio.access.tiers import TIER_ORDER
from studio.access.tokens import issue_override_token
from studio.db.session import SessionLocal
from studio.services.content.service import ContentRepository


def parse_args(argv=None):
    parser = argparse.ArgumentParser(description="Issue a signed override token for a studio universe.")
    parser.add_argument("collection_id")
    parser.add_argument("--tier", default="producer", choices=[t.value for t in TIER_ORDER])
    parser.add_argument("--ttl", type=int, default=7 * 24 * 3600, help="seconds (capped by OVERRIDE_TOKEN_MAX_TTL_SECONDS)")
    parser.add_argument("--user", default=None, help="bind the token to one user id")
    parser.add_argument("--skip-check", action="store_true", help="do not check that the universe exists")
    return parser.parse_args(argv)


def main(argv=None) -> int:
    args = parse_args(argv)
    if not args.skip_check:
        db = SessionLocal()
        try:
            if not ContentRepository(db).exists(args.collection_id):
                print(f"Universe {args.collection_id} не найден в БД.")
                return 1
        finally:
            db.close()

    try:
        token = issue_override_token(args.collection_id, args.tier, args.ttl, user_id=args.user)
    except ValueError as e:
        print(f"Ошибка: {e}")
        return 2

    issued = datetime.now(timezone.utc).isoformat(timespec="seconds")
    print(f"universe={args.collection_id} tier={args.tier} user={args.user or '*'} issued={issued}\n")
    print(token)
    return 0


if __name__ == "__main__":
    sys.exit(main())
