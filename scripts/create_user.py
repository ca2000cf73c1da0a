"""Add a user to the SQLite DB.

Usage:
  python scripts/create_user.py --email alice@example.com --password '...' [--subscribed]
"""

import argparse
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(ROOT))

from garage_opener.auth.service import register_user
from garage_opener.config import load_config
from garage_opener.db import connect, init_db
from garage_opener.errors import EmailTaken


def main() -> None:
    ap = argparse.ArgumentParser()
    ap.add_argument("--email", required=True)
    ap.add_argument("--password", required=True)
    ap.add_argument("--subscribed", action="store_true", help="receive door notifications")
    args = ap.parse_args()

    cfg = load_config()
    init_db(cfg.DB_PATH, timeout=cfg.DB_TIMEOUT_SECONDS)

    try:
        with connect(cfg.DB_PATH, timeout=cfg.DB_TIMEOUT_SECONDS) as conn:
            u = register_user(conn, email=args.email, password=args.password, subscribed=args.subscribed)
    except EmailTaken:
        print(f"User already exists: {args.email.strip().lower()}")
        sys.exit(1)

    print("Created user:")
    print(u.public())


if __name__ == "__main__":
    main()
