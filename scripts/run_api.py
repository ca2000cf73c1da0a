"""Run the HTTP API.

Usage:
  python scripts/run_api.py                                  # serve
  python scripts/run_api.py --email me@example.com --password '...'   # seed first user, then serve
  python scripts/run_api.py --email ... --password ... --seed-only    # seed first user and exit

Seeding only happens while the user table is empty.
"""

import argparse
import os
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(ROOT))

import uvicorn

from garage_opener.auth.users import bootstrap_user_if_needed
from garage_opener.config import load_config
from garage_opener.db import init_db


def main() -> None:
    ap = argparse.ArgumentParser()
    ap.add_argument("--email", default=None)
    ap.add_argument("--password", default=None)
    ap.add_argument("--seed-only", action="store_true", help="create the first user and exit")
    args = ap.parse_args()

    cfg = load_config()
    init_db(cfg.DB_PATH, timeout=cfg.DB_TIMEOUT_SECONDS)
    u = bootstrap_user_if_needed(cfg, email=args.email, password=args.password)
    if u is not None:
        print(f"Created user: {u.email}")

    if args.seed_only:
        return

    host = os.environ.get("API_HOST", "0.0.0.0")
    port = int(os.environ.get("API_PORT", "8080"))
    uvicorn.run("garage_opener.api.server:get_app", factory=True, host=host, port=port, reload=False)


if __name__ == "__main__":
    main()
