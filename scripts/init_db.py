#!/usr/bin/env python3
"""
Create the procurement schema and optionally seed reference data.

Creates all tables with the immutability triggers for the configured
database.  With --seed, adds two areas and one user per role so the
workflow can be exercised end to end.

Usage:
    python3 scripts/init_db.py                 # create tables
    python3 scripts/init_db.py --drop --seed   # rebuild from scratch
    python3 scripts/init_db.py --config path/to/config.yaml
"""

import argparse
import sys
from pathlib import Path

# ---------------------------------------------------------------------------
# Project root on sys.path
# ---------------------------------------------------------------------------
ROOT = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(ROOT))

SEED_AREAS = [
    ("OPS", "Operations"),
    ("FIN", "Finance"),
]

# (full_name, email, role, area code)
SEED_USERS = [
    ("Ada Admin", "admin@example.com", "admin", None),
    ("Eli Executive", "executive@example.com", "executive", None),
    ("Lea Lead", "lead.ops@example.com", "area_lead", "OPS"),
    ("Tom Treasury", "treasury@example.com", "treasury", "FIN"),
    ("Rita Requester", "requester.ops@example.com", "requester", "OPS"),
]


def seed_reference_data(session) -> tuple[int, int]:
    """Insert seed areas and users that are not there yet."""
    from sqlalchemy import select

    from procurement_kernel.models import Area, User

    areas = {}
    for code, name in SEED_AREAS:
        area = session.execute(select(Area).where(Area.code == code)).scalar_one_or_none()
        if area is None:
            area = Area(code=code, name=name)
            session.add(area)
        areas[code] = area
    session.flush()

    added = 0
    for full_name, email, role, area_code in SEED_USERS:
        exists = session.execute(select(User.id).where(User.email == email)).first()
        if exists is None:
            session.add(
                User(
                    full_name=full_name,
                    email=email,
                    role=role,
                    area_id=areas[area_code].id if area_code else None,
                )
            )
            added += 1
    session.flush()
    return len(areas), added


def main() -> int:
    parser = argparse.ArgumentParser(description="Create the procurement schema")
    parser.add_argument("--config", help="Configuration file (default: packaged default)")
    parser.add_argument("--drop", action="store_true", help="Drop existing tables first")
    parser.add_argument("--seed", action="store_true", help="Insert seed areas and users")
    parser.add_argument(
        "--no-triggers", action="store_true", help="Skip the immutability triggers",
    )
    args = parser.parse_args()

    from procurement_config.bridges import init_engine_from_config
    from procurement_config.loader import load_workflow_config
    from procurement_kernel.db.engine import create_tables, drop_tables, session_scope
    from procurement_kernel.logging_config import configure_logging

    config = load_workflow_config(args.config)
    configure_logging(level=config.log_level)
    init_engine_from_config(config)

    if args.drop:
        drop_tables()
    create_tables(install_triggers=not args.no_triggers)
    print(f"Schema ready on {config.database.url}")

    if args.seed:
        with session_scope() as session:
            area_count, user_count = seed_reference_data(session)
        print(f"Seeded {area_count} areas, {user_count} new users")

    return 0


if __name__ == "__main__":
    sys.exit(main())
