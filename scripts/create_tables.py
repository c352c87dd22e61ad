"""
scripts/create_tables.py
------------------------
Create all Vitalis tables (idempotent). Pass --drop to start from an empty schema.
Run with:  python -m scripts.create_tables [--drop]
"""

from __future__ import annotations

import sys

from app.db import Base, engine
# Import models to ensure tables are registered with Base
import app.models  # noqa: F401


def main(argv: list[str]) -> int:
    if "--drop" in argv:
        print(f"Dropping {len(Base.metadata.tables)} tables...")
        Base.metadata.drop_all(bind=engine)
    print("Creating tables if missing: " + ", ".join(sorted(Base.metadata.tables)))
    Base.metadata.create_all(bind=engine)
    print("Done.")
    return 0


if __name__ == "__main__":
    raise SystemExit(main(sys.argv[1:]))
