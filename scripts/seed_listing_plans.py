"""
Create tables if needed and insert the default listing plans.

Usage:
  python scripts/seed_listing_plans.py
"""
from __future__ import annotations

from app.database import SessionLocal, engine
from app.models import Base, ListingPlan
from app.seeds import seed_listing_plans


def main() -> None:
    Base.metadata.create_all(bind=engine)
    db = SessionLocal()
    try:
        inserted = seed_listing_plans(db)
        total = db.query(ListingPlan).count()
        print(f"seed_listing_plans inserted={inserted} total={total}")
    finally:
        db.close()


if __name__ == "__main__":
    main()
