from __future__ import annotations

from decimal import Decimal
from typing import Any

from sqlalchemy.orm import Session

from app.models import ListingPlan

LISTING_PLAN_SEED_DATA: list[dict[str, Any]] = [
    {
        "slug": "basic",
        "name": "Basic",
        "description": "Perfect for private sellers with a single bike",
        "monthly_price": Decimal("199.00"),
        "max_active_listings": 1,
        "display_order": 1,
        "features": [
            "1 active listing",
            "30-day listing duration",
            "Up to 5 photos",
            "Email lead notifications",
            "Basic seller dashboard",
            "Standard search placement",
        ],
    },
    {
        "slug": "pro",
        "name": "Pro",
        "description": "Best value for serious sellers",
        "monthly_price": Decimal("349.00"),
        "max_active_listings": 3,
        "display_order": 2,
        "features": [
            "3 active listings",
            "60-day listing duration",
            "Up to 15 photos per listing",
            "Email + SMS lead notifications",
            "Full analytics dashboard",
            "Priority search placement",
            "Highlight badge on listings",
            "Social media promotion",
        ],
    },
    {
        "slug": "featured",
        "name": "Featured",
        "description": "Maximum visibility for premium bikes",
        "monthly_price": Decimal("599.00"),
        "max_active_listings": 5,
        "display_order": 3,
        "features": [
            "5 active listings",
            "90-day listing duration",
            "Unlimited photos",
            "Instant lead notifications",
            "Advanced analytics & insights",
            "Top search placement",
            "Featured homepage banner",
            "Social media spotlight",
            "Dedicated support",
        ],
    },
]


def seed_listing_plans(db: Session) -> int:
    existing_slugs = {row.slug for row in db.query(ListingPlan.slug).all()}
    inserted = 0
    for item in LISTING_PLAN_SEED_DATA:
        if item["slug"] in existing_slugs:
            continue
        db.add(ListingPlan(is_active=True, **item))
        inserted += 1

    if inserted:
        db.commit()
    return inserted
