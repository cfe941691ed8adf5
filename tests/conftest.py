import os
import sys
import uuid
from datetime import date, datetime, timezone
from decimal import Decimal
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

os.environ.setdefault('APP_ENV', 'test')
os.environ.setdefault('DATABASE_URL', 'sqlite://')
os.environ.setdefault('SUPABASE_URL', 'https://example.supabase.co')
os.environ.setdefault('SUPABASE_SERVICE_KEY', 'service-key')
os.environ.setdefault('SECRET_KEY', 'test-secret-key')
os.environ.setdefault('CRON_SECRET', 'test-cron-secret')
os.environ.setdefault('PUBLIC_APP_URL', 'https://gomoto.test')

from app.core.exceptions import IntegrationError  # noqa: E402
from app.database import SessionLocal, engine  # noqa: E402
from app.integrations.supabase_auth import SellerContact  # noqa: E402
from app.models import Base, Listing, ListingPlan, Subscription  # noqa: E402


class FakeEmailService:
    def __init__(self, fail: bool = False):
        self.fail = fail
        self.sent = []

    async def send_email(self, to, subject, html_content, from_email=None, from_name=None):
        if self.fail:
            raise IntegrationError(f'send failed for {to}')
        self.sent.append({'to': to, 'subject': subject, 'html': html_content})
        return {'status': 'sent', 'to': to}

    def subjects(self):
        return [message['subject'] for message in self.sent]


class FakeSellerContacts:
    def __init__(self, overrides=None, fail: bool = False):
        self.overrides = overrides or {}
        self.fail = fail
        self.lookups = []

    async def get_seller_contact(self, user_id):
        self.lookups.append(user_id)
        if self.fail:
            raise IntegrationError(f'lookup failed for {user_id}')
        if user_id in self.overrides:
            return self.overrides[user_id]
        return SellerContact(email=f'{user_id}@sellers.test', name='Thandi')


@pytest.fixture
def db():
    Base.metadata.create_all(bind=engine)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def email_service():
    return FakeEmailService()


@pytest.fixture
def contacts():
    return FakeSellerContacts()


@pytest.fixture
def plan(db):
    row = ListingPlan(
        slug='pro',
        name='Pro',
        monthly_price=Decimal('349.00'),
        max_active_listings=3,
        features=['3 active listings'],
        is_active=True,
        display_order=2,
    )
    db.add(row)
    db.commit()
    return row


@pytest.fixture
def make_subscription(db, plan):
    def _make(
        status='active',
        next_payment_due=date(2024, 1, 10),
        grace_until=None,
        user_id=None,
        updated_at=datetime(2023, 12, 10, tzinfo=timezone.utc),
    ):
        row = Subscription(
            user_id=user_id or uuid.uuid4(),
            plan_id=plan.id,
            status=status,
            next_payment_due=next_payment_due,
            grace_until=grace_until,
            current_period_start=datetime(2023, 12, 10, tzinfo=timezone.utc),
            current_period_end=datetime(2024, 1, 10, tzinfo=timezone.utc),
            updated_at=updated_at,
        )
        db.add(row)
        db.commit()
        return row

    return _make


@pytest.fixture
def make_listing(db):
    def _make(owner_id, listing_status='published', title='Honda CB500X', updated_at=None):
        row = Listing(
            owner_id=owner_id,
            title=title,
            listing_status=listing_status,
            updated_at=updated_at or datetime(2023, 12, 1, tzinfo=timezone.utc),
        )
        db.add(row)
        db.commit()
        return row

    return _make
