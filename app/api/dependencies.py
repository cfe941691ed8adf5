"""Shared API dependencies."""
from fastapi import Depends
from sqlalchemy.orm import Session

from app.core.security import get_current_user
from app.database import get_db
from app.integrations.email import EmailService
from app.integrations.supabase_auth import SupabaseAuthAdmin
from app.services.billing_lifecycle import SubscriptionLifecycleManager


def get_email_service() -> EmailService:
    return EmailService()


def get_seller_contacts() -> SupabaseAuthAdmin:
    return SupabaseAuthAdmin()


def get_lifecycle_manager(
    db: Session = Depends(get_db),
    email_service: EmailService = Depends(get_email_service),
    contacts: SupabaseAuthAdmin = Depends(get_seller_contacts),
) -> SubscriptionLifecycleManager:
    return SubscriptionLifecycleManager(db, email_service=email_service, contacts=contacts)


__all__ = [
    "get_current_user",
    "get_email_service",
    "get_lifecycle_manager",
    "get_seller_contacts",
]
