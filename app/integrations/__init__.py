"""External integration adapters."""

from .email import EmailService
from .supabase_auth import SellerContact, SupabaseAuthAdmin

__all__ = [
    "EmailService",
    "SellerContact",
    "SupabaseAuthAdmin",
]
