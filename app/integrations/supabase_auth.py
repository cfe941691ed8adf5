"""Seller contact lookup through the Supabase Auth admin API."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Optional
from uuid import UUID

import httpx

from app.config import settings
from app.core.exceptions import IntegrationError


@dataclass(frozen=True)
class SellerContact:
    email: Optional[str]
    name: Optional[str]


class SupabaseAuthAdmin:
    """Reads user records with the service-role key."""

    def __init__(
        self,
        base_url: Optional[str] = None,
        service_key: Optional[str] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = (base_url or str(settings.supabase_url)).rstrip("/")
        self.service_key = service_key or settings.supabase_service_key.get_secret_value()
        self._transport = transport

    async def get_seller_contact(self, user_id: UUID | str) -> SellerContact:
        url = f"{self.base_url}/auth/v1/admin/users/{user_id}"
        try:
            async with httpx.AsyncClient(timeout=15.0, transport=self._transport) as client:
                response = await client.get(
                    url,
                    headers={
                        "apikey": self.service_key,
                        "Authorization": f"Bearer {self.service_key}",
                    },
                )
                if response.status_code == 404:
                    return SellerContact(email=None, name=None)
                response.raise_for_status()
                data = response.json()
        except httpx.HTTPError as exc:
            raise IntegrationError(f"User lookup failed for {user_id}: {exc}") from exc
        except ValueError as exc:
            raise IntegrationError(f"User lookup for {user_id} returned invalid JSON: {exc}") from exc

        # Some deployments wrap the record as {"user": {...}}.
        user = data.get("user", data) if isinstance(data, dict) else None
        if not isinstance(user, dict):
            raise IntegrationError(f"User lookup for {user_id} returned no user record")
        metadata = user.get("user_metadata")
        if not isinstance(metadata, dict):
            metadata = {}
        return SellerContact(
            email=user.get("email") or None,
            name=metadata.get("full_name") or None,
        )
