from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from html import escape
from typing import Optional

BUTTON_STYLE = (
    "background-color: {color}; color: white; padding: 12px 24px; "
    "text-decoration: none; border-radius: 6px; display: inline-block;"
)

PAYMENT_DUE_HTML = """
<h2>Payment Due for Your Go Moto Subscription</h2>
<p>Hi {name},</p>
<p>Your subscription payment is now due. To keep your listings active, please make a payment within the next {grace_days} days.</p>
<p><strong>Grace Period Ends:</strong> {grace_until}</p>
<p>After this date, your listings will be paused until payment is received.</p>
<p><a href="{billing_url}" style="{button_style}">Pay Now</a></p>
<p>Thank you for being part of Go Moto!</p>
"""

SUBSCRIPTION_PAUSED_HTML = """
<h2>Your Go Moto Subscription Has Been Paused</h2>
<p>Hi {name},</p>
<p>Your subscription payment was not received within the grace period, so your subscription has been paused.</p>
<p><strong>Your listings are now hidden</strong> from buyers until you reactivate your subscription.</p>
<p>To restore your listings:</p>
<ol>
  <li>Go to your Seller Dashboard</li>
  <li>Navigate to Billing</li>
  <li>Complete your payment</li>
</ol>
<p><a href="{billing_url}" style="{button_style}">Reactivate Now</a></p>
<p>If you have any questions, please contact our support team.</p>
"""

FINAL_REMINDER_HTML = """
<h2>Final Reminder: Your Listings Will Be Paused Tomorrow</h2>
<p>Hi {name},</p>
<p>This is your final reminder that your subscription payment is overdue.</p>
<p><strong>Your listings will be hidden from buyers tomorrow</strong> if payment is not received.</p>
<p><a href="{billing_url}" style="{button_style}">Pay Now to Keep Your Listings Active</a></p>
<p>Don't lose potential buyers - pay now!</p>
"""

SUBSCRIPTION_REACTIVATED_HTML = """
<h2>Your Go Moto Subscription Is Active</h2>
<p>Hi {name},</p>
<p>Thanks, we've received your payment. Your subscription is active again and {restored} of your paused listings are visible to buyers.</p>
<p><strong>Next Payment Due:</strong> {next_payment_due}</p>
<p><a href="{billing_url}" style="{button_style}">View Billing</a></p>
"""


@dataclass(frozen=True)
class RenderedEmail:
    subject: str
    html: str


def _display_name(name: Optional[str]) -> str:
    return escape(name) if name else "Seller"


def _format_date(value: date) -> str:
    return value.strftime("%Y/%m/%d")


def payment_due_email(
    name: Optional[str], grace_until: datetime, grace_days: int, billing_url: str
) -> RenderedEmail:
    return RenderedEmail(
        subject="Payment Due - Your Go Moto Subscription",
        html=PAYMENT_DUE_HTML.format(
            name=_display_name(name),
            grace_days=grace_days,
            grace_until=_format_date(grace_until),
            billing_url=billing_url,
            button_style=BUTTON_STYLE.format(color="#ef4444"),
        ),
    )


def subscription_paused_email(name: Optional[str], billing_url: str) -> RenderedEmail:
    return RenderedEmail(
        subject="Subscription Paused - Your Listings Are Now Hidden",
        html=SUBSCRIPTION_PAUSED_HTML.format(
            name=_display_name(name),
            billing_url=billing_url,
            button_style=BUTTON_STYLE.format(color="#22c55e"),
        ),
    )


def final_reminder_email(name: Optional[str], billing_url: str) -> RenderedEmail:
    return RenderedEmail(
        subject="URGENT: Last Day to Pay - Listings Will Be Paused Tomorrow",
        html=FINAL_REMINDER_HTML.format(
            name=_display_name(name),
            billing_url=billing_url,
            button_style=BUTTON_STYLE.format(color="#f59e0b"),
        ),
    )


def subscription_reactivated_email(
    name: Optional[str], restored: int, next_payment_due: date, billing_url: str
) -> RenderedEmail:
    return RenderedEmail(
        subject="Payment Received - Your Go Moto Subscription Is Active",
        html=SUBSCRIPTION_REACTIVATED_HTML.format(
            name=_display_name(name),
            restored=restored,
            next_payment_due=_format_date(next_payment_due),
            billing_url=billing_url,
            button_style=BUTTON_STYLE.format(color="#22c55e"),
        ),
    )
