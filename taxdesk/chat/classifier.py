"""Maps a failure cause to the apology shown when every attempt failed.

Each message carries a phone number and email so the visitor always has a
way to reach the office.
"""

from __future__ import annotations

from dataclasses import dataclass

from taxdesk.chat.errors import FailureCause
from taxdesk.config import DEFAULT_EMAIL, DEFAULT_PHONE

TIMEOUT_TEMPLATE = (
    "⏱️ Request timeout. Our AI is taking longer than usual.\n\n"
    "Please try again or contact us:\n"
    "\U0001f4de {phone}\n"
    "\U0001f4e7 {email}"
)

NETWORK_TEMPLATE = (
    "\U0001f50c Network connection issue. Please check your internet connection.\n\n"
    "For immediate assistance:\n"
    "\U0001f4de {phone}\n"
    "\U0001f4e7 {email}"
)

UNAVAILABLE_TEMPLATE = (
    "⚠️ Our AI assistant is temporarily unavailable.\n\n"
    "Please contact us directly:\n"
    "\U0001f4de {phone}\n"
    "\U0001f4e7 {email}\n\n"
    "We're here to help! \U0001f60a"
)

_TEMPLATES: dict[FailureCause, str] = {
    FailureCause.TIMEOUT: TIMEOUT_TEMPLATE,
    FailureCause.NETWORK: NETWORK_TEMPLATE,
    FailureCause.HTTP: UNAVAILABLE_TEMPLATE,
    FailureCause.MALFORMED: UNAVAILABLE_TEMPLATE,
}


@dataclass(frozen=True)
class ContactInfo:
    phone: str = DEFAULT_PHONE
    email: str = DEFAULT_EMAIL


class ErrorClassifier:
    def __init__(self, contact: ContactInfo | None = None) -> None:
        self.contact = contact or ContactInfo()

    def classify(self, cause: FailureCause | None) -> str:
        return _TEMPLATES.get(cause, UNAVAILABLE_TEMPLATE).format(
            phone=self.contact.phone or DEFAULT_PHONE,
            email=self.contact.email or DEFAULT_EMAIL,
        )
