"""Site settings collaborator -- GET /settings with built-in defaults.

The chat must keep working when the settings service is slow, down or
returns something unexpected, so every failure degrades to defaults.
"""

from __future__ import annotations

import asyncio
import logging

import httpx
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from taxdesk.config import DEFAULT_COMPANY_NAME, DEFAULT_EMAIL, DEFAULT_PHONE

logger = logging.getLogger(__name__)


class SiteFeatures(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    enable_chatbot: bool = Field(True, alias="enableChatbot")


class SiteSettings(BaseModel):
    """Public subset of the business settings document."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    company_name: str = Field(DEFAULT_COMPANY_NAME, alias="companyName")
    phone: str = DEFAULT_PHONE
    email: str = DEFAULT_EMAIL
    features: SiteFeatures = Field(default_factory=SiteFeatures)

    @property
    def chatbot_enabled(self) -> bool:
        return self.features.enable_chatbot

    def to_wire(self) -> dict:
        return self.model_dump(by_alias=True)


async def fetch_site_settings(
    http: httpx.AsyncClient,
    url: str,
    timeout: float = 5.0,
) -> SiteSettings:
    """Fetch settings; any failure yields SiteSettings() defaults."""
    try:
        async with asyncio.timeout(timeout):
            response = await http.get(url)
        response.raise_for_status()
        body = response.json()
    except TimeoutError:
        logger.warning("Settings fetch timed out after %.1fs, using defaults", timeout)
        return SiteSettings()
    except (httpx.HTTPError, ValueError) as e:
        logger.warning("Settings fetch failed, using defaults: %s", e)
        return SiteSettings()

    if not isinstance(body, dict) or body.get("success") is not True:
        logger.warning("Settings fetch returned no data, using defaults")
        return SiteSettings()

    try:
        site = SiteSettings.model_validate(body.get("data") or {})
    except ValidationError as e:
        logger.warning("Settings payload invalid, using defaults: %s", e)
        return SiteSettings()

    # Blank strings in the settings document fall back to the defaults
    defaults = SiteSettings()
    return site.model_copy(
        update={
            "company_name": site.company_name or defaults.company_name,
            "phone": site.phone or defaults.phone,
            "email": site.email or defaults.email,
        }
    )
