"""Usage telemetry.

A usage record counts the classes a user declared and notes which remote
authentication types they use. Delivery is best effort: the processor
logs and drops any failure, :class:`TelemetryError` or otherwise.
"""
import logging
import uuid
from datetime import datetime, timezone
from typing import Any, Optional

import httpx

from ..config.settings import TelemetrySettings
from ..errors import TelemetryError
from ..utils.logging_config import timed

logger = logging.getLogger(__name__)

AUTHENTICATION_TYPES = ("radius", "ldap", "tacacs")
PLATFORM_FIELDS = ("nicConfiguration", "platform", "platformID", "platformVersion", "regkey")


def count_classes(declaration: Any, counts: Optional[dict[str, int]] = None) -> dict[str, int]:
    """Count every ``class`` value anywhere in the declaration."""
    counts = counts if counts is not None else {}
    if isinstance(declaration, dict):
        class_name = declaration.get("class")
        if isinstance(class_name, str):
            counts[class_name] = counts.get(class_name, 0) + 1
        for value in declaration.values():
            count_classes(value, counts)
    elif isinstance(declaration, list):
        for item in declaration:
            count_classes(item, counts)
    return counts


def count_authentication_types(declaration: dict[str, Any]) -> dict[str, int]:
    """Count remote auth types declared directly on Authentication objects."""
    counts = {auth_type: 0 for auth_type in AUTHENTICATION_TYPES}
    for tenant in declaration.values():
        if not isinstance(tenant, dict):
            continue
        for obj in tenant.values():
            if isinstance(obj, dict) and obj.get("class") == "Authentication":
                for auth_type in AUTHENTICATION_TYPES:
                    if auth_type in obj:
                        counts[auth_type] += 1
    return counts


def build_usage_record(
    declaration: dict[str, Any],
    modules: Optional[dict[str, str]] = None,
    platform: Optional[dict[str, Any]] = None,
) -> dict[str, Any]:
    """Build the record body for one submitted declaration.

    Args:
        declaration: The raw declaration as the user sent it
        modules: Provisioning level per module; ``none`` levels are left out
        platform: Device platform facts; missing ones are reported as ``unknown``
    """
    record: dict[str, Any] = count_classes(declaration)
    record["authenticationType"] = count_authentication_types(declaration)
    record["modules"] = {
        name: level for name, level in (modules or {}).items() if level and level != "none"
    }
    for key in PLATFORM_FIELDS:
        record[key] = (platform or {}).get(key) or "unknown"

    user_agent = (declaration.get("controls") or {}).get("userAgent")
    if user_agent:
        record["userAgent"] = user_agent
    return record


class TelemetryReporter:
    """Post usage records to the collector."""

    def __init__(
        self,
        settings: Optional[TelemetrySettings] = None,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self.settings = settings or TelemetrySettings()
        self._client = client

    @timed("telemetry:report")
    async def report(self, record: dict[str, Any]) -> None:
        """Send one record.

        Raises:
            TelemetryError: the collector could not be reached or refused it
        """
        if not self.settings.enabled:
            logger.debug("Telemetry disabled, not sending usage record")
            return

        payload = {
            "documentType": "Declarative Onboarding Telemetry Data",
            "documentVersion": "1",
            "digitalAssetId": str(uuid.uuid4()),
            "observationStartTime": datetime.now(timezone.utc).isoformat(),
            "telemetryRecords": [record],
        }
        headers = {"F5-ApiKey": self.settings.api_key} if self.settings.api_key else {}

        client = self._client or httpx.AsyncClient(timeout=self.settings.timeout)
        try:
            response = await client.post(self.settings.url, json=payload, headers=headers)
            response.raise_for_status()
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            raise TelemetryError(f"Unable to send usage record: {e}") from e
        finally:
            if self._client is None:
                await client.aclose()

        logger.debug(f"Usage record sent to {self.settings.url}")
