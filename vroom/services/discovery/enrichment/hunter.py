"""Hunter.io domain search client for finding venue contact emails.

Hunter API: https://hunter.io/api-documentation/v2#domain-search

Setup:
1. Sign up at https://hunter.io/
2. Get API key from dashboard
3. Set HUNTER_API_KEY environment variable
"""

from typing import Iterable, Optional

import httpx
from loguru import logger
from pydantic import BaseModel

from vroom.services.discovery.models import EmailResult, EmailType
from vroom.services.discovery.utils import extract_domain, is_skipped_domain, run_in_groups

# Email prefixes we prefer for event inquiries, best first
PREFERRED_EMAIL_PREFIXES = [
    "events",
    "event",
    "private",
    "bookings",
    "booking",
    "reservations",
    "reservation",
    "info",
    "contact",
    "hello",
    "inquiries",
    "inquiry",
]

MIN_CONFIDENCE = 50


class HunterEmail(BaseModel):
    value: str
    type: EmailType = EmailType.PERSONAL
    confidence: int = 0
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    position: Optional[str] = None


def score_email(email: str) -> int:
    """100 minus the preference index of the local part's prefix, else 0."""
    local_part = email.split("@")[0].lower()
    for index, prefix in enumerate(PREFERRED_EMAIL_PREFIXES):
        if local_part.startswith(prefix):
            return 100 - index
    return 0


def _rank(email: HunterEmail) -> tuple:
    return (-score_email(email.value), email.type != EmailType.GENERIC, -email.confidence)


def pick_best_email(
    emails: Iterable[HunterEmail], min_confidence: int = MIN_CONFIDENCE
) -> Optional[HunterEmail]:
    """Best event-inquiry address; None when the top pick is below min_confidence."""
    ranked = sorted(emails, key=_rank)
    if not ranked or ranked[0].confidence < min_confidence:
        return None
    return ranked[0]


class HunterClient:
    """Client for Hunter.io domain search."""

    BASE_URL = "https://api.hunter.io/v2/domain-search"

    def __init__(
        self,
        api_key: Optional[str],
        min_confidence: int = MIN_CONFIDENCE,
        http_timeout: float = 30.0,
    ):
        self.api_key = api_key
        self.min_confidence = min_confidence
        self.http_timeout = http_timeout

    @property
    def configured(self) -> bool:
        return bool(self.api_key)

    async def find_email(self, website_or_domain: str) -> Optional[EmailResult]:
        """Best contact email for a venue's domain, or None.

        Never raises: a missing key, skipped domain, HTTP error, malformed
        payload or empty result all come back as None with a log line.
        Malformed email records are skipped individually.
        """
        if not self.api_key:
            logger.info("[Hunter] HUNTER_API_KEY not set, skipping email lookup")
            return None

        domain = extract_domain(website_or_domain)
        if not domain:
            logger.info(f"[Hunter] Could not extract domain from {website_or_domain!r}")
            return None
        if is_skipped_domain(domain):
            logger.info(f"[Hunter] Skipping aggregator domain {domain}")
            return None

        async with httpx.AsyncClient(timeout=self.http_timeout) as client:
            try:
                response = await client.get(
                    self.BASE_URL,
                    params={"domain": domain, "api_key": self.api_key},
                    headers={"Accept": "application/json"},
                )
                response.raise_for_status()
                data = response.json()
            except httpx.HTTPStatusError as e:
                if e.response.status_code == 429:
                    logger.info("[Hunter] API quota exceeded")
                else:
                    logger.info(f"[Hunter] API error for {domain}: {e.response.status_code}")
                return None
            except Exception as e:
                logger.info(f"[Hunter] Failed to look up {domain}: {e}")
                return None

        payload = data.get("data") if isinstance(data, dict) else None
        raw_emails = payload.get("emails") if isinstance(payload, dict) else None
        if not isinstance(raw_emails, list):
            raw_emails = []

        emails = []
        for raw in raw_emails:
            if not isinstance(raw, dict) or not raw.get("value"):
                continue
            # pydantic's ValidationError is a ValueError
            try:
                emails.append(
                    HunterEmail(
                        value=raw["value"],
                        type=EmailType.GENERIC if raw.get("type") == "generic" else EmailType.PERSONAL,
                        confidence=max(0, min(100, int(raw.get("confidence") or 0))),
                        first_name=raw.get("first_name"),
                        last_name=raw.get("last_name"),
                        position=raw.get("position"),
                    )
                )
            except (ValueError, TypeError) as e:
                logger.debug(f"[Hunter] Skipping malformed email record for {domain}: {e}")

        best = pick_best_email(emails, self.min_confidence)
        if best is None:
            logger.info(f"[Hunter] No usable email for {domain}")
            return None

        return EmailResult(
            email=best.value,
            confidence=best.confidence,
            type=best.type,
            first_name=best.first_name,
            last_name=best.last_name,
            position=best.position,
        )

    async def find_emails_batch(
        self,
        domains: list[str],
        concurrency: int = 5,
        pause_seconds: float = 0.2,
    ) -> dict[str, Optional[EmailResult]]:
        """Look up many domains in groups of ``concurrency`` with a pause between groups."""
        results = await run_in_groups(
            domains, self.find_email, concurrency=concurrency, pause_seconds=pause_seconds
        )
        return dict(zip(domains, results))
