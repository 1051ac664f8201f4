"""Workflow entry point for venue discovery.

Usage:
    uv run python vroom/workflows/discover.py
"""

import asyncio

from vroom.config import settings
from vroom.services.discovery.flows import discover_venues_flow

settings.configure_logging()


async def main():
    result = await discover_venues_flow(
        city="New York",
        neighborhoods=["Williamsburg", "SoHo"],
        cuisine="italian",
        party_size=20,
        sources=["google_places", "resy", "opentable"],
        limit=20,
    )
    print(f"Discovery {result['state']}: {result['count']} venues")
    print(f"Summary: {result['summary']}")
    for venue in result["venues"]:
        print(f"  {venue['name']} ({', '.join(venue['sources'])}) {venue.get('email') or ''}")


if __name__ == "__main__":
    asyncio.run(main())
