"""Homepage metrics: waitlist size and optional node telemetry."""

from dataclasses import dataclass
from datetime import datetime, timezone

import httpx
from sqlalchemy import distinct, func, select
from sqlalchemy.exc import SQLAlchemyError

from waitlist.logging_config import get_logger
from waitlist.settings import settings
from waitlist.storage.db import Database, db
from waitlist.storage.models import UserAccount

logger = get_logger(__name__)


@dataclass
class Metrics:
    waitlist_count: int
    country_count: int
    avg_block_seconds: int
    ss58_prefix: int
    updated_at: datetime
    height: int | None = None
    peers: int | None = None

    def to_dict(self) -> dict:
        """Camel-cased payload; node fields are omitted when unknown."""
        data = {
            "waitlistCount": self.waitlist_count,
            "countryCount": self.country_count,
            "avgBlockSeconds": self.avg_block_seconds,
            "ss58Prefix": self.ss58_prefix,
            "updatedAt": self.updated_at.isoformat(timespec="milliseconds").replace("+00:00", "Z"),
        }
        if self.height is not None:
            data["height"] = self.height
        if self.peers is not None:
            data["peers"] = self.peers
        return data


class MetricsService:
    """Collects the numbers shown on the homepage widgets.

    Both sources degrade to defaults: a database failure leaves the counts
    at zero and an unreachable node leaves height/peers unset.
    """

    def __init__(
        self,
        database: Database | None = None,
        node_metrics_url: str | None = None,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.db = database or db
        self.node_metrics_url = node_metrics_url if node_metrics_url is not None else settings.node_metrics_url
        self.timeout = timeout or settings.node_metrics_timeout_seconds
        self.transport = transport

    def waitlist_counts(self) -> tuple[int, int]:
        """(accounts, distinct non-empty countries)"""
        country = func.nullif(func.trim(UserAccount.country), "")
        try:
            with self.db.session() as session:
                total = session.scalar(select(func.count(UserAccount.id))) or 0
                countries = session.scalar(select(func.count(distinct(country)))) or 0
        except SQLAlchemyError as e:
            logger.warning("metrics_db_unavailable", error=str(e))
            return 0, 0
        return int(total), int(countries)

    async def node_metrics(self) -> tuple[int | None, int | None]:
        """(height, peers) from the node metrics endpoint, if configured and reachable."""
        if not self.node_metrics_url:
            return None, None

        try:
            async with httpx.AsyncClient(transport=self.transport, timeout=self.timeout) as client:
                response = await client.get(self.node_metrics_url)
            if response.status_code != 200:
                logger.info("node_metrics_http_error", status=response.status_code)
                return None, None
            data = response.json()
        except (httpx.HTTPError, ValueError) as e:
            logger.info("node_metrics_unavailable", error=str(e))
            return None, None

        if not isinstance(data, dict):
            return None, None
        height = data.get("height")
        peers = data.get("peers")
        return (
            height if isinstance(height, int) else None,
            peers if isinstance(peers, int) else None,
        )

    async def collect(self) -> Metrics:
        total, countries = self.waitlist_counts()
        height, peers = await self.node_metrics()
        return Metrics(
            waitlist_count=total,
            country_count=countries,
            avg_block_seconds=settings.avg_block_seconds,
            ss58_prefix=settings.ss58_prefix,
            updated_at=datetime.now(timezone.utc),
            height=height,
            peers=peers,
        )


# Global service instance
metrics_service = MetricsService()
