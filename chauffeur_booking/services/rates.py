from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from sqlalchemy import or_
from sqlalchemy.orm import Session

from chauffeur_booking.core.errors import NotFoundError
from chauffeur_booking.core.logging_config import get_logger
from chauffeur_booking.core.redis import TtlCache
from chauffeur_booking.models.rates import PlatformRate
from chauffeur_booking.utils.clock import now_local

logger = get_logger()

CACHE_KEY = "current"


@dataclass(frozen=True)
class PlatformRates:
    vat_rate_percent: Decimal
    platform_fee_rate_percent: Decimal
    commission_rate_percent: Decimal

    def to_cache(self):
        return {
            "vat_rate_percent": str(self.vat_rate_percent),
            "platform_fee_rate_percent": str(self.platform_fee_rate_percent),
            "commission_rate_percent": str(self.commission_rate_percent),
        }

    @classmethod
    def from_cache(cls, data: dict):
        return cls(**{k: Decimal(v) for k, v in data.items()})


class RatesService:
    """Read-only access to the platform rates in force at a given moment."""

    def __init__(self, db: Session, cache: TtlCache):
        self.db = db
        self.cache = cache

    def get_rates(self, at: datetime | None = None) -> PlatformRates:
        # Only "now" lookups are cached; historical lookups always hit the DB
        use_cache = at is None
        at = at or now_local()

        if use_cache:
            cached = self.cache.get(CACHE_KEY)
            if cached:
                return PlatformRates.from_cache(cached)

        row = (
            self.db.query(PlatformRate)
            .filter(
                PlatformRate.effective_from <= at,
                or_(PlatformRate.effective_until.is_(None), PlatformRate.effective_until > at),
            )
            .order_by(PlatformRate.effective_from.desc())
            .first()
        )
        if not row:
            logger.error(f"No platform rates in force at {at.isoformat()}")
            raise NotFoundError("Platform rates are not configured")

        rates = PlatformRates(
            vat_rate_percent=Decimal(row.vat_rate_percent),
            platform_fee_rate_percent=Decimal(row.platform_customer_service_fee_rate_percent),
            commission_rate_percent=Decimal(row.platform_fleet_owner_commission_rate_percent),
        )

        if use_cache:
            self.cache.set(CACHE_KEY, rates.to_cache())
        return rates
