"""
Shipping price calculator.

Deterministic and side-effect free: the same inputs always give the same
breakdown. All amounts are rounded half-up to whole currency units.

    subtotal = base_rate + weight * weight_rate + distance * distance_rate
    charged  = subtotal * priority_multiplier * (fragile_multiplier if fragile)
    total    = charged + declared_value * insurance_rate
"""

import math
from dataclasses import dataclass, field, asdict
from decimal import Decimal, ROUND_HALF_UP
from typing import Dict, Optional

from backend.app.core.config import settings
from backend.app.core.exceptions import InvalidArgumentError
from backend.app.models.package_enums import PackagePriority

EARTH_RADIUS_KM = 6371.0


@dataclass(frozen=True)
class PricingConfig:
    base_rate: float = 50.0
    weight_rate: float = 10.0
    distance_rate: float = 2.0
    default_distance_km: float = 10.0
    fragile_multiplier: float = 1.2
    insurance_rate: float = 0.02
    currency: str = "INR"
    priority_multipliers: Dict[str, float] = field(default_factory=lambda: {
        "standard": 1.0,
        "express": 1.5,
        "overnight": 2.5,
    })

    @classmethod
    def from_settings(cls) -> "PricingConfig":
        return cls(
            base_rate=settings.pricing_base_rate,
            weight_rate=settings.pricing_weight_rate,
            distance_rate=settings.pricing_distance_rate,
            default_distance_km=settings.pricing_default_distance_km,
            fragile_multiplier=settings.pricing_fragile_multiplier,
            insurance_rate=settings.pricing_insurance_rate,
            currency=settings.pricing_currency,
            priority_multipliers=dict(settings.pricing_priority_multipliers),
        )


@dataclass(frozen=True)
class PriceBreakdown:
    base_cost: int
    weight_cost: int
    distance_cost: int
    subtotal: int
    priority_cost: int
    fragile_cost: int
    insurance_cost: int
    total_cost: int
    currency: str
    distance_km: float

    def to_dict(self) -> dict:
        return asdict(self)


def round_half_up(amount: float) -> int:
    """Round to the nearest whole unit, halves away from zero."""
    return int(Decimal(str(amount)).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def haversine_distance(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """
    Great-circle distance between two points on Earth.

    Args:
        lat1, lon1: First point coordinates (degrees)
        lat2, lon2: Second point coordinates (degrees)

    Returns:
        Distance in kilometers
    """
    lat1_rad = math.radians(lat1)
    lat2_rad = math.radians(lat2)
    dlat = lat2_rad - lat1_rad
    dlon = math.radians(lon2) - math.radians(lon1)

    a = math.sin(dlat / 2) ** 2 + math.cos(lat1_rad) * math.cos(lat2_rad) * math.sin(dlon / 2) ** 2
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))

    return EARTH_RADIUS_KM * c


def resolve_distance(
    pickup_lat: Optional[float],
    pickup_lng: Optional[float],
    delivery_lat: Optional[float],
    delivery_lng: Optional[float],
    default_km: float,
) -> float:
    """Haversine distance when both ends are known, otherwise ``default_km``."""
    coords = (pickup_lat, pickup_lng, delivery_lat, delivery_lng)
    if any(c is None for c in coords):
        return default_km
    return haversine_distance(*coords)


def calculate_shipping_price(
    weight: float,
    priority: PackagePriority = PackagePriority.STANDARD,
    fragile: bool = False,
    declared_value: float = 0.0,
    pickup_lat: Optional[float] = None,
    pickup_lng: Optional[float] = None,
    delivery_lat: Optional[float] = None,
    delivery_lng: Optional[float] = None,
    config: Optional[PricingConfig] = None,
) -> PriceBreakdown:
    """
    Quote a shipment.

    ``priority_cost`` and ``fragile_cost`` are the surcharges added by each
    multiplier, so subtotal + priority_cost + fragile_cost + insurance_cost
    is within one unit of ``total_cost``.

    Raises:
        InvalidArgumentError: negative or non-finite weight/value, or unknown priority
    """
    config = config or PricingConfig.from_settings()

    if weight is None or not math.isfinite(weight) or weight < 0:
        raise InvalidArgumentError("Weight must be a non-negative number", field="weight")
    if declared_value is None or not math.isfinite(declared_value) or declared_value < 0:
        raise InvalidArgumentError("Declared value must be a non-negative number", field="declared_value")

    priority_key = PackagePriority(priority).value
    if priority_key not in config.priority_multipliers:
        raise InvalidArgumentError(f"No multiplier configured for priority '{priority_key}'", field="priority")

    distance = resolve_distance(
        pickup_lat, pickup_lng, delivery_lat, delivery_lng, config.default_distance_km
    )

    weight_amount = weight * config.weight_rate
    distance_amount = distance * config.distance_rate
    subtotal = config.base_rate + weight_amount + distance_amount

    after_priority = subtotal * config.priority_multipliers[priority_key]
    after_fragile = after_priority * config.fragile_multiplier if fragile else after_priority
    insurance = declared_value * config.insurance_rate

    rounded_subtotal = round_half_up(subtotal)
    rounded_priority = round_half_up(after_priority)
    rounded_fragile = round_half_up(after_fragile)

    return PriceBreakdown(
        base_cost=round_half_up(config.base_rate),
        weight_cost=round_half_up(weight_amount),
        distance_cost=round_half_up(distance_amount),
        subtotal=rounded_subtotal,
        priority_cost=rounded_priority - rounded_subtotal,
        fragile_cost=rounded_fragile - rounded_priority,
        insurance_cost=round_half_up(insurance),
        total_cost=round_half_up(after_fragile + insurance),
        currency=config.currency,
        distance_km=round(distance, 2),
    )
