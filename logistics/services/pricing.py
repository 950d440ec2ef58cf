"""
Rate Calculator for FLYCARGO

Weight-banded shipping cost calculation. Every caller (public quote, booking
creation, admin rate preview) goes through this module.

Chargeable weight = Max(ActualWeight, L x W x H / 5000)
Band = first band (ascending) whose upper weight >= chargeable weight,
       or the heaviest band when the weight exceeds all of them (overflow).

Pure functions only: no ORM access, no settings. Rate tables are loaded by
logistics.services.rate_tables.
"""

import logging
from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum
from typing import Iterable, Optional, Tuple

logger = logging.getLogger(__name__)

CURRENCY = 'LKR'

# Same divisor for economy and express
VOLUMETRIC_DIVISOR = Decimal('5000')

# Below this difference chargeable and actual weight are reported as equal
WEIGHT_TOLERANCE = Decimal('0.001')

SHIPMENT_KINDS = ('parcel', 'document')
SERVICE_TIERS = ('economy', 'express')

# Column prefix for each shipment kind
_KIND_PREFIX = {'parcel': 'nd', 'document': 'doc'}


def _to_decimal(value) -> Optional[Decimal]:
    if value is None:
        return None
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


# ============================================
# DATA CLASSES
# ============================================

class RateResultKind(str, Enum):
    SUCCESS = 'SUCCESS'
    SERVICE_UNAVAILABLE = 'SERVICE_UNAVAILABLE'
    PRICE_NOT_CONFIGURED = 'PRICE_NOT_CONFIGURED'
    NO_RATES_CONFIGURED = 'NO_RATES_CONFIGURED'
    DESTINATION_NOT_FOUND = 'DESTINATION_NOT_FOUND'


@dataclass(frozen=True)
class WeightBand:
    """One priced weight band. weight_value is the inclusive upper bound (kg)."""
    weight_label: str
    weight_value: Decimal
    nd_economy_price: Optional[Decimal] = None
    is_nd_economy_enabled: bool = True
    nd_express_price: Optional[Decimal] = None
    is_nd_express_enabled: bool = True
    doc_economy_price: Optional[Decimal] = None
    is_doc_economy_enabled: bool = True
    doc_express_price: Optional[Decimal] = None
    is_doc_express_enabled: bool = True

    def cell(self, shipment_type: str, service_type: str) -> Tuple[Optional[Decimal], bool]:
        """
        Return (price, enabled) for a shipment kind and service tier.

        Raises:
            ValueError: Unknown shipment type or service type
        """
        if shipment_type not in _KIND_PREFIX:
            raise ValueError(f"Unknown shipment type: {shipment_type}")
        if service_type not in SERVICE_TIERS:
            raise ValueError(f"Unknown service type: {service_type}")

        prefix = _KIND_PREFIX[shipment_type]
        price = getattr(self, f'{prefix}_{service_type}_price')
        enabled = getattr(self, f'is_{prefix}_{service_type}_enabled')
        return price, enabled


@dataclass(frozen=True)
class RateTable:
    """All weight bands configured for one destination country."""
    country: str
    bands: Tuple[WeightBand, ...] = field(default_factory=tuple)


@dataclass(frozen=True)
class RateQuery:
    """
    Inputs of a rate calculation.

    Weights in kg, dimensions in cm. Dimensions are all-or-none.
    """
    shipment_type: str
    service_type: str
    destination: str
    weight: Decimal
    length: Optional[Decimal] = None
    width: Optional[Decimal] = None
    height: Optional[Decimal] = None

    def __post_init__(self):
        if self.shipment_type not in SHIPMENT_KINDS:
            raise ValueError(f"Unknown shipment type: {self.shipment_type}")
        if self.service_type not in SERVICE_TIERS:
            raise ValueError(f"Unknown service type: {self.service_type}")

        # frozen: normalise through object.__setattr__
        for name in ('weight', 'length', 'width', 'height'):
            object.__setattr__(self, name, _to_decimal(getattr(self, name)))

        if self.weight is None or self.weight <= 0:
            raise ValueError("Weight must be positive.")

        provided = [d for d in (self.length, self.width, self.height) if d is not None]
        if provided and len(provided) != 3:
            raise ValueError("Provide all three dimensions or none.")
        if any(d <= 0 for d in provided):
            raise ValueError("Dimensions must be positive.")

    @property
    def chargeable_weight(self) -> Decimal:
        return chargeable_weight(self.weight, self.length, self.width, self.height)


@dataclass(frozen=True)
class RateResult:
    """
    Outcome of a calculation. On failure price and band_label are None and
    kind tells why.
    """
    kind: RateResultKind
    message: str
    price: Optional[Decimal] = None
    currency: str = CURRENCY
    band_label: Optional[str] = None
    chargeable_weight: Optional[Decimal] = None
    actual_weight: Optional[Decimal] = None
    overflow: bool = False

    @property
    def ok(self) -> bool:
        return self.kind == RateResultKind.SUCCESS

    @property
    def uses_chargeable_weight(self) -> bool:
        if self.chargeable_weight is None or self.actual_weight is None:
            return False
        return abs(self.chargeable_weight - self.actual_weight) >= WEIGHT_TOLERANCE

    def to_dict(self):
        return {
            'ok': self.ok,
            'kind': self.kind.value,
            'message': self.message,
            'price': str(self.price) if self.price is not None else None,
            'currency': self.currency,
            'band_label': self.band_label,
            'chargeable_weight': str(self.chargeable_weight) if self.chargeable_weight is not None else None,
            'actual_weight': str(self.actual_weight) if self.actual_weight is not None else None,
            'uses_chargeable_weight': self.uses_chargeable_weight,
            'overflow': self.overflow,
        }


# ============================================
# CALCULATION
# ============================================

def chargeable_weight(weight, length=None, width=None, height=None) -> Decimal:
    """
    Max of actual and volumetric weight.

    Volumetric weight only counts when all three dimensions are present and
    positive; otherwise the actual weight is returned unchanged.
    """
    weight = _to_decimal(weight)
    dims = [_to_decimal(d) for d in (length, width, height)]
    if all(d is not None and d > 0 for d in dims):
        volumetric = (dims[0] * dims[1] * dims[2]) / VOLUMETRIC_DIVISOR
        return max(weight, volumetric)
    return weight


def select_band(bands: Iterable[WeightBand], weight) -> Tuple[Optional[WeightBand], bool]:
    """
    Pick the band for a weight.

    Returns:
        Tuple of (band, overflow). band is None only for an empty band list;
        overflow is True when the heaviest band was used as a fallback.
    """
    weight = _to_decimal(weight)
    ordered = sorted(bands, key=lambda b: b.weight_value)
    if not ordered:
        return None, False

    for band in ordered:
        if weight <= band.weight_value:
            return band, False
    return ordered[-1], True


def calculate_rate(query: RateQuery, table: Optional[RateTable]) -> RateResult:
    """Price a query against one destination's rate table."""
    weight = query.chargeable_weight

    if table is None:
        return RateResult(
            kind=RateResultKind.DESTINATION_NOT_FOUND,
            message=f"No rates found for {query.destination}.",
            chargeable_weight=weight,
            actual_weight=query.weight,
        )

    band, overflow = select_band(table.bands, weight)
    if band is None:
        return RateResult(
            kind=RateResultKind.NO_RATES_CONFIGURED,
            message=f"No shipping weights configured for {table.country}.",
            chargeable_weight=weight,
            actual_weight=query.weight,
        )

    price, enabled = band.cell(query.shipment_type, query.service_type)
    failure = dict(
        band_label=band.weight_label,
        chargeable_weight=weight,
        actual_weight=query.weight,
        overflow=overflow,
    )

    if not enabled:
        return RateResult(
            kind=RateResultKind.SERVICE_UNAVAILABLE,
            message=(
                f"Selected {query.service_type} service for {query.shipment_type} "
                f"is not available for this weight band."
            ),
            **failure,
        )

    if price is None:
        logger.warning(
            f"[RATES] Missing price for {table.country} {band.weight_label} "
            f"{query.shipment_type}/{query.service_type}"
        )
        return RateResult(
            kind=RateResultKind.PRICE_NOT_CONFIGURED,
            message=(
                f"Price not configured for {query.shipment_type} "
                f"{query.service_type} at {band.weight_label}."
            ),
            **failure,
        )

    if overflow:
        message = f"Weight exceeds max band. Using rate for {band.weight_label}."
    else:
        message = f"Estimated cost: {price:,} {CURRENCY}"

    return RateResult(
        kind=RateResultKind.SUCCESS,
        message=message,
        price=_to_decimal(price),
        **failure,
    )


def find_rate_table(tables: Iterable[RateTable], country: str) -> Optional[RateTable]:
    """Case-insensitive lookup by country name."""
    wanted = (country or '').strip().casefold()
    for table in tables:
        if table.country.strip().casefold() == wanted:
            return table
    return None


def calculate_rate_for_destination(query: RateQuery, tables: Iterable[RateTable]) -> RateResult:
    return calculate_rate(query, find_rate_table(tables, query.destination))


class RateCalculator:
    """
    Calculator bound to a source of rate tables.

    table_source is any callable taking a country name and returning a
    RateTable or None (see rate_tables.load_rate_table).
    """

    def __init__(self, table_source):
        self.table_source = table_source

    def quote(self, query: RateQuery) -> RateResult:
        table = self.table_source(query.destination)
        result = calculate_rate(query, table)
        logger.info(
            f"[RATES] {query.destination} {query.shipment_type}/{query.service_type} "
            f"{result.chargeable_weight}kg -> {result.kind.value}"
        )
        return result
