"""
Rate table loading for FLYCARGO

Converts Country / WeightBand rows into the immutable value objects the
calculator consumes. Rows are validated here so the calculator never sees a
malformed band.
"""

import logging
from decimal import Decimal, InvalidOperation
from typing import List, Optional

from logistics.models import Country
from logistics.models import WeightBand as WeightBandRow
from logistics.services import pricing

logger = logging.getLogger(__name__)

PRICE_FIELDS = (
    'nd_economy_price', 'nd_express_price',
    'doc_economy_price', 'doc_express_price',
)
ENABLED_FIELDS = (
    'is_nd_economy_enabled', 'is_nd_express_enabled',
    'is_doc_economy_enabled', 'is_doc_express_enabled',
)


class RateTableError(Exception):
    """Raised when a stored weight band cannot be used for pricing."""


def _decimal(value, field_name: str, label: str) -> Optional[Decimal]:
    if value is None:
        return None
    try:
        return value if isinstance(value, Decimal) else Decimal(str(value))
    except (InvalidOperation, ValueError):
        raise RateTableError(f"Band '{label}': {field_name} is not a number ({value!r})")


def band_from_row(row: WeightBandRow) -> pricing.WeightBand:
    """
    Validate one ORM row into a WeightBand value object.

    Raises:
        RateTableError: Missing label, non-positive weight or negative price
    """
    label = (row.weight_label or '').strip()
    if not label:
        raise RateTableError(f"Band {row.pk}: weight_label is empty")

    weight_value = _decimal(row.weight_value, 'weight_value', label)
    if weight_value is None or weight_value <= 0:
        raise RateTableError(f"Band '{label}': weight_value must be positive")

    values = {}
    for name in PRICE_FIELDS:
        price = _decimal(getattr(row, name), name, label)
        if price is not None and price < 0:
            raise RateTableError(f"Band '{label}': {name} is negative")
        values[name] = price
    for name in ENABLED_FIELDS:
        values[name] = bool(getattr(row, name))

    return pricing.WeightBand(weight_label=label, weight_value=weight_value, **values)


def table_from_country(country: Country) -> pricing.RateTable:
    bands = tuple(band_from_row(row) for row in country.weight_bands.all())
    return pricing.RateTable(country=country.name, bands=bands)


def load_rate_table(country_name: str) -> Optional[pricing.RateTable]:
    """Load one destination's table (case-insensitive), or None if unknown."""
    country = (
        Country.objects
        .filter(name__iexact=(country_name or '').strip())
        .prefetch_related('weight_bands')
        .first()
    )
    if country is None:
        return None
    return table_from_country(country)


def load_all_rate_tables() -> List[pricing.RateTable]:
    countries = Country.objects.prefetch_related('weight_bands').order_by('name')
    return [table_from_country(c) for c in countries]


def default_calculator() -> pricing.RateCalculator:
    return pricing.RateCalculator(load_rate_table)
