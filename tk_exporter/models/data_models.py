"""Core data models for the Tankerkoenig exporter."""

from dataclasses import dataclass
from typing import Any, Dict, Optional, Tuple


# Prefix of every exported metric name.
NAMESPACE = "tk"

STATUS_OPEN = "open"
STATUS_NO_PRICES = "no prices"

PRODUCTS: Tuple[str, ...] = ("diesel", "e5", "e10")


def parse_price(value: Any) -> Optional[float]:
    """
    Convert a raw API price field to a float.

    The API puts markers such as ``false``, ``null`` or ``"no prices"`` into
    the numeric fields, all of which mean "unknown" and map to None.
    """
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value)
    return None


def _as_float(value: Any) -> float:
    try:
        return float(value)
    except (TypeError, ValueError):
        return 0.0


def _as_str(value: Any) -> str:
    if value is None:
        return ""
    return str(value)


@dataclass(frozen=True)
class Station:
    """A fuel station resolved at startup."""
    id: str
    name: str
    brand: str
    lat: float
    lng: float
    street: str
    house_number: str
    place: str
    post_code: Optional[int] = None

    @classmethod
    def from_api(cls, data: Dict[str, Any]) -> "Station":
        """Build a station from a ``detail.php`` or ``list.php`` record."""
        post_code = data.get("postCode")
        return cls(
            id=_as_str(data.get("id")),
            name=_as_str(data.get("name")),
            brand=_as_str(data.get("brand")),
            lat=_as_float(data.get("lat")),
            lng=_as_float(data.get("lng")),
            street=_as_str(data.get("street")),
            house_number=_as_str(data.get("houseNumber")),
            place=_as_str(data.get("place")),
            post_code=post_code if isinstance(post_code, int) else None,
        )


@dataclass(frozen=True)
class Price:
    """Point-in-time price and availability record for one station."""
    status: str
    diesel: Optional[float] = None
    e5: Optional[float] = None
    e10: Optional[float] = None

    @classmethod
    def from_api(cls, data: Dict[str, Any]) -> "Price":
        """Build a price record from one entry of a ``prices.php`` response."""
        return cls(
            status=_as_str(data.get("status")),
            diesel=parse_price(data.get("diesel")),
            e5=parse_price(data.get("e5")),
            e10=parse_price(data.get("e10")),
        )

    def product_price(self, product: str) -> Optional[float]:
        """Get the price of a product, None if it is unknown."""
        return getattr(self, product)

    @property
    def is_open(self) -> bool:
        return self.status == STATUS_OPEN

    @property
    def has_prices(self) -> bool:
        return self.status != STATUS_NO_PRICES


@dataclass(frozen=True)
class MetricDescriptor:
    """Identity of a metric family: name, help text and label names."""
    name: str
    documentation: str
    labelnames: Tuple[str, ...]


@dataclass(frozen=True)
class Observation:
    """One emitted metric value with its label values in descriptor order."""
    descriptor: MetricDescriptor
    labels: Tuple[str, ...]
    value: float

    def label_dict(self) -> Dict[str, str]:
        return dict(zip(self.descriptor.labelnames, self.labels))
