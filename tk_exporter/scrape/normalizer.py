"""Normalization of station metadata for display labels.

The API delivers street and city names in inconsistent capitalization (mostly
all uppercase) and coordinates as raw floats. Labels are derived here so every
cycle renders the same station the same way.
"""

import re
from typing import Dict, Tuple

from tk_exporter.models.data_models import Station


GEOHASH_BASE32 = "0123456789bcdefghjkmnpqrstuvwxyz"
GEOHASH_PRECISION = 12

_DECODE_MAP = {char: index for index, char in enumerate(GEOHASH_BASE32)}

# A word is a run of letters, apostrophes inside a word don't start a new one.
_WORD_RE = re.compile(r"[^\W\d_]+(?:'[^\W\d_]+)*")


def title_case(value: str) -> str:
    """
    Title-case a name and trim surrounding whitespace.

    Unlike str.title, apostrophes don't start a new word ("DRIVER'S" ->
    "Driver's") and digits are left alone ("2A" stays "2A").
    """
    return _WORD_RE.sub(lambda m: m.group(0).capitalize(), value.strip().lower()) if value else ""


def format_address(station: Station) -> str:
    """Render "<Street> <house number>" with a title-cased street."""
    street = title_case(station.street)
    number = station.house_number.strip()
    return f"{street} {number}".strip()


def encode_geohash(lat: float, lng: float, precision: int = GEOHASH_PRECISION) -> str:
    """
    Encode a coordinate as a base-32 geohash.

    Args:
        lat: Latitude in degrees, -90..90
        lng: Longitude in degrees, -180..180
        precision: Number of characters to emit

    Returns:
        Geohash string of the given length
    """
    if not -90.0 <= lat <= 90.0 or not -180.0 <= lng <= 180.0:
        raise ValueError(f"coordinate out of range: {lat}, {lng}")

    lat_range = [-90.0, 90.0]
    lng_range = [-180.0, 180.0]
    chars = []
    bits = 0
    bit_count = 0
    even = True  # longitude bits come first

    while len(chars) < precision:
        if even:
            mid = (lng_range[0] + lng_range[1]) / 2
            if lng >= mid:
                bits = (bits << 1) | 1
                lng_range[0] = mid
            else:
                bits <<= 1
                lng_range[1] = mid
        else:
            mid = (lat_range[0] + lat_range[1]) / 2
            if lat >= mid:
                bits = (bits << 1) | 1
                lat_range[0] = mid
            else:
                bits <<= 1
                lat_range[1] = mid
        even = not even
        bit_count += 1

        if bit_count == 5:
            chars.append(GEOHASH_BASE32[bits])
            bits = 0
            bit_count = 0

    return "".join(chars)


def decode_geohash_bounds(geohash: str) -> Tuple[Tuple[float, float], Tuple[float, float]]:
    """
    Decode a geohash into its cell bounds.

    Returns:
        ((min_lat, max_lat), (min_lng, max_lng))

    Raises:
        ValueError: If the string is empty or not base-32 geohash
    """
    if not geohash:
        raise ValueError("empty geohash")

    lat_range = [-90.0, 90.0]
    lng_range = [-180.0, 180.0]
    even = True

    for char in geohash.lower():
        if char not in _DECODE_MAP:
            raise ValueError(f"invalid geohash character {char!r} in {geohash!r}")
        value = _DECODE_MAP[char]
        for shift in range(4, -1, -1):
            bit = (value >> shift) & 1
            target = lng_range if even else lat_range
            mid = (target[0] + target[1]) / 2
            if bit:
                target[0] = mid
            else:
                target[1] = mid
            even = not even

    return (lat_range[0], lat_range[1]), (lng_range[0], lng_range[1])


def decode_geohash(geohash: str) -> Tuple[float, float]:
    """Decode a geohash into the (lat, lng) centre of its cell."""
    (min_lat, max_lat), (min_lng, max_lng) = decode_geohash_bounds(geohash)
    return (min_lat + max_lat) / 2, (min_lng + max_lng) / 2


def geohash_label(lat: float, lng: float) -> str:
    """Geohash of a station, empty if the API sent coordinates outside the globe."""
    if not -90.0 <= lat <= 90.0 or not -180.0 <= lng <= 180.0:
        return ""
    return encode_geohash(lat, lng)


def station_labels(station: Station) -> Dict[str, str]:
    """
    Build the display labels of a station details metric.

    Returns:
        Dict with id, name, address, city, geohash and brand
    """
    return {
        "id": station.id,
        "name": station.name,
        "address": format_address(station),
        "city": title_case(station.place),
        "geohash": geohash_label(station.lat, station.lng),
        "brand": station.brand,
    }
