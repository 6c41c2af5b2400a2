"""Geographic helpers: geohash encoding, coordinate truncation, planar distance."""

from decimal import ROUND_DOWN, Decimal

_GEOHASH_ALPHABET = "0123456789bcdefghjkmnpqrstuvwxyz"


def geohash_encode(lat: float, lon: float, precision: int = 6) -> str:
    """Encode coordinates as a geohash string.

    Precision 6 gives cells of roughly 1.2km x 0.6km.

    Example:
        >>> geohash_encode(40.7580, -73.9855)
        'dr5ru7'
    """
    if not -90 <= lat <= 90 or not -180 <= lon <= 180:
        raise ValueError(f"Coordinates out of range: {lat}, {lon}")

    lat_range = [-90.0, 90.0]
    lon_range = [-180.0, 180.0]
    chars: list[str] = []
    bits = 0
    bit_count = 0
    even = True  # longitude bits come first

    while len(chars) < precision:
        rng, value = (lon_range, lon) if even else (lat_range, lat)
        mid = (rng[0] + rng[1]) / 2
        if value >= mid:
            bits = (bits << 1) | 1
            rng[0] = mid
        else:
            bits <<= 1
            rng[1] = mid
        even = not even
        bit_count += 1
        if bit_count == 5:
            chars.append(_GEOHASH_ALPHABET[bits])
            bits = 0
            bit_count = 0

    return "".join(chars)


def truncate_coordinate(value: float, places: int = 4) -> str:
    """Truncate (not round) a coordinate to a fixed number of decimals.

    Goes through ``Decimal(str(value))`` so 40.758 stays 40.7580 instead of
    falling to 40.7579 through binary float error.
    """
    quantum = Decimal(1).scaleb(-places)
    return str(Decimal(str(value)).quantize(quantum, rounding=ROUND_DOWN))


def distance_squared(
    lat1: float, lon1: float, lat2: float, lon2: float, epsilon: float = 1e-4
) -> float:
    """Squared planar degree distance plus epsilon, so it is never zero."""
    return (lat1 - lat2) ** 2 + (lon1 - lon2) ** 2 + epsilon
