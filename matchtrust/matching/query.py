"""Translation of loose query-string parameters into a SearchPreference.

Host routes receive search parameters as strings (``lat=28.61&skills=cooking,
cleaning&sortBy=rating``). ``preference_from_query`` maps them onto the
explicit SearchPreference and rejects anything it does not understand.
"""

import math
from typing import Any, Dict, FrozenSet, Mapping, Optional

from pydantic import ValidationError

from matchtrust.domain.models import PriceRange, SearchPreference, ServiceCategory, SortKey

from .exceptions import InvalidQuery

# Accepted parameter names, including aliases used by existing clients
QUERY_PARAMETERS = frozenset({
    "lat", "lng", "maxDistance", "skills", "minExperience",
    "minPrice", "maxPrice", "minSalary", "maxSalary", "minRating", "sortBy",
})

SORT_ALIASES = {
    "recommendation": SortKey.RECOMMENDATION,
    "rating": SortKey.RATING,
    "price": SortKey.PRICE,
    "salary": SortKey.PRICE,
    "distance": SortKey.DISTANCE,
}


def preference_from_query(
    params: Mapping[str, Any], default_max_distance_km: float = 10.0
) -> SearchPreference:
    """Build a SearchPreference from query-string parameters.

    Empty values are treated as absent. ``minSalary``/``maxSalary`` are
    aliases of ``minPrice``/``maxPrice`` and may not be combined with them.

    Args:
        params: Parameter mapping (values are strings or already-parsed numbers)
        default_max_distance_km: Radius used when ``maxDistance`` is absent

    Returns:
        Validated SearchPreference

    Raises:
        InvalidQuery: On unknown parameters, unparseable values, or
            contradictory combinations
    """
    unknown = sorted(set(params) - QUERY_PARAMETERS)
    if unknown:
        raise InvalidQuery(f"Unknown search parameters: {', '.join(unknown)}", field=unknown[0])

    values = {k: v for k, v in params.items() if v is not None and str(v).strip() != ""}

    fields: Dict[str, Any] = {
        "max_distance_km": _number(values, "maxDistance", default_max_distance_km),
        "min_experience": _whole_number(values, "minExperience", 0),
        "min_rating": _number(values, "minRating", 0.0),
    }
    if "lat" in values or "lng" in values:
        fields["latitude"] = _number(values, "lat")
        fields["longitude"] = _number(values, "lng")
    if "skills" in values:
        fields["skills"] = _skills(values["skills"])
    if "sortBy" in values:
        fields["sort_by"] = _sort_key(values["sortBy"])

    price_range = _price_range(values)
    if price_range is not None:
        fields["price_range"] = price_range

    try:
        return SearchPreference(**fields)
    except ValidationError as e:
        first = e.errors()[0]
        location = ".".join(str(loc) for loc in first["loc"]) or None
        raise InvalidQuery(f"Invalid search parameters: {first['msg']}", field=location) from e


def _number(values: Mapping[str, Any], key: str, default: Optional[float] = None) -> Optional[float]:
    if key not in values:
        return default
    raw = values[key]
    try:
        number = float(raw)
    except (TypeError, ValueError) as e:
        raise InvalidQuery(f"{key} must be a number, got: {raw!r}", field=key) from e
    if not math.isfinite(number):
        raise InvalidQuery(f"{key} must be finite, got: {raw!r}", field=key)
    return number


def _whole_number(values: Mapping[str, Any], key: str, default: int) -> int:
    number = _number(values, key, default)
    if not float(number).is_integer():
        raise InvalidQuery(f"{key} must be a whole number, got: {values[key]!r}", field=key)
    return int(number)


def _skills(raw: Any) -> FrozenSet[ServiceCategory]:
    items = raw.split(",") if isinstance(raw, str) else list(raw)
    skills = set()
    for item in items:
        name = str(item).strip().lower()
        if not name:
            continue
        try:
            skills.add(ServiceCategory(name))
        except ValueError as e:
            allowed = ", ".join(c.value for c in ServiceCategory)
            raise InvalidQuery(f"Unknown skill '{name}'. Expected one of: {allowed}", field="skills") from e
    return frozenset(skills)


def _sort_key(raw: Any) -> SortKey:
    key = str(raw).strip().lower()
    if key not in SORT_ALIASES:
        raise InvalidQuery(
            f"Unknown sortBy '{raw}'. Expected one of: {', '.join(sorted(SORT_ALIASES))}",
            field="sortBy",
        )
    return SORT_ALIASES[key]


def _price_range(values: Mapping[str, Any]) -> Optional[PriceRange]:
    for canonical, alias in (("minPrice", "minSalary"), ("maxPrice", "maxSalary")):
        if canonical in values and alias in values:
            raise InvalidQuery(f"{canonical} and {alias} cannot be combined", field=alias)

    min_price = _number(values, "minPrice", _number(values, "minSalary"))
    max_price = _number(values, "maxPrice", _number(values, "maxSalary"))
    if min_price is None and max_price is None:
        return None
    try:
        return PriceRange(min_price=min_price, max_price=max_price)
    except ValidationError as e:
        raise InvalidQuery(f"Invalid price range: {e.errors()[0]['msg']}", field="price") from e
