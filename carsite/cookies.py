"""The search-history cookie: counts of searched manufacturers and categories."""

from __future__ import annotations

import base64
import binascii
import json
import random
from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import Any

from carsite.apidata import ProcessedModel
from carsite.search import find_most_searched_data, max_cookie_data_key

COOKIE_NAME = "searchData"
PLACEHOLDER = "empty"

_HTML_ESCAPES = str.maketrans(
    {"<": "\\u003c", ">": "\\u003e", "&": "\\u0026", "\u2028": "\\u2028", "\u2029": "\\u2029"}
)


def _record(counts: dict[str, int], name: str, skip_placeholder: bool) -> None:
    if name in counts:
        counts[name] += 1
    elif not (skip_placeholder and name == PLACEHOLDER):
        counts[name] = 1


@dataclass
class SearchData:
    """How often each manufacturer and category has been searched."""

    manufacturer: dict[str, int] = field(default_factory=dict)
    category: dict[str, int] = field(default_factory=dict)

    def record_manufacturer(self, name: str, skip_placeholder: bool = False) -> None:
        """Count one search for a manufacturer."""
        _record(self.manufacturer, name, skip_placeholder)

    def record_category(self, name: str, skip_placeholder: bool = False) -> None:
        """Count one search for a category."""
        _record(self.category, name, skip_placeholder)

    def encode(self) -> str:
        """Serialise to the base64-encoded JSON cookie value."""
        payload = {
            "manufacturer": dict(sorted(self.manufacturer.items())),
            "category": dict(sorted(self.category.items())),
        }
        text = json.dumps(payload, separators=(",", ":"), ensure_ascii=False)
        return base64.b64encode(text.translate(_HTML_ESCAPES).encode()).decode("ascii")


def _counts(value: Any) -> dict[str, int]:
    if value is None:
        return {}
    if not isinstance(value, dict):
        raise ValueError("search counts must be an object")
    for key, count in value.items():
        if isinstance(count, bool) or not isinstance(count, int):
            raise ValueError(f"count for {key!r} must be an integer")
    return dict(value)


def decode_search_data(value: str) -> SearchData:
    """Parse a cookie value; raises ValueError if it is malformed."""
    try:
        raw = base64.b64decode(value, validate=True)
    except (binascii.Error, ValueError) as exc:
        raise ValueError(f"invalid cookie encoding: {exc}") from exc
    try:
        payload = json.loads(raw)
    except ValueError as exc:
        raise ValueError(f"invalid cookie JSON: {exc}") from exc
    if not isinstance(payload, dict):
        raise ValueError("cookie JSON must be an object")
    return SearchData(
        manufacturer=_counts(payload.get("manufacturer")),
        category=_counts(payload.get("category")),
    )


def new_search_data(
    models: Sequence[ProcessedModel], rng: random.Random | None = None
) -> SearchData:
    """Start a history seeded from a random model with id 1 to 10."""
    wanted = (rng or random).randrange(10) + 1
    manufacturer, category = "", ""
    for model in models:
        if model.id == wanted:
            manufacturer, category = model.manufacturer_name, model.category_name
    return SearchData(manufacturer={manufacturer: 1}, category={category: 1})


def banner_from_search_data(
    data: SearchData,
    models: Sequence[ProcessedModel],
    rng: random.Random | None = None,
) -> ProcessedModel | None:
    """Choose a banner model from the most searched entries of a history."""
    manufacturer, manufacturer_count = max_cookie_data_key(data.manufacturer)
    category, category_count = max_cookie_data_key(data.category)
    return find_most_searched_data(
        manufacturer, category, manufacturer_count, category_count, models, rng
    )