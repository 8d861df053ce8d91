"""Fetching car data from the catalogue API and merging it into one view."""

from __future__ import annotations

import json
import urllib.error
import urllib.request
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Any

API_URL = "http://localhost:3000/"
TIMEOUT = 30.0


class ApiError(Exception):
    """Raised when the catalogue API cannot be read or returns bad data."""


@dataclass(frozen=True)
class Specifications:
    """Technical details of a car model."""

    engine: str = ""
    horsepower: int = 0
    transmission: str = ""
    drivetrain: str = ""


@dataclass(frozen=True)
class ProcessedModel:
    """A car model joined with its manufacturer and category."""

    id: int = 0
    name: str = ""
    manufacturer_name: str = ""
    manufacturer_country: str = ""
    manufacturer_founding_year: int = 0
    category_name: str = ""
    year: int = 0
    specifications: Specifications = field(default_factory=Specifications)
    image: str = ""


def get_data_from_api(url: str) -> bytes:
    """Return the raw body of a GET request, raising ApiError on failure."""
    try:
        with urllib.request.urlopen(url, timeout=TIMEOUT) as response:
            if response.status != 200:
                raise ApiError(f"server returned non-200 status: {response.status}")
            return response.read()
    except urllib.error.HTTPError as exc:
        raise ApiError(f"server returned non-200 status: {exc.code}") from exc
    except (urllib.error.URLError, OSError, ValueError) as exc:
        raise ApiError(str(exc)) from exc


def _fetch_list(url: str) -> list[dict[str, Any]]:
    body = get_data_from_api(url)
    try:
        payload = json.loads(body)
    except ValueError as exc:
        raise ApiError(f"invalid JSON from {url}: {exc}") from exc
    if payload is None:
        return []
    if not isinstance(payload, list) or not all(isinstance(item, dict) for item in payload):
        raise ApiError(f"expected a list of objects from {url}")
    return payload


def fetch_models(base_url: str = API_URL) -> list[dict[str, Any]]:
    """Fetch the raw car model records."""
    return _fetch_list(base_url + "api/models")


def fetch_manufacturers(base_url: str = API_URL) -> list[dict[str, Any]]:
    """Fetch the raw manufacturer records."""
    return _fetch_list(base_url + "api/manufacturers")


def fetch_categories(base_url: str = API_URL) -> list[dict[str, Any]]:
    """Fetch the raw category records."""
    return _fetch_list(base_url + "api/categories")


def _int(record: dict[str, Any], key: str) -> int:
    value = record.get(key)
    if value is None:
        return 0
    if isinstance(value, bool) or not isinstance(value, int):
        raise ApiError(f"field {key!r} must be an integer, got {value!r}")
    return value


def _str(record: dict[str, Any], key: str) -> str:
    value = record.get(key)
    if value is None:
        return ""
    if not isinstance(value, str):
        raise ApiError(f"field {key!r} must be a string, got {value!r}")
    return value


def _specifications(record: dict[str, Any]) -> Specifications:
    specs = record.get("specifications")
    if specs is None:
        return Specifications()
    if not isinstance(specs, dict):
        raise ApiError("field 'specifications' must be an object")
    return Specifications(
        engine=_str(specs, "engine"),
        horsepower=_int(specs, "horsepower"),
        transmission=_str(specs, "transmission"),
        drivetrain=_str(specs, "drivetrain"),
    )


def merge_models(
    models: list[dict[str, Any]],
    manufacturers: list[dict[str, Any]],
    categories: list[dict[str, Any]],
) -> list[ProcessedModel]:
    """Join raw models with the first matching manufacturer and category."""
    merged = []
    for model in models:
        manufacturer_id = _int(model, "manufacturerId")
        category_id = _int(model, "categoryId")
        manufacturer = next(
            (m for m in manufacturers if _int(m, "id") == manufacturer_id), {}
        )
        category = next((c for c in categories if _int(c, "id") == category_id), {})
        merged.append(
            ProcessedModel(
                id=_int(model, "id"),
                name=_str(model, "name"),
                manufacturer_name=_str(manufacturer, "name"),
                manufacturer_country=_str(manufacturer, "country"),
                manufacturer_founding_year=_int(manufacturer, "foundingYear"),
                category_name=_str(category, "name"),
                year=_int(model, "year"),
                specifications=_specifications(model),
                image=_str(model, "image"),
            )
        )
    return merged


def processed_api_data(base_url: str = API_URL) -> list[ProcessedModel]:
    """Fetch models, manufacturers and categories concurrently and merge them."""
    fetchers = (
        ("fetchModel", fetch_models),
        ("fetchManufacturer", fetch_manufacturers),
        ("fetchCategory", fetch_categories),
    )
    with ThreadPoolExecutor(max_workers=len(fetchers)) as pool:
        futures = [(label, pool.submit(fetch, base_url)) for label, fetch in fetchers]
        results = []
        for label, future in futures:
            try:
                results.append(future.result())
            except ApiError as exc:
                raise ApiError(f"{label} error: {exc}") from exc
    return merge_models(*results)