"""Queries over the merged car catalogue."""

from __future__ import annotations

import random
from collections.abc import Iterable, Mapping, Sequence

from carsite.apidata import ProcessedModel


def find_manufacturer_list(models: Iterable[ProcessedModel]) -> list[str]:
    """Sorted distinct manufacturer names."""
    return sorted({model.manufacturer_name for model in models})


def find_category_list(models: Iterable[ProcessedModel]) -> list[str]:
    """Sorted distinct category names."""
    return sorted({model.category_name for model in models})


def max_cookie_data_key(data: Mapping[str, int]) -> tuple[str, int]:
    """The key with the largest positive count, or ("", 0) if there is none."""
    best_key, best_value = "", 0
    for key, value in data.items():
        if value > best_value:
            best_key, best_value = key, value
    return best_key, best_value


def find_most_searched_data(
    manufacturer: str,
    category: str,
    manufacturer_count: int,
    category_count: int,
    models: Sequence[ProcessedModel],
    rng: random.Random | None = None,
) -> ProcessedModel | None:
    """Pick a banner model from the most searched manufacturer and category.

    Raises LookupError when only a category is known and no model is in it.
    """
    if manufacturer and category:
        if manufacturer_count >= category_count:
            return next((m for m in models if m.manufacturer_name == manufacturer), None)
        banner = None
        for model in models:
            if model.category_name == category:
                banner = model
                if model.manufacturer_name == manufacturer:
                    break
        return banner
    if category:
        matches = [m for m in models if m.category_name == category]
        if not matches:
            raise LookupError(f"no models in category {category!r}")
        return (rng or random).choice(matches)
    if manufacturer:
        return next((m for m in models if m.manufacturer_name == manufacturer), None)
    return None


def find_cars_info(
    manufacturer: str, category: str, models: Sequence[ProcessedModel]
) -> list[ProcessedModel]:
    """Exact matches on both fields first, then matches on exactly one."""
    exact = [
        m for m in models
        if m.manufacturer_name == manufacturer and m.category_name == category
    ]
    partial = [
        m for m in models
        if (m.manufacturer_name == manufacturer) != (m.category_name == category)
    ]
    return exact + partial


def find_cars_by_names(
    names: Iterable[str], models: Sequence[ProcessedModel]
) -> list[ProcessedModel]:
    """All models matching each name, in the order the names are given."""
    return [model for name in names for model in models if model.name == name]


def find_car_by_name(name: str, models: Iterable[ProcessedModel]) -> ProcessedModel | None:
    """The last model with the given name, or None."""
    found = None
    for model in models:
        if model.name == name:
            found = model
    return found


def car_text_report(car: ProcessedModel) -> str:
    """Plain-text description of a car for download."""
    specs = car.specifications
    return (
        f"{car.name}\n"
        "Basic information:\n"
        f"\tCategory: {car.category_name}\n"
        f"\tProduction year: {car.year}\n"
        "Manufacturer's information:\n"
        f"\tManufacturer: {car.manufacturer_name}\n"
        f"\tHome country: {car.manufacturer_country}\n"
        f"\tFounding year: {car.manufacturer_founding_year}\n"
        "Specifications:\n"
        f"\tEngine: {specs.engine}\n"
        f"\tHorsepower: {specs.horsepower}\n"
        f"\tTransmission: {specs.transmission}\n"
        f"\tDrivetrain: {specs.drivetrain}\n"
        "\t"
    )


def report_filename(car: ProcessedModel) -> str:
    """File name for a car's text report."""
    return car.name.replace(" ", "_").lower() + ".txt"