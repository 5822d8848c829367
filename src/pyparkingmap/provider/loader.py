"""Known layout profile loading."""

from __future__ import annotations

import json
import re
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from importlib import resources
from importlib.resources.abc import Traversable
from types import MappingProxyType

from ..exceptions import ProviderError

PROFILE_DIRECTORY = "profiles"
SCHEMA_FILENAME = "profile.schema.json"
_PROFILE_CACHE: tuple[LayoutProfile, ...] | None = None
_REQUIRED_KEYS = ("id", "name", "match_names", "area_ids")


@dataclass(frozen=True, slots=True)
class LayoutProfile:
    """Facts about a known layout that fill gaps in upstream data."""

    id: str
    name: str
    match_names: tuple[str, ...] = ()
    area_ids: tuple[str, ...] = ()
    default_spot_pattern: re.Pattern[str] | None = None
    default_vehicle_class: str | None = None
    section_names: tuple[str, ...] = ()
    fallback_capacities: Mapping[str, tuple[int, int]] = field(
        default_factory=lambda: MappingProxyType({})
    )
    spot_id_aliases: Mapping[str, str] = field(default_factory=lambda: MappingProxyType({}))

    def is_default_spot(self, region_id: str) -> bool:
        if self.default_spot_pattern is None:
            return False
        return self.default_spot_pattern.search(region_id) is not None


def _provider_root() -> Traversable:
    return resources.files("pyparkingmap.provider")


def load_profile_schema() -> dict:
    schema_path = _provider_root() / SCHEMA_FILENAME
    return json.loads(schema_path.read_text(encoding="utf-8"))


def _string_tuple(data: dict, key: str) -> tuple[str, ...]:
    values = data.get(key) or []
    if not isinstance(values, list) or not all(isinstance(value, str) for value in values):
        raise ProviderError(f"Layout profile {key} must be a list of strings.")
    return tuple(values)


def _build_profile(data: dict, file_stem: str) -> LayoutProfile:
    if not isinstance(data, dict):
        raise ProviderError("Layout profile must be a JSON object.")
    missing = [key for key in _REQUIRED_KEYS if key not in data]
    if missing:
        raise ProviderError(f"Layout profile missing keys: {', '.join(missing)}.")
    profile_id = data["id"]
    name = data["name"]
    if not isinstance(profile_id, str) or not profile_id:
        raise ProviderError("Layout profile id must be a non-empty string.")
    if profile_id != file_stem:
        raise ProviderError("Layout profile id must match its file name.")
    if not isinstance(name, str) or not name:
        raise ProviderError("Layout profile name must be a non-empty string.")

    pattern = data.get("default_spot_pattern")
    try:
        compiled = re.compile(pattern) if pattern else None
    except re.error as exc:
        raise ProviderError("Layout profile default_spot_pattern is not a valid pattern.") from exc

    capacities: dict[str, tuple[int, int]] = {}
    for section, entry in (data.get("fallback_capacities") or {}).items():
        if not isinstance(entry, dict) or not isinstance(entry.get("total"), int):
            raise ProviderError("Layout profile fallback capacity must declare a total.")
        capacities[section] = (entry["total"], int(entry.get("available", entry["total"])))

    aliases = data.get("spot_id_aliases") or {}
    if not isinstance(aliases, dict):
        raise ProviderError("Layout profile spot_id_aliases must be an object.")

    return LayoutProfile(
        id=profile_id,
        name=name,
        match_names=tuple(value.lower() for value in _string_tuple(data, "match_names")),
        area_ids=_string_tuple(data, "area_ids"),
        default_spot_pattern=compiled,
        default_vehicle_class=data.get("default_vehicle_class"),
        section_names=_string_tuple(data, "section_names"),
        fallback_capacities=MappingProxyType(capacities),
        spot_id_aliases=MappingProxyType(dict(aliases)),
    )


def iter_profile_files() -> Iterable[tuple[str, Traversable]]:
    directory = _provider_root() / PROFILE_DIRECTORY
    for entry in sorted(directory.iterdir(), key=lambda item: item.name):
        if entry.is_file() and entry.name.endswith(".json"):
            yield entry.name.removesuffix(".json"), entry


def load_profiles() -> list[LayoutProfile]:
    global _PROFILE_CACHE
    if _PROFILE_CACHE is not None:
        return list(_PROFILE_CACHE)
    profiles: list[LayoutProfile] = []
    for file_stem, profile_path in iter_profile_files():
        try:
            data = json.loads(profile_path.read_text(encoding="utf-8"))
        except json.JSONDecodeError as exc:
            raise ProviderError("Layout profile is not valid JSON.") from exc
        profiles.append(_build_profile(data, file_stem))
    _PROFILE_CACHE = tuple(profiles)
    return list(_PROFILE_CACHE)


def clear_profile_cache() -> None:
    """Clear cached layout profiles (used in tests)."""
    global _PROFILE_CACHE
    _PROFILE_CACHE = None


def get_profile(profile_id: str) -> LayoutProfile:
    for profile in load_profiles():
        if profile.id == profile_id:
            return profile
    raise ProviderError("Layout profile not found.")


def match_profile(area_id: str | int | None, area_name: str | None = None) -> LayoutProfile | None:
    """Find the profile for an area, by name first and then by id."""
    profiles = load_profiles()
    if area_name:
        lowered = area_name.lower()
        for profile in profiles:
            if any(name in lowered for name in profile.match_names):
                return profile
    if area_id is not None:
        key = str(area_id)
        for profile in profiles:
            if key in profile.area_ids:
                return profile
    return None
