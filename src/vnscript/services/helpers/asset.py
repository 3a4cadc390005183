"""Asset lookup helpers over an externally supplied list of asset records."""
from __future__ import annotations

import re
from typing import Any, Dict, Mapping, Sequence

from vnscript.services.helpers.registry import HelperFn, HelperRegistry

_EXTENSION_RE = re.compile(r"\.[^/.]+$")
_NON_ALNUM_RE = re.compile(r"[^a-z0-9]")
_URL_FIELDS = ("data", "url", "path", "src")


def normalize_key(value: Any) -> str:
    """Strip a trailing extension, lower-case, and map non-alphanumerics to ``_``."""
    if not value or not isinstance(value, str):
        return ""
    return _NON_ALNUM_RE.sub("_", _EXTENSION_RE.sub("", value).lower())


def get_asset(key: Any, assets: Any) -> Mapping[str, Any] | None:
    """Return the first asset, in list order, that matches key under any lookup rule."""
    if not isinstance(key, str) or not isinstance(assets, Sequence) or isinstance(assets, str):
        return None
    records = [asset for asset in assets if isinstance(asset, Mapping)]
    normalized = normalize_key(key)
    rules = (
        lambda asset: asset.get("id") == key,
        lambda asset: asset.get("id") == normalized,
        lambda asset: asset.get("name") == key,
        lambda asset: asset.get("path") == key,
        lambda asset: normalize_key(asset.get("name")) == normalized,
        lambda asset: normalize_key(asset.get("path")) == normalized,
    )
    for asset in records:
        if any(rule(asset) for rule in rules):
            return asset
    return None


def has_asset(key: Any, assets: Any) -> bool:
    return get_asset(key, assets) is not None


def resolve_asset(key: Any, assets: Any) -> str | None:
    asset = get_asset(key, assets)
    if asset is None:
        return None
    for field_name in _URL_FIELDS:
        value = asset.get(field_name)
        if value:
            return str(value)
    return None


ASSET_HELPERS: Dict[str, HelperFn] = {
    "normalizeKey": normalize_key,
    "hasAsset": has_asset,
    "getAsset": get_asset,
    "resolveAsset": resolve_asset,
}


def register_asset_helpers(registry: HelperRegistry) -> None:
    registry.register_many(ASSET_HELPERS, "asset")
