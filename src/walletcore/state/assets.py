"""Asset slice: asset definitions known to the indexer."""

from __future__ import annotations

from collections.abc import Iterable
from typing import Any

from walletcore.models import Asset
from walletcore.state.slice import Slice


def _initial_state() -> dict[str, Any]:
    return {"assets": []}


def _dump_assets(assets: Iterable[Asset]) -> list[dict[str, Any]]:
    return [asset.to_state() for asset in assets]


assets_slice = Slice("assets", _initial_state)

assets_loaded = assets_slice.action("assetsLoaded", prepare=_dump_assets)


@assets_slice.reducer(assets_loaded)
def _assets_loaded(draft: dict[str, Any], payload: Any) -> None:
    incoming = [Asset.model_validate(item) for item in payload]
    merged: dict[str, dict[str, Any]] = {item["symbol"]: item for item in draft["assets"]}
    for asset in incoming:
        merged[asset.symbol] = asset.to_state()
    draft["assets"] = list(merged.values())
