"""
Asset registry: the ordered list of accepted assets.

Order is disbursement priority. The registry is only ever replaced as a
whole; build() validates a complete new registry before anything swaps it in.
"""

from dataclasses import dataclass
from typing import Any, Dict, Iterable, Iterator, List, Mapping, Tuple, Union

from vestledger.core.exceptions import ConfigurationError
from vestledger.core.models import Asset
from vestledger.core.units import MAX_DECIMALS, denormalize, normalize

AssetSpec = Union[Asset, Tuple[str, int], Mapping[str, Any]]


def _coerce(position: int, spec: AssetSpec) -> Asset:
    if isinstance(spec, Asset):
        handle, decimals = spec.handle, spec.decimals
    elif isinstance(spec, Mapping):
        if "handle" not in spec:
            raise ConfigurationError(
                "asset entry is missing 'handle'", {"position": position}
            )
        handle, decimals = spec["handle"], spec.get("decimals", 18)
    else:
        try:
            handle, decimals = spec
        except (TypeError, ValueError):
            raise ConfigurationError(
                "asset entry must be Asset, (handle, decimals) or mapping",
                {"position": position, "entry": repr(spec)},
            )

    if not isinstance(handle, str) or not handle.strip():
        raise ConfigurationError(
            "asset handle must be a non-empty string", {"position": position}
        )
    if isinstance(decimals, bool) or not isinstance(decimals, int):
        raise ConfigurationError(
            "asset decimals must be int",
            {"position": position, "decimals": repr(decimals)},
        )
    if not 0 <= decimals <= MAX_DECIMALS:
        raise ConfigurationError(
            f"asset decimals must be in [0, {MAX_DECIMALS}]",
            {"position": position, "decimals": decimals},
        )
    return Asset(index=position, handle=handle.strip(), decimals=decimals)


@dataclass(frozen=True)
class AssetRegistry:
    """Immutable, priority-ordered tuple of assets."""

    assets: Tuple[Asset, ...] = ()

    @classmethod
    def build(cls, specs: Iterable[AssetSpec]) -> "AssetRegistry":
        """
        Validate and index a complete registry.

        Handles are compared case-insensitively for duplicates, since token
        addresses are commonly written in mixed-case checksum form.
        """
        assets: List[Asset] = []
        seen: Dict[str, int] = {}
        for position, spec in enumerate(specs):
            asset = _coerce(position, spec)
            key = asset.handle.lower()
            if key in seen:
                raise ConfigurationError(
                    "duplicate asset handle",
                    {"handle": asset.handle, "positions": (seen[key], position)},
                )
            seen[key] = position
            assets.append(asset)
        return cls(tuple(assets))

    def __len__(self) -> int:
        return len(self.assets)

    def __iter__(self) -> Iterator[Asset]:
        return iter(self.assets)

    def __getitem__(self, index: int) -> Asset:
        if not 0 <= index < len(self.assets):
            raise IndexError(f"asset index {index} out of range")
        return self.assets[index]

    def by_handle(self, handle: str) -> Asset:
        key = handle.lower()
        for asset in self.assets:
            if asset.handle.lower() == key:
                return asset
        raise KeyError(handle)

    def normalize(self, index: int, native_amount: int) -> int:
        return normalize(native_amount, self[index].decimals)

    def denormalize(self, index: int, normalized_amount: int) -> int:
        """Native units for a normalized amount; floors, never rounds up."""
        return denormalize(normalized_amount, self[index].decimals)

    def to_list(self) -> List[Dict[str, Any]]:
        return [a.to_dict() for a in self.assets]

    @classmethod
    def from_list(cls, data: List[Dict[str, Any]]) -> "AssetRegistry":
        ordered = sorted(data, key=lambda d: d.get("index", 0))
        return cls.build(
            {"handle": d["handle"], "decimals": d["decimals"]} for d in ordered
        )
