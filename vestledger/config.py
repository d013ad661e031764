"""
Per-network deployment configuration, loaded from YAML.

Layout:

    networks:
      bscTestnet:
        assets:
          - handle: "0x1FA6283ec7fBb012407E7A5FC44a78B065b2a1cf"
            decimals: 18
        milestones:
          - "2025-08-25T04:30:00Z"
          - "2025-08-25T04:45:00Z"
        beneficiaries:
          "0x7e1FbF37D52A677788B95f2e718998cA8fbe15fb": ["300", "100"]

Beneficiary amounts are whole-unit decimal strings, parsed to normalized
(18-decimal) ints. Asset decimals default to 18. Addresses must be quoted:
YAML reads a bare 0x... as a hex integer.
"""

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

import yaml

from vestledger.core.exceptions import ConfigurationError
from vestledger.core.time import parse_timestamp
from vestledger.core.units import NORMALIZED_DECIMALS, parse_units

HOME_ENV_VAR = "VESTLEDGER_HOME"
DEFAULT_HOME = ".vestledger"


@dataclass(frozen=True)
class NetworkConfig:
    name:              str
    assets:            Tuple[Tuple[str, int], ...]
    milestones:        Tuple[int, ...]
    beneficiaries:     Tuple[str, ...]
    allocation_matrix: Tuple[Tuple[int, ...], ...]


def _parse_assets(network: str, raw: Any) -> Tuple[Tuple[str, int], ...]:
    if not isinstance(raw, list):
        raise ConfigurationError("'assets' must be a list", {"network": network})
    assets: List[Tuple[str, int]] = []
    for i, entry in enumerate(raw):
        if isinstance(entry, str):
            assets.append((entry, NORMALIZED_DECIMALS))
        elif isinstance(entry, dict) and "handle" in entry:
            assets.append((entry["handle"], entry.get("decimals", NORMALIZED_DECIMALS)))
        else:
            raise ConfigurationError(
                "asset entry must be a handle string or {handle, decimals}",
                {"network": network, "position": i},
            )
    return tuple(assets)


def _parse_beneficiaries(network: str, raw: Any) -> Tuple[Tuple[str, ...], Tuple[Tuple[int, ...], ...]]:
    if not isinstance(raw, dict):
        raise ConfigurationError(
            "'beneficiaries' must map address → list of amounts", {"network": network}
        )
    names: List[str] = []
    rows: List[Tuple[int, ...]] = []
    for name, amounts in raw.items():
        if not isinstance(name, str):
            # Unquoted 0x... keys come back from YAML as ints
            raise ConfigurationError(
                "beneficiary address must be a quoted string",
                {"network": network, "beneficiary": repr(name)},
            )
        if not isinstance(amounts, list):
            raise ConfigurationError(
                "beneficiary amounts must be a list", {"network": network, "beneficiary": name}
            )
        try:
            row = tuple(parse_units(str(a), NORMALIZED_DECIMALS) for a in amounts)
        except (TypeError, ValueError) as exc:
            raise ConfigurationError(
                f"invalid amount: {exc}", {"network": network, "beneficiary": name}
            ) from exc
        names.append(name)
        rows.append(row)
    return tuple(names), tuple(rows)


def parse_network(name: str, raw: Dict[str, Any]) -> NetworkConfig:
    if not isinstance(raw, dict):
        raise ConfigurationError("network entry must be a mapping", {"network": name})
    try:
        milestones = tuple(parse_timestamp(m) for m in raw.get("milestones", []))
    except (TypeError, ValueError) as exc:
        raise ConfigurationError(f"invalid milestone: {exc}", {"network": name}) from exc
    beneficiaries, matrix = _parse_beneficiaries(name, raw.get("beneficiaries", {}))
    return NetworkConfig(
        name=              name,
        assets=            _parse_assets(name, raw.get("assets", [])),
        milestones=        milestones,
        beneficiaries=     beneficiaries,
        allocation_matrix= matrix,
    )


def load_config(path: Path, network: str) -> NetworkConfig:
    """Load one network's configuration from a YAML file."""
    path = Path(path)
    try:
        with open(path, "r", encoding="utf-8") as f:
            document = yaml.safe_load(f) or {}
    except OSError as exc:
        raise ConfigurationError(f"cannot read config: {exc}", {"path": str(path)}) from exc
    except yaml.YAMLError as exc:
        raise ConfigurationError(f"invalid YAML: {exc}", {"path": str(path)}) from exc

    networks = document.get("networks") if isinstance(document, dict) else None
    if not isinstance(networks, dict):
        raise ConfigurationError("config has no 'networks' mapping", {"path": str(path)})
    if network not in networks:
        raise ConfigurationError(
            "unknown network",
            {"network": network, "available": sorted(networks)},
        )
    return parse_network(network, networks[network])


def resolve_home(explicit: Optional[str] = None) -> Path:
    """CLI state directory: explicit flag, then $VESTLEDGER_HOME, then .vestledger."""
    return Path(explicit or os.environ.get(HOME_ENV_VAR) or DEFAULT_HOME)
