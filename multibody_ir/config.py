"""Configuration for placement binding."""

from __future__ import annotations

import copy
from dataclasses import dataclass


@dataclass
class PlacementConfig:
    """Knobs controlling how features accept placements."""

    # Reject cycle-forming placements inside place()/replace().
    check_cycles: bool = True
    # Composite features place their unplaced parts after being placed.
    place_subfeatures: bool = True
    # Tolerance for unit-length and orthonormality checks on constants.
    unit_tolerance: float = 1e-9


_PLACEMENT_CONFIG = PlacementConfig()


def get_placement_config() -> PlacementConfig:
    return copy.deepcopy(_PLACEMENT_CONFIG)


def set_placement_config(config: PlacementConfig) -> None:
    global _PLACEMENT_CONFIG
    _PLACEMENT_CONFIG = copy.deepcopy(config)


__all__ = [
    "PlacementConfig",
    "get_placement_config",
    "set_placement_config",
]
