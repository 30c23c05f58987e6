"""Exceptions raised by the feature placement core."""

from __future__ import annotations

from typing import Any, Optional, Sequence


class PlacementError(Exception):
    """Base class for placement failures."""


class NoPlacementError(PlacementError):
    """Raised when placement data is requested from an unplaced feature."""

    def __init__(self, feature: Any, message: str = "Feature has no placement"):
        super().__init__(f"{message}: {feature.full_name}")
        self.feature = feature


class AlreadyPlacedError(PlacementError):
    """Raised by ``place`` when the feature already carries a placement."""

    def __init__(self, feature: Any):
        super().__init__(f"Feature {feature.full_name} is already placed; use replace()")
        self.feature = feature


class IncompatiblePlacementError(PlacementError):
    """No compatible placement: the value cannot serve as the feature's required type."""

    def __init__(self, feature: Any, placement: Any, message: Optional[str] = None):
        if message is None:
            message = (
                f"no compatible placement for {feature.feature_type_name} {feature.full_name}: "
                f"{placement} cannot be used as {feature.required_placement_type.value}"
            )
        super().__init__(message)
        self.feature = feature
        self.placement = placement


class InvalidDependencyError(PlacementError):
    """Raised when a placement would make the feature graph cyclic."""

    def __init__(self, feature: Any, cycle: Sequence[Any] = (), message: Optional[str] = None):
        if message is None:
            if cycle:
                path = " -> ".join(f.full_name for f in cycle)
                message = f"invalid dependency for {feature.full_name}: cycle {path}"
            else:
                message = f"invalid dependency: placement of {feature.full_name} depends on itself"
        super().__init__(message)
        self.feature = feature
        self.cycle = list(cycle)


class PlacementOwnershipError(PlacementError):
    """Raised when no subsystem in the feature's tree can own the placement."""

    def __init__(self, feature: Any, message: str):
        super().__init__(message)
        self.feature = feature


class PlacementTypeError(PlacementError, TypeError):
    """Raised for ill-typed placement expressions or feature references."""


class DowncastError(PlacementError, TypeError):
    """Raised when a subsystem is not an instance of the requested feature kind."""


__all__ = [
    "PlacementError",
    "NoPlacementError",
    "AlreadyPlacedError",
    "IncompatiblePlacementError",
    "InvalidDependencyError",
    "PlacementOwnershipError",
    "PlacementTypeError",
    "DowncastError",
]
