"""Concrete feature kinds, one per placement category.

``Orientation`` and ``Frame`` are composite: an orientation owns its ``x``,
``y`` and ``z`` axis directions, and a frame owns an ``orientation`` and an
``origin`` station.  Once placed, a composite places its still-unplaced parts
at the matching elements of its own placement.
"""

from __future__ import annotations

from typing import Optional

from .config import get_placement_config
from .feature import Feature
from .placement import OperatorRep, Placement, PlacementRep
from .types import (
    DIRECTION,
    FRAME,
    FRAME_ORIENTATION,
    FRAME_ORIGIN,
    ORIENTATION,
    REAL,
    STATION,
    VEC3,
)


class RealParameter(Feature):
    required_placement_type = REAL
    feature_type_name = "RealParameter"

    def use_feature_as(self, shell: Placement) -> Optional[PlacementRep]:
        if shell.placement_type is REAL:
            return self._reference_to_self(shell)
        return super().use_feature_as(shell)


class Vec3Parameter(Feature):
    required_placement_type = VEC3
    feature_type_name = "Vec3Parameter"
    convertible_from = frozenset({STATION, DIRECTION})

    def use_feature_as(self, shell: Placement) -> Optional[PlacementRep]:
        if shell.placement_type is VEC3:
            return self._reference_to_self(shell)
        return super().use_feature_as(shell)


class _PointLike(Feature):
    """A feature whose own placement can also be read as a plain 3-vector."""

    def use_feature_as(self, shell: Placement) -> Optional[PlacementRep]:
        if shell.placement_type is self.required_placement_type:
            return self._reference_to_self(shell)
        if shell.placement_type is VEC3:
            return OperatorRep(shell, "as_vec3", [Placement.of(self)])
        return super().use_feature_as(shell)


class Station(_PointLike):
    """A point; placed by a station, a 3-vector (a location) or a frame (its origin)."""

    required_placement_type = STATION
    feature_type_name = "Station"
    convertible_from = frozenset({VEC3, FRAME})


class Direction(_PointLike):
    """A unit vector; 3-vector placements are normalized."""

    required_placement_type = DIRECTION
    feature_type_name = "Direction"
    convertible_from = frozenset({VEC3})


class Orientation(Feature):
    required_placement_type = ORIENTATION
    feature_type_name = "Orientation"
    convertible_from = frozenset({FRAME})

    AXES = ("x", "y", "z")

    def __init__(self, name: str):
        super().__init__(name)
        for axis in self.AXES:
            self.add_child(Direction(axis))

    def axis(self, index: int) -> Direction:
        return Direction.downcast(self.child(self.AXES[index]))

    @property
    def x(self) -> Direction:
        return self.axis(0)

    @property
    def y(self) -> Direction:
        return self.axis(1)

    @property
    def z(self) -> Direction:
        return self.axis(2)

    def use_feature_as(self, shell: Placement) -> Optional[PlacementRep]:
        if shell.placement_type is ORIENTATION:
            return self._reference_to_self(shell)
        return super().use_feature_as(shell)

    def post_process_new_placement(self) -> None:
        if not get_placement_config().place_subfeatures:
            return
        for index, name in enumerate(self.AXES):
            part = _part(self, name)
            if part is not None:
                self._place_part(part, index)


class Frame(Feature):
    required_placement_type = FRAME
    feature_type_name = "Frame"
    convertible_from = frozenset({ORIENTATION, STATION})

    def __init__(self, name: str):
        super().__init__(name)
        self.add_child(Orientation("orientation"))
        self.add_child(Station("origin"))

    @property
    def orientation(self) -> Orientation:
        return Orientation.downcast(self.child("orientation"))

    @property
    def origin(self) -> Station:
        return Station.downcast(self.child("origin"))

    def use_feature_as(self, shell: Placement) -> Optional[PlacementRep]:
        if shell.placement_type is FRAME:
            return self._reference_to_self(shell)
        if shell.placement_type is STATION:
            part = _part(self, "origin")
        elif shell.placement_type is ORIENTATION:
            part = _part(self, "orientation")
        else:
            return super().use_feature_as(shell)
        # A frame whose part was removed cannot stand in for it.
        return part.create_feature_reference(shell) if part is not None else None

    def post_process_new_placement(self) -> None:
        if not get_placement_config().place_subfeatures:
            return
        for index, name in ((FRAME_ORIENTATION, "orientation"), (FRAME_ORIGIN, "origin")):
            part = _part(self, name)
            if part is not None:
                self._place_part(part, index)


def _part(composite: Feature, name: str) -> Optional[Feature]:
    """The sub-feature ``name`` of ``composite``, or ``None`` if it has been removed."""

    if not composite.has_child(name):
        return None
    child = composite.child(name)
    return child if isinstance(child, Feature) else None


__all__ = [
    "RealParameter",
    "Vec3Parameter",
    "Station",
    "Direction",
    "Orientation",
    "Frame",
]
