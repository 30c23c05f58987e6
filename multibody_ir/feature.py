"""Placement semantics shared by every feature.

:class:`Feature` is still abstract: concrete kinds fix the required placement
type, the types they accept through conversion and the placement categories
they can stand in for.  Everything else (negotiating a proposed placement,
choosing the slot owner, rejecting cycles, rebinding after a copy) lives here.
"""

from __future__ import annotations

import logging
import numbers
from typing import Any, ClassVar, Dict, FrozenSet, List, Optional, Type, TypeVar

import numpy as np

from .config import get_placement_config
from .conversion import convert_placement
from .errors import (
    AlreadyPlacedError,
    DowncastError,
    IncompatiblePlacementError,
    InvalidDependencyError,
    NoPlacementError,
    PlacementOwnershipError,
    PlacementTypeError,
)
from .logging_utils import apply_debug_logging
from .placement import FeatureReferenceRep, Placement, PlacementRep
from .slot import PlacementSlot
from .subsystem import Subsystem
from .types import PlacementType, WHOLE, element_type

logger = logging.getLogger(__name__)

F = TypeVar("F", bound="Feature")


class Feature(Subsystem):
    """A subsystem that can be bound to a placement."""

    required_placement_type: ClassVar[PlacementType]
    feature_type_name: ClassVar[str] = "Feature"
    # Placement types this kind accepts through conversion.
    convertible_from: ClassVar[FrozenSet[PlacementType]] = frozenset()

    def __init__(self, name: str):
        super().__init__(name)
        # Not owned: the slot lives in this feature or in one of its ancestors.
        self._slot: Optional[PlacementSlot] = None
        self._placed_by_parent = False

    # Checked downcast

    @classmethod
    def is_instance_of(cls, subsystem: Subsystem) -> bool:
        return isinstance(subsystem, cls)

    @classmethod
    def downcast(cls: Type[F], subsystem: Subsystem) -> F:
        if not isinstance(subsystem, cls):
            raise DowncastError(f"{subsystem!r} is not a {cls.feature_type_name}")
        return subsystem

    # Type compatibility and conversion

    def is_required_placement_type(self, placement: Placement) -> bool:
        return not placement.is_empty() and placement.placement_type is self.required_placement_type

    def can_convert_to_required_placement_type(self, placement: Placement) -> bool:
        return not self.convert_to_required_placement_type(placement).is_empty()

    def convert_to_required_placement_type(self, placement: Placement) -> Placement:
        """Return ``placement`` as the required type, or an empty placement if that is not possible."""

        if placement.is_empty():
            return Placement.empty()
        if self.is_required_placement_type(placement):
            return placement.copy()
        if placement.placement_type not in self.convertible_from:
            return Placement.empty()
        return convert_placement(placement, self.required_placement_type)

    def can_place_on_feature_like(self, feature: "Feature") -> bool:
        candidate = self._placement_from_feature(feature)
        return self.is_required_placement_type(candidate) or self.can_convert_to_required_placement_type(
            candidate
        )

    # Feature-as-placement adaptation

    def create_feature_reference(self, shell: Placement, index: int = WHOLE) -> PlacementRep:
        """Reference to this feature's placement (or element ``index`` of it) bound to ``shell``."""

        expected = element_type(self.required_placement_type, index)
        if shell.placement_type is not expected:
            got = shell.placement_type.value if shell.placement_type is not None else "untyped"
            raise PlacementTypeError(
                f"reference to {self.full_name}[{index}] is {expected.value}, shell is {got}"
            )
        return FeatureReferenceRep(shell, self, index)

    def use_feature_as(self, shell: Placement) -> Optional[PlacementRep]:
        """Representation that lets this feature serve as ``shell``'s placement type.

        The result refers to ``shell`` but is not attached to it.  ``None``
        means this kind of feature cannot be used that way.
        """

        return None

    def as_placement(self, placement_type: PlacementType) -> Placement:
        shell = Placement(placement_type)
        rep = self.use_feature_as(shell)
        if rep is None:
            logger.debug("%s cannot serve as a %s placement", self.full_name, placement_type.value)
            return Placement.empty()
        return shell.attach(rep)

    def _reference_to_self(self, shell: Placement) -> PlacementRep:
        return self.create_feature_reference(shell)

    # Placement access

    @property
    def placement_slot(self) -> Optional[PlacementSlot]:
        return self._slot

    def has_placement(self) -> bool:
        return self._slot is not None

    def get_placement_slot(self) -> PlacementSlot:
        if self._slot is None:
            raise NoPlacementError(self)
        return self._slot

    def get_placement(self) -> Placement:
        return self.get_placement_slot().get_placement()

    def clear_placement_slot(self) -> None:
        """The slot owner is destroying our slot; forget it and the part placements it implied."""

        self._slot = None
        self._placed_by_parent = False
        self._remove_part_placements()

    def _remove_part_placements(self) -> None:
        for child in self.children:
            if isinstance(child, Feature) and child._placed_by_parent:
                child.remove_placement()

    def depends_on(self, feature: "Feature") -> bool:
        """Does the placement of this feature depend on ``feature``? Child placements do not count."""

        return self._slot is not None and self._slot.placement.depends_on(feature)

    # Lifecycle

    def post_process_new_placement(self) -> None:
        """Called after a placement has been installed."""

    def place(self, value: Any) -> None:
        if self._slot is not None:
            raise AlreadyPlacedError(self)
        placement = self._accept(value)
        owner = self._find_slot_owner(placement)
        self._slot = owner.adopt_placement_slot(placement, self)
        logger.info("Placed %s %s at %s (owner %s)", self.feature_type_name, self.full_name, placement, owner.full_name)
        self.post_process_new_placement()

    def replace(self, value: Any) -> None:
        old = self.get_placement_slot()
        placement = self._accept(value)
        owner = self._find_slot_owner(placement)
        if owner is old.owner:
            old.set_placement(placement)
        else:
            self._slot = owner.adopt_placement_slot(placement, self)
            old.owner.detach_placement_slot(old)
        self._placed_by_parent = False
        logger.info("Replaced placement of %s with %s (owner %s)", self.full_name, placement, owner.full_name)
        self.post_process_new_placement()

    def remove_placement(self) -> None:
        if self._slot is None:
            logger.debug("remove_placement on unplaced %s ignored", self.full_name)
            return
        slot = self._slot
        # The owner notifies us through clear_placement_slot().
        slot.owner.destroy_placement_slot(slot)
        logger.info("Removed placement of %s", self.full_name)

    def fix_feature_placement(self, old_root: Subsystem, new_root: Subsystem) -> None:
        """Rebind the slot reference copied from ``old_root``'s tree to the matching slot under ``new_root``."""

        old_slot = self._slot
        if old_slot is None:
            return
        path = old_root.path_to(old_slot.owner)
        if path is None:
            logger.warning(
                "Placement of %s is owned outside the copied tree by %s; the copy is unplaced",
                self.full_name,
                old_slot.owner.full_name,
            )
            self._slot = None
            self._placed_by_parent = False
            return
        new_owner = new_root.follow(path)
        new_slot = new_owner.placement_slots[old_slot.owner.placement_slots.index(old_slot)]
        new_slot.client = self
        self._slot = new_slot

    def _place_part(self, part: "Feature", index: int) -> None:
        """Place the unplaced sub-feature ``part`` at element ``index`` of this feature's placement."""

        if part.has_placement():
            return
        shell = Placement(element_type(self.required_placement_type, index))
        shell.attach(self.create_feature_reference(shell, index))
        if shell.depends_on(part):
            logger.debug("Leaving %s unplaced: %s depends on it", part.full_name, self.full_name)
            return
        part.place(shell)
        part._placed_by_parent = True

    def _fixup_after_copy(self, old_root: Subsystem, new_root: Subsystem) -> None:
        super()._fixup_after_copy(old_root, new_root)
        self.fix_feature_placement(old_root, new_root)

    # Negotiation

    def _placement_from_feature(self, feature: "Feature") -> Placement:
        candidate = feature.as_placement(self.required_placement_type)
        if candidate.is_empty():
            candidate = feature.as_placement(feature.required_placement_type)
        return candidate

    def _coerce(self, value: Any) -> Placement:
        if isinstance(value, Placement):
            return value
        if isinstance(value, Feature):
            return self._placement_from_feature(value)
        try:
            if isinstance(value, numbers.Real) and not isinstance(value, bool):
                return Placement.real(value)
            arr = np.asarray(value, dtype=float)
            if arr.shape == (3,):
                return Placement.vec3(arr)
            if arr.shape == (3, 3):
                return Placement.orientation(arr)
        except (TypeError, ValueError) as exc:
            raise IncompatiblePlacementError(
                self, value, f"cannot place {self.full_name} with {value!r}: {exc}"
            ) from exc
        raise IncompatiblePlacementError(self, value, f"cannot place {self.full_name} with {value!r}")

    def _accept(self, value: Any) -> Placement:
        """Validated, private copy of ``value`` in the required type; nothing is mutated."""

        proposed = self._coerce(value)
        if self.is_required_placement_type(proposed):
            placement = proposed.copy()
        else:
            placement = self.convert_to_required_placement_type(proposed)
            if placement.is_empty():
                raise IncompatiblePlacementError(self, proposed)
            logger.debug("Converted %s to %s for %s", proposed, placement, self.full_name)
        if get_placement_config().check_cycles and placement.depends_on(self):
            raise InvalidDependencyError(self, [self] + _dependency_path(placement, self))
        return placement

    def _find_slot_owner(self, placement: Placement) -> Subsystem:
        owner: Subsystem = self
        for feature in placement.referenced_features():
            common = owner.common_ancestor(feature)
            if common is None:
                raise PlacementOwnershipError(
                    self,
                    f"placement of {self.full_name} references {feature.full_name} from another tree",
                )
            owner = common
        return owner

    def __repr__(self) -> str:
        return f"<{self.feature_type_name} {self.full_name!r}>"


def _dependency_path(placement: Placement, target: Feature) -> List[Feature]:
    """Features leading from ``placement`` to ``target`` through referenced placements."""

    parents: Dict[int, Optional[Feature]] = {}
    pending: List[Feature] = []
    for feature in placement.referenced_features():
        if id(feature) not in parents:
            parents[id(feature)] = None
            pending.append(feature)
    while pending:
        current = pending.pop()
        if current is target:
            path = [current]
            parent = parents[id(current)]
            while parent is not None:
                path.append(parent)
                parent = parents[id(parent)]
            return list(reversed(path))
        slot = current.placement_slot
        if slot is None:
            continue
        for feature in slot.placement.referenced_features():
            if id(feature) not in parents:
                parents[id(feature)] = current
                pending.append(feature)
    return []


apply_debug_logging(globals(), logger=logger)


__all__ = ["Feature"]
