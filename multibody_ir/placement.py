"""Typed placement expressions and the ``Placement`` handle.

A :class:`Placement` is a type-tagged handle around one
:class:`PlacementRep`.  Representations are the concrete expression nodes:
constants, references to a feature's placement (or one element of it),
operators and element selections.  Every representation can answer whether
its value depends on a given feature, which is what the feature core needs to
keep the placement graph acyclic.

Placements are mutable only until they are committed to a placement slot.
"""

from __future__ import annotations

import numbers
from typing import Any, Iterator, List, Optional, Sequence, Tuple

import numpy as np
from scipy.spatial.transform import Rotation

from .config import get_placement_config
from .errors import PlacementError, PlacementTypeError
from .types import (
    DIRECTION,
    FRAME,
    FRAME_ORIENTATION,
    ORIENTATION,
    REAL,
    STATION,
    VEC3,
    WHOLE,
    PlacementType,
    element_type,
    operator_result_type,
)

_VECTOR_TYPES = (VEC3, STATION, DIRECTION)


def _frozen_array(value: Any, shape: Tuple[int, ...], what: str) -> np.ndarray:
    arr = np.array(value, dtype=float)
    if arr.shape != shape:
        raise ValueError(f"{what} requires shape {shape}, got {arr.shape}")
    if not np.all(np.isfinite(arr)):
        raise ValueError(f"{what} must be finite")
    arr.setflags(write=False)
    return arr


def _unit_vector(value: Any, tol: float) -> np.ndarray:
    arr = np.array(value, dtype=float)
    if arr.shape != (3,):
        raise ValueError(f"direction requires shape (3,), got {arr.shape}")
    length = float(np.linalg.norm(arr))
    if not np.isfinite(length) or length <= tol:
        raise ValueError("direction must be a finite, non-zero vector")
    return _frozen_array(arr / length, (3,), "direction")


def _rotation_matrix(value: Any, tol: float) -> np.ndarray:
    arr = _frozen_array(value, (3, 3), "orientation")
    if not np.allclose(arr.T @ arr, np.eye(3), atol=max(tol, 1e-12)):
        raise ValueError("orientation matrix must be orthonormal")
    if np.linalg.det(arr) <= 0.0:
        raise ValueError("orientation matrix must be a proper rotation (det=+1)")
    return arr


def constant_value(placement_type: PlacementType, value: Any) -> Any:
    """Validate ``value`` as a constant of ``placement_type`` and return its canonical form."""

    tol = get_placement_config().unit_tolerance
    if placement_type is REAL:
        if isinstance(value, bool) or not isinstance(value, numbers.Real):
            raise ValueError(f"real placement requires a number, got {value!r}")
        result = float(value)
        if not np.isfinite(result):
            raise ValueError("real placement must be finite")
        return result
    if placement_type is DIRECTION:
        return _unit_vector(value, tol)
    if placement_type in _VECTOR_TYPES:
        return _frozen_array(value, (3,), placement_type.value)
    if placement_type is ORIENTATION:
        return _rotation_matrix(value, tol)
    if placement_type is FRAME:
        rotation, origin = value
        return (_rotation_matrix(rotation, tol), _frozen_array(origin, (3,), "frame origin"))
    raise PlacementTypeError(f"unknown placement type {placement_type!r}")


def _format_numbers(values: Sequence[float]) -> str:
    return ", ".join(f"{float(v):g}" for v in values)


class PlacementRep:
    """Base class of concrete placement expressions.

    ``handle`` is the :class:`Placement` this representation belongs to.  The
    handle is created first (type-correct but empty) and the representation is
    attached to it afterwards.
    """

    def __init__(self, handle: "Placement", placement_type: PlacementType):
        if handle.placement_type is not None and handle.placement_type is not placement_type:
            raise PlacementTypeError(
                f"{placement_type.value} expression cannot live in a "
                f"{handle.placement_type.value} placement"
            )
        self.handle = handle
        self.placement_type = placement_type

    def depends_on(self, feature: Any) -> bool:
        """True if ``feature`` is referenced here or, transitively, by referenced placements."""

        pending = list(self.referenced_features())
        seen = set()
        while pending:
            current = pending.pop()
            if current is feature:
                return True
            if id(current) in seen:
                continue
            seen.add(id(current))
            slot = current.placement_slot
            if slot is not None:
                pending.extend(slot.placement.referenced_features())
        return False

    def referenced_features(self) -> Iterator[Any]:
        return iter(())

    def clone(self, handle: "Placement") -> "PlacementRep":
        raise NotImplementedError

    def repair_feature_references(self, old_root: Any, new_root: Any) -> None:
        """Re-point references into ``old_root``'s tree at the matching features under ``new_root``."""

    def element_rep(self, handle: "Placement", index: int) -> "PlacementRep":
        return ElementRep(handle, self.handle.copy(), index)

    def describe(self) -> str:
        raise NotImplementedError


class ConstantRep(PlacementRep):
    """A literal value; depends on nothing."""

    def __init__(
        self, handle: "Placement", placement_type: PlacementType, value: Any, validate: bool = True
    ):
        super().__init__(handle, placement_type)
        self.value = constant_value(placement_type, value) if validate else value

    def clone(self, handle: "Placement") -> "ConstantRep":
        return ConstantRep(handle, self.placement_type, self.value, validate=False)

    def element_rep(self, handle: "Placement", index: int) -> PlacementRep:
        kind = self.placement_type
        if kind in _VECTOR_TYPES:
            return ConstantRep(handle, REAL, float(self.value[index]))
        if kind is ORIENTATION:
            return ConstantRep(handle, DIRECTION, self.value[:, index])
        if kind is FRAME:
            if index == FRAME_ORIENTATION:
                return ConstantRep(handle, ORIENTATION, self.value[0])
            return ConstantRep(handle, STATION, self.value[1])
        return super().element_rep(handle, index)

    def describe(self) -> str:
        kind = self.placement_type
        if kind is REAL:
            return f"{self.value:g}"
        if kind in _VECTOR_TYPES:
            return f"{kind.value}({_format_numbers(self.value)})"
        if kind is ORIENTATION:
            rows = "; ".join(_format_numbers(row) for row in self.value)
            return f"orientation[{rows}]"
        rotation, origin = self.value
        rows = "; ".join(_format_numbers(row) for row in rotation)
        return f"frame(orientation[{rows}], station({_format_numbers(origin)}))"


class FeatureReferenceRep(PlacementRep):
    """Reference to the placement of a feature, or to one element of it."""

    def __init__(self, handle: "Placement", feature: Any, index: int = WHOLE):
        super().__init__(handle, element_type(feature.required_placement_type, index))
        self.feature = feature
        self.index = index

    def referenced_features(self) -> Iterator[Any]:
        yield self.feature

    def clone(self, handle: "Placement") -> "FeatureReferenceRep":
        return FeatureReferenceRep(handle, self.feature, self.index)

    def repair_feature_references(self, old_root: Any, new_root: Any) -> None:
        path = old_root.path_to(self.feature)
        if path is not None:
            self.feature = new_root.follow(path)

    def element_rep(self, handle: "Placement", index: int) -> PlacementRep:
        if self.index == WHOLE:
            return FeatureReferenceRep(handle, self.feature, index)
        return super().element_rep(handle, index)

    def describe(self) -> str:
        if self.index == WHOLE:
            return f"@{self.feature.full_name}"
        return f"@{self.feature.full_name}[{self.index}]"


class OperatorRep(PlacementRep):
    """An operator applied to operand placements owned by this node."""

    def __init__(self, handle: "Placement", op: str, operands: Sequence["Placement"]):
        operands = tuple(operands)
        for operand in operands:
            if operand.is_empty():
                raise PlacementTypeError(f"operator {op!r} received an empty placement")
        super().__init__(handle, operator_result_type(op, *(o.placement_type for o in operands)))
        self.op = op
        self.operands = operands

    def referenced_features(self) -> Iterator[Any]:
        for operand in self.operands:
            yield from operand.referenced_features()

    def clone(self, handle: "Placement") -> "OperatorRep":
        return OperatorRep(handle, self.op, [operand.copy() for operand in self.operands])

    def repair_feature_references(self, old_root: Any, new_root: Any) -> None:
        for operand in self.operands:
            operand.repair_feature_references(old_root, new_root)

    def describe(self) -> str:
        return f"{self.op}({', '.join(o.describe() for o in self.operands)})"


class ElementRep(PlacementRep):
    """One element of a composite expression."""

    def __init__(self, handle: "Placement", operand: "Placement", index: int):
        super().__init__(handle, element_type(operand.placement_type, index))
        self.operand = operand
        self.index = index

    def referenced_features(self) -> Iterator[Any]:
        return self.operand.referenced_features()

    def clone(self, handle: "Placement") -> "ElementRep":
        return ElementRep(handle, self.operand.copy(), self.index)

    def repair_feature_references(self, old_root: Any, new_root: Any) -> None:
        self.operand.repair_feature_references(old_root, new_root)

    def describe(self) -> str:
        return f"{self.operand.describe()}[{self.index}]"


class Placement:
    """Type-tagged handle around a placement representation.

    An empty placement has no representation; one without a type as well is
    the sentinel returned when a conversion or adaptation is not possible.
    """

    def __init__(self, placement_type: Optional[PlacementType] = None):
        self._type = placement_type
        self._rep: Optional[PlacementRep] = None
        self._committed = False

    @property
    def placement_type(self) -> Optional[PlacementType]:
        return self._type

    @property
    def rep(self) -> Optional[PlacementRep]:
        return self._rep

    @property
    def committed(self) -> bool:
        return self._committed

    def is_empty(self) -> bool:
        return self._rep is None

    def attach(self, rep: PlacementRep) -> "Placement":
        """Complete ownership of ``rep``, which must have been built for this handle."""

        if self._committed:
            raise PlacementError("a committed placement is immutable")
        if self._rep is not None:
            raise PlacementError("placement already has a representation")
        if rep.handle is not self:
            raise PlacementTypeError("representation was created for a different placement")
        if self._type is None:
            self._type = rep.placement_type
        elif rep.placement_type is not self._type:
            raise PlacementTypeError(
                f"cannot attach {rep.placement_type.value} expression to {self._type.value} placement"
            )
        self._rep = rep
        return self

    def commit(self) -> None:
        if self._rep is None:
            raise PlacementError("cannot commit an empty placement")
        self._committed = True

    def copy(self) -> "Placement":
        """Return an uncommitted deep copy; feature references keep pointing at the same features."""

        dup = Placement(self._type)
        if self._rep is not None:
            dup.attach(self._rep.clone(dup))
        return dup

    def depends_on(self, feature: Any) -> bool:
        return self._rep is not None and self._rep.depends_on(feature)

    def referenced_features(self) -> List[Any]:
        """Features referenced directly by this expression, in first-use order."""

        if self._rep is None:
            return []
        seen: List[Any] = []
        for feature in self._rep.referenced_features():
            if not any(feature is other for other in seen):
                seen.append(feature)
        return seen

    def repair_feature_references(self, old_root: Any, new_root: Any) -> None:
        if self._rep is not None:
            self._rep.repair_feature_references(old_root, new_root)

    def element(self, index: int) -> "Placement":
        if self._rep is None:
            raise PlacementError("cannot take an element of an empty placement")
        if index == WHOLE:
            return self.copy()
        shell = Placement(element_type(self._type, index))
        return shell.attach(self._rep.element_rep(shell, index))

    def describe(self) -> str:
        if self._rep is None:
            return "<empty>" if self._type is None else f"<empty {self._type.value}>"
        return self._rep.describe()

    def __str__(self) -> str:
        return self.describe()

    def __repr__(self) -> str:
        return f"Placement({self.describe()})"

    # Builders

    @classmethod
    def empty(cls) -> "Placement":
        return cls()

    @classmethod
    def constant(cls, placement_type: PlacementType, value: Any) -> "Placement":
        shell = cls(placement_type)
        return shell.attach(ConstantRep(shell, placement_type, value))

    @classmethod
    def real(cls, value: float) -> "Placement":
        return cls.constant(REAL, value)

    @classmethod
    def vec3(cls, value: Any) -> "Placement":
        return cls.constant(VEC3, value)

    @classmethod
    def station(cls, value: Any) -> "Placement":
        return cls.constant(STATION, value)

    @classmethod
    def direction(cls, value: Any) -> "Placement":
        return cls.constant(DIRECTION, value)

    @classmethod
    def orientation(cls, matrix: Any) -> "Placement":
        return cls.constant(ORIENTATION, matrix)

    @classmethod
    def orientation_from_rotvec(cls, rotvec: Any, degrees: bool = False) -> "Placement":
        return cls.orientation(Rotation.from_rotvec(rotvec, degrees=degrees).as_matrix())

    @classmethod
    def orientation_from_euler(cls, seq: str, angles: Any, degrees: bool = False) -> "Placement":
        return cls.orientation(Rotation.from_euler(seq, angles, degrees=degrees).as_matrix())

    @classmethod
    def frame(cls, orientation: Any = None, origin: Any = None) -> "Placement":
        rotation = np.eye(3) if orientation is None else orientation
        position = np.zeros(3) if origin is None else origin
        return cls.constant(FRAME, (rotation, position))

    @classmethod
    def of(cls, feature: Any) -> "Placement":
        """Reference to the whole placement of ``feature``."""

        return feature.as_placement(feature.required_placement_type)

    # Operators

    def __add__(self, other: Any) -> "Placement":
        return apply_operator("add", self, other)

    def __radd__(self, other: Any) -> "Placement":
        return apply_operator("add", other, self)

    def __sub__(self, other: Any) -> "Placement":
        return apply_operator("sub", self, other)

    def __rsub__(self, other: Any) -> "Placement":
        return apply_operator("sub", other, self)

    def __mul__(self, other: Any) -> "Placement":
        return apply_operator("mul", self, other)

    def __rmul__(self, other: Any) -> "Placement":
        return apply_operator("mul", other, self)

    def __truediv__(self, other: Any) -> "Placement":
        return apply_operator("div", self, other)

    def __neg__(self) -> "Placement":
        return apply_operator("neg", self)


def coerce_operand(value: Any) -> Placement:
    """Turn ``value`` into a non-empty placement usable as an operand."""

    if isinstance(value, Placement):
        if value.is_empty():
            raise PlacementTypeError("empty placement cannot be used in an expression")
        return value
    if isinstance(value, numbers.Real) and not isinstance(value, bool):
        return Placement.real(value)
    if hasattr(value, "as_placement") and hasattr(value, "required_placement_type"):
        return Placement.of(value)
    try:
        arr = np.asarray(value, dtype=float)
    except (TypeError, ValueError) as exc:
        raise PlacementTypeError(f"cannot use {value!r} as a placement") from exc
    if arr.shape == (3,):
        return Placement.vec3(arr)
    if arr.shape == (3, 3):
        return Placement.orientation(arr)
    raise PlacementTypeError(f"cannot use array of shape {arr.shape} as a placement")


def apply_operator(op: str, *operands: Any) -> Placement:
    placements = [coerce_operand(operand) for operand in operands]
    shell = Placement(operator_result_type(op, *(p.placement_type for p in placements)))
    return shell.attach(OperatorRep(shell, op, [p.copy() for p in placements]))


def dot(lhs: Any, rhs: Any) -> Placement:
    return apply_operator("dot", lhs, rhs)


def cross(lhs: Any, rhs: Any) -> Placement:
    return apply_operator("cross", lhs, rhs)


def norm(value: Any) -> Placement:
    return apply_operator("norm", value)


def normalize(value: Any) -> Placement:
    return apply_operator("normalize", value)


def distance(lhs: Any, rhs: Any) -> Placement:
    return apply_operator("distance", lhs, rhs)


__all__ = [
    "Placement",
    "PlacementRep",
    "ConstantRep",
    "FeatureReferenceRep",
    "OperatorRep",
    "ElementRep",
    "constant_value",
    "coerce_operand",
    "apply_operator",
    "dot",
    "cross",
    "norm",
    "normalize",
    "distance",
]
