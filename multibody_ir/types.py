from __future__ import annotations

from enum import Enum
from typing import Dict, Optional, Tuple

from .errors import PlacementTypeError


class PlacementType(Enum):
    """The six placement categories a feature can require."""

    REAL = "real"
    VEC3 = "vec3"
    STATION = "station"
    DIRECTION = "direction"
    ORIENTATION = "orientation"
    FRAME = "frame"


REAL = PlacementType.REAL
VEC3 = PlacementType.VEC3
STATION = PlacementType.STATION
DIRECTION = PlacementType.DIRECTION
ORIENTATION = PlacementType.ORIENTATION
FRAME = PlacementType.FRAME

# Index meaning "the entire placement" rather than one of its elements.
WHOLE = -1

ELEMENT_TYPES: Dict[PlacementType, Tuple[PlacementType, ...]] = {
    REAL: (),
    VEC3: (REAL, REAL, REAL),
    STATION: (REAL, REAL, REAL),
    DIRECTION: (REAL, REAL, REAL),
    ORIENTATION: (DIRECTION, DIRECTION, DIRECTION),
    FRAME: (ORIENTATION, STATION),
}

# Orientation elements are the x, y, z axes; frame elements are (orientation, origin).
FRAME_ORIENTATION = 0
FRAME_ORIGIN = 1

CONVERSION_OPS: Dict[Tuple[PlacementType, PlacementType], str] = {
    (STATION, VEC3): "as_vec3",
    (DIRECTION, VEC3): "as_vec3",
    (VEC3, STATION): "as_station",
    (VEC3, DIRECTION): "normalize",
    (FRAME, STATION): "frame_origin",
    (FRAME, ORIENTATION): "frame_orientation",
    (ORIENTATION, FRAME): "frame_from_orientation",
    (STATION, FRAME): "frame_from_station",
}

_UNARY_RULES: Dict[Tuple[str, PlacementType], PlacementType] = {
    ("neg", REAL): REAL,
    ("neg", VEC3): VEC3,
    ("neg", DIRECTION): DIRECTION,
    ("norm", VEC3): REAL,
    ("normalize", VEC3): DIRECTION,
}
_UNARY_RULES.update({(op, src): dst for (src, dst), op in CONVERSION_OPS.items()})

_BINARY_RULES: Dict[Tuple[str, PlacementType, PlacementType], PlacementType] = {
    ("add", REAL, REAL): REAL,
    ("sub", REAL, REAL): REAL,
    ("mul", REAL, REAL): REAL,
    ("div", REAL, REAL): REAL,
    ("add", VEC3, VEC3): VEC3,
    ("sub", VEC3, VEC3): VEC3,
    ("mul", REAL, VEC3): VEC3,
    ("mul", VEC3, REAL): VEC3,
    ("div", VEC3, REAL): VEC3,
    ("add", STATION, VEC3): STATION,
    ("sub", STATION, VEC3): STATION,
    ("sub", STATION, STATION): VEC3,
    ("dot", VEC3, VEC3): REAL,
    ("cross", VEC3, VEC3): VEC3,
    ("distance", STATION, STATION): REAL,
    ("mul", ORIENTATION, VEC3): VEC3,
    ("mul", ORIENTATION, DIRECTION): DIRECTION,
    ("mul", ORIENTATION, ORIENTATION): ORIENTATION,
    ("mul", FRAME, STATION): STATION,
    ("mul", FRAME, FRAME): FRAME,
}


def element_type(placement_type: PlacementType, index: int) -> PlacementType:
    """Return the type of element ``index`` of ``placement_type`` (``WHOLE`` for itself)."""

    if index == WHOLE:
        return placement_type
    elements = ELEMENT_TYPES[placement_type]
    if not 0 <= index < len(elements):
        raise IndexError(
            f"{placement_type.value} placement has {len(elements)} elements, got index {index}"
        )
    return elements[index]


def _widen(placement_type: PlacementType) -> PlacementType:
    return VEC3 if placement_type is DIRECTION else placement_type


def unary_result_type(op: str, operand: PlacementType) -> Optional[PlacementType]:
    result = _UNARY_RULES.get((op, operand))
    if result is None:
        result = _UNARY_RULES.get((op, _widen(operand)))
    return result


def binary_result_type(op: str, lhs: PlacementType, rhs: PlacementType) -> Optional[PlacementType]:
    result = _BINARY_RULES.get((op, lhs, rhs))
    if result is None:
        result = _BINARY_RULES.get((op, _widen(lhs), _widen(rhs)))
    return result


def operator_result_type(op: str, *operands: PlacementType) -> PlacementType:
    """Return the result type of ``op`` applied to ``operands`` or raise ``PlacementTypeError``."""

    if len(operands) == 1:
        result = unary_result_type(op, operands[0])
    elif len(operands) == 2:
        result = binary_result_type(op, operands[0], operands[1])
    else:
        result = None
    if result is None:
        names = ", ".join(t.value for t in operands)
        raise PlacementTypeError(f"operator {op!r} is not defined for ({names})")
    return result


__all__ = [
    "PlacementType",
    "REAL",
    "VEC3",
    "STATION",
    "DIRECTION",
    "ORIENTATION",
    "FRAME",
    "WHOLE",
    "ELEMENT_TYPES",
    "FRAME_ORIENTATION",
    "FRAME_ORIGIN",
    "CONVERSION_OPS",
    "element_type",
    "unary_result_type",
    "binary_result_type",
    "operator_result_type",
]
