"""Conversion of placements between placement types.

Conversions are attempted speculatively while a feature negotiates a
placement, so failure is reported with an empty :class:`Placement` instead of
an exception.
"""

from __future__ import annotations

import logging
from typing import Any, Optional

import numpy as np

from .config import get_placement_config
from .placement import ConstantRep, FeatureReferenceRep, OperatorRep, Placement
from .types import CONVERSION_OPS, WHOLE, PlacementType

logger = logging.getLogger(__name__)


def conversion_op(source: Optional[PlacementType], target: PlacementType) -> Optional[str]:
    """Name of the operation converting ``source`` to ``target``, if one exists."""

    if source is None:
        return None
    return CONVERSION_OPS.get((source, target))


def fold_constant(op: str, value: Any) -> Optional[Any]:
    """Apply conversion ``op`` to a constant value; ``None`` when the result is undefined."""

    if op in ("as_vec3", "as_station"):
        return value
    if op == "normalize":
        length = float(np.linalg.norm(value))
        if length <= get_placement_config().unit_tolerance:
            return None
        return value / length
    if op == "frame_origin":
        return value[1]
    if op == "frame_orientation":
        return value[0]
    if op == "frame_from_orientation":
        return (value, np.zeros(3))
    if op == "frame_from_station":
        return (np.eye(3), value)
    raise KeyError(f"unknown conversion {op!r}")


def convert_placement(placement: Placement, target: PlacementType) -> Placement:
    """Return ``placement`` converted to ``target`` or an empty placement.

    A reference to a whole feature is first offered to the feature itself so a
    composite feature can answer with one of its parts (a frame used as a
    station yields its origin).  Constants are folded; anything else is
    wrapped in a conversion operator.
    """

    if placement.is_empty():
        return Placement.empty()
    source = placement.placement_type
    if source is target:
        return placement.copy()
    op = conversion_op(source, target)
    if op is None:
        logger.debug("No conversion from %s to %s", source.value, target.value)
        return Placement.empty()

    rep = placement.rep
    if isinstance(rep, FeatureReferenceRep) and rep.index == WHOLE:
        adapted = rep.feature.as_placement(target)
        if not adapted.is_empty():
            logger.debug("Converted %s to %s by adaptation", placement, target.value)
            return adapted

    if isinstance(rep, ConstantRep):
        value = fold_constant(op, rep.value)
        if value is None:
            logger.debug("Constant %s has no %s value", placement, target.value)
            return Placement.empty()
        return Placement.constant(target, value)

    shell = Placement(target)
    return shell.attach(OperatorRep(shell, op, [placement.copy()]))


__all__ = [
    "conversion_op",
    "fold_constant",
    "convert_placement",
]
