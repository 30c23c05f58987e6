"""Whole-tree checks over the placement dependency graph.

``Feature.place`` rejects cycle-forming placements eagerly unless
``PlacementConfig.check_cycles`` is off; these helpers walk a complete tree
and are what a model builder runs before handing the model on.
"""

from __future__ import annotations

import logging
from typing import Dict, Iterator, List, Optional, Set, Tuple

from .errors import InvalidDependencyError
from .feature import Feature
from .subsystem import Subsystem

logger = logging.getLogger(__name__)

_WHITE, _GREY, _BLACK = 0, 1, 2


def _features(root: Subsystem) -> List[Feature]:
    return [node for node in root.walk() if isinstance(node, Feature)]


def placement_dependencies(root: Subsystem) -> Dict[Feature, List[Feature]]:
    """Map every feature under ``root`` to the features its placement references directly."""

    deps: Dict[Feature, List[Feature]] = {}
    for feature in _features(root):
        slot = feature.placement_slot
        deps[feature] = slot.placement.referenced_features() if slot is not None else []
    return deps


def find_dependency_cycle(root: Subsystem) -> Optional[List[Feature]]:
    """Return one dependency cycle (first feature repeated at the end), or ``None``."""

    color: Dict[int, int] = {}
    for start in placement_dependencies(root):
        if color.get(id(start), _WHITE) != _WHITE:
            continue
        color[id(start)] = _GREY
        path: List[Feature] = [start]
        stack: List[Iterator[Feature]] = [iter(_direct(start))]
        while stack:
            dep = next(stack[-1], None)
            if dep is None:
                stack.pop()
                color[id(path.pop())] = _BLACK
                continue
            state = color.get(id(dep), _WHITE)
            if state == _GREY:
                first = next(i for i, f in enumerate(path) if f is dep)
                return path[first:] + [dep]
            if state == _WHITE:
                color[id(dep)] = _GREY
                path.append(dep)
                stack.append(iter(_direct(dep)))
    return None


def _direct(feature: Feature) -> List[Feature]:
    # Referenced features may live outside the walked subtree.
    slot = feature.placement_slot
    return slot.placement.referenced_features() if slot is not None else []


def check_placement_graph(root: Subsystem) -> None:
    """Raise ``InvalidDependencyError`` if the placements under ``root`` are cyclic."""

    cycle = find_dependency_cycle(root)
    if cycle:
        logger.warning("Dependency cycle under %s: %s", root.full_name, " -> ".join(f.full_name for f in cycle))
        raise InvalidDependencyError(cycle[0], cycle)


def placement_order(root: Subsystem) -> List[Feature]:
    """Placed features under ``root`` ordered so every feature follows the features it references."""

    check_placement_graph(root)
    deps = placement_dependencies(root)
    order: List[Feature] = []
    seen: Set[int] = set()
    for start in deps:
        if id(start) in seen:
            continue
        seen.add(id(start))
        # (feature, its dependencies under root still to visit)
        stack: List[Tuple[Feature, Iterator[Feature]]] = [
            (start, iter([dep for dep in deps[start] if dep in deps]))
        ]
        while stack:
            feature, pending = stack[-1]
            dep = next(pending, None)
            if dep is None:
                stack.pop()
                if feature.has_placement():
                    order.append(feature)
            elif id(dep) not in seen:
                seen.add(id(dep))
                stack.append((dep, iter([d for d in deps[dep] if d in deps])))
    return order


def unplaced_features(root: Subsystem) -> List[Feature]:
    return [feature for feature in _features(root) if not feature.has_placement()]


__all__ = [
    "placement_dependencies",
    "find_dependency_cycle",
    "check_placement_graph",
    "placement_order",
    "unplaced_features",
]
