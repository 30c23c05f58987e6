"""Minimal subsystem tree consumed by the feature core.

A :class:`Subsystem` has a name, an optional parent and ordered, uniquely
named children.  Each subsystem also owns the placement slots of its own
features and of descendant features whose placements reach across the
subtree.  The feature core only needs identity, ancestry queries, structural
copy and teardown from this class.
"""

from __future__ import annotations

import copy
import logging
from typing import Any, Dict, Iterator, List, Optional, Sequence, Tuple, TypeVar

from .errors import PlacementOwnershipError
from .placement import Placement
from .slot import PlacementSlot

logger = logging.getLogger(__name__)

PATH_SEPARATOR = "/"

S = TypeVar("S", bound="Subsystem")


def _check_name(name: object) -> str:
    if not isinstance(name, str) or not name:
        raise ValueError(f"subsystem name must be a non-empty string, got {name!r}")
    if PATH_SEPARATOR in name:
        raise ValueError(f"subsystem name must not contain {PATH_SEPARATOR!r}: {name!r}")
    return name


class Subsystem:
    """A named node of a model tree."""

    def __init__(self, name: str):
        self._name = _check_name(name)
        self._parent: Optional[Subsystem] = None
        self._children: Dict[str, Subsystem] = {}
        self._placement_slots: List[PlacementSlot] = []

    @property
    def name(self) -> str:
        return self._name

    @property
    def parent(self) -> Optional["Subsystem"]:
        return self._parent

    @property
    def children(self) -> Tuple["Subsystem", ...]:
        return tuple(self._children.values())

    @property
    def placement_slots(self) -> Tuple[PlacementSlot, ...]:
        return tuple(self._placement_slots)

    @property
    def root(self) -> "Subsystem":
        node = self
        while node._parent is not None:
            node = node._parent
        return node

    @property
    def full_name(self) -> str:
        names = [self._name] + [node._name for node in self.ancestors()]
        return PATH_SEPARATOR.join(reversed(names))

    # Tree membership

    def add_child(self, child: S) -> S:
        if not isinstance(child, Subsystem):
            raise TypeError(f"expected a Subsystem, got {type(child).__name__}")
        if child._parent is not None:
            raise ValueError(f"{child.full_name} already belongs to {child._parent.full_name}")
        if child.is_same_or_ancestor_of(self):
            raise ValueError(f"cannot add {child.full_name} below itself")
        if child.name in self._children:
            raise ValueError(f"{self.full_name} already has a child named {child.name!r}")
        child._parent = self
        self._children[child.name] = child
        return child

    def has_child(self, name: str) -> bool:
        return name in self._children

    def child(self, name: str) -> "Subsystem":
        try:
            return self._children[name]
        except KeyError as exc:
            raise KeyError(f"{self.full_name} has no child named {name!r}") from exc

    def find(self, path: str) -> "Subsystem":
        """Descendant at ``path`` (names separated by ``/``) relative to this subsystem."""

        return self.follow([part for part in path.split(PATH_SEPARATOR) if part])

    def follow(self, path: Sequence[str]) -> "Subsystem":
        node = self
        for name in path:
            node = node.child(name)
        return node

    def ancestors(self) -> Iterator["Subsystem"]:
        node = self._parent
        while node is not None:
            yield node
            node = node._parent

    def walk(self) -> Iterator["Subsystem"]:
        """Pre-order traversal of this subtree."""

        yield self
        for child in self._children.values():
            yield from child.walk()

    def is_same_or_ancestor_of(self, other: "Subsystem") -> bool:
        node: Optional[Subsystem] = other
        while node is not None:
            if node is self:
                return True
            node = node._parent
        return False

    def common_ancestor(self, other: "Subsystem") -> Optional["Subsystem"]:
        """Youngest subsystem that is the same as or an ancestor of both ``self`` and ``other``."""

        mine = {id(self)} | {id(node) for node in self.ancestors()}
        node: Optional[Subsystem] = other
        while node is not None:
            if id(node) in mine:
                return node
            node = node._parent
        return None

    def path_to(self, descendant: "Subsystem") -> Optional[Tuple[str, ...]]:
        """Child names leading from this subsystem to ``descendant``; ``None`` if outside the subtree."""

        names: List[str] = []
        node: Optional[Subsystem] = descendant
        while node is not None:
            if node is self:
                return tuple(reversed(names))
            names.append(node._name)
            node = node._parent
        return None

    # Placement slot ownership

    def adopt_placement_slot(self, placement: Placement, client: Any) -> PlacementSlot:
        if not self.is_same_or_ancestor_of(client):
            raise PlacementOwnershipError(
                client,
                f"{self.full_name} cannot own the placement of {client.full_name}: not an ancestor",
            )
        slot = PlacementSlot(self, placement, client)
        self._placement_slots.append(slot)
        return slot

    def detach_placement_slot(self, slot: PlacementSlot) -> PlacementSlot:
        """Stop owning ``slot`` without notifying its client."""

        try:
            self._placement_slots.remove(slot)
        except ValueError as exc:
            raise PlacementOwnershipError(
                slot.client, f"{self.full_name} does not own {slot!r}"
            ) from exc
        return slot

    def destroy_placement_slot(self, slot: PlacementSlot) -> None:
        self.detach_placement_slot(slot)
        slot.notify_client_destroyed()

    # Teardown and copy

    def remove_child(self, name: str) -> "Subsystem":
        """Detach the child subtree ``name`` and release every placement tied to it."""

        child = self.child(name)
        removed = {id(node) for node in child.walk()}
        for node in self.root.walk():
            inside = id(node) in removed
            for slot in list(node._placement_slots):
                # Destroying a composite's slot also releases the slots of its parts.
                if slot not in node._placement_slots:
                    continue
                client = slot.client
                if not inside:
                    client_removed = client is not None and id(client) in removed
                    dangling = any(id(f) in removed for f in slot.placement.referenced_features())
                    if not (client_removed or dangling):
                        continue
                    if dangling and not client_removed:
                        logger.warning(
                            "Removing placement of %s: it references features under %s",
                            client.full_name if client is not None else "<unbound>",
                            child.full_name,
                        )
                node.destroy_placement_slot(slot)
        del self._children[name]
        child._parent = None
        logger.info("Removed %s from %s", child.name, self.full_name)
        return child

    def clone(self) -> "Subsystem":
        """Structural copy of this subtree with placements rebound into the copy."""

        dup = self._clone_tree()
        for node in dup.walk():
            node._fixup_after_copy(self, dup)
        logger.info("Cloned %s", self.full_name)
        return dup

    def _shallow_copy(self) -> "Subsystem":
        dup = copy.copy(self)
        dup._parent = None
        dup._children = {}
        dup._placement_slots = []
        return dup

    def _clone_tree(self) -> "Subsystem":
        dup = self._shallow_copy()
        dup._placement_slots = [slot.copy_for(dup) for slot in self._placement_slots]
        for child in self._children.values():
            child_dup = child._clone_tree()
            child_dup._parent = dup
            dup._children[child_dup.name] = child_dup
        return dup

    def _fixup_after_copy(self, old_root: "Subsystem", new_root: "Subsystem") -> None:
        for slot in self._placement_slots:
            slot.placement.repair_feature_references(old_root, new_root)
            path = old_root.path_to(slot.client) if slot.client is not None else None
            slot.client = new_root.follow(path) if path is not None else None

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.full_name!r}>"


__all__ = ["Subsystem", "PATH_SEPARATOR"]
