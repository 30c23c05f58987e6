from __future__ import annotations

from typing import Any, Optional

from .errors import PlacementError
from .placement import Placement


class PlacementSlot:
    """Storage binding one committed placement to the feature that uses it.

    The slot lives in ``owner.placement_slots``; ``client`` is the feature
    whose placement it is.  The owner is the client itself or one of its
    ancestors.
    """

    def __init__(self, owner: Any, placement: Placement, client: Any = None):
        if placement.is_empty():
            raise PlacementError("a placement slot cannot hold an empty placement")
        placement.commit()
        self.owner = owner
        self.client = client
        self._placement = placement

    @property
    def placement(self) -> Placement:
        return self._placement

    def get_placement(self) -> Placement:
        return self._placement

    def set_placement(self, placement: Placement) -> None:
        if placement.is_empty():
            raise PlacementError("a placement slot cannot hold an empty placement")
        placement.commit()
        self._placement = placement

    def copy_for(self, owner: Any) -> "PlacementSlot":
        """Copy this slot into a cloned owner; the client is rebound during copy-fixup."""

        return PlacementSlot(owner, self._placement.copy(), self.client)

    def notify_client_destroyed(self) -> Optional[Any]:
        client, self.client = self.client, None
        if client is not None and client.placement_slot is self:
            client.clear_placement_slot()
        return client

    def __repr__(self) -> str:
        client = self.client.full_name if self.client is not None else None
        return f"PlacementSlot(owner={self.owner.full_name!r}, client={client!r}, placement={self._placement})"


__all__ = ["PlacementSlot"]
