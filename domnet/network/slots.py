"""Interface slot allocation.

Every network interface of a domain lives in a numbered slot. Slot 0 is the
provisioning/management path; the platform allows slots 0 through 8.
"""

from __future__ import annotations

import logging
from typing import Iterable, Iterator

from domnet.errors import (
    InterfaceSlotConflict,
    InterfaceSlotExhausted,
    InterfaceSlotOutOfRange,
)
from domnet.schemas import MANAGEMENT, InterfaceIntent, SlotAssignment

logger = logging.getLogger(__name__)

# Fixed platform limit, not configurable.
MAX_SLOTS = 9
MANAGEMENT_SLOT = 0


class SlotTable:
    """Fixed-capacity mapping of slot index -> SlotAssignment.

    Unfilled indices are free. An occupied index is never reused within a run.
    Iteration yields assignments in ascending slot order.
    """

    def __init__(self, capacity: int = MAX_SLOTS):
        self.capacity = capacity
        self._slots: list[SlotAssignment | None] = [None] * capacity

    def _check_index(self, index: int) -> None:
        if not 0 <= index < self.capacity:
            raise InterfaceSlotOutOfRange(
                f"Interface slot {index} is outside the supported range "
                f"0..{self.capacity - 1}",
                slot=index,
            )

    def is_free(self, index: int) -> bool:
        self._check_index(index)
        return self._slots[index] is None

    def occupy(self, index: int, assignment: SlotAssignment) -> None:
        """Place an assignment in a free slot."""
        self._check_index(index)
        if self._slots[index] is not None:
            raise InterfaceSlotConflict(
                f"Interface slot {index} is already in use", slot=index
            )
        self._slots[index] = assignment

    def replace(self, assignment: SlotAssignment) -> None:
        """Swap an occupied slot's assignment for an updated copy."""
        self._check_index(assignment.slot)
        if self._slots[assignment.slot] is None:
            raise KeyError(assignment.slot)
        self._slots[assignment.slot] = assignment

    def first_free(self) -> int | None:
        """Lowest free index, or None when every slot is taken."""
        for index, assignment in enumerate(self._slots):
            if assignment is None:
                return index
        return None

    def get(self, index: int) -> SlotAssignment | None:
        self._check_index(index)
        return self._slots[index]

    def __getitem__(self, index: int) -> SlotAssignment:
        assignment = self.get(index)
        if assignment is None:
            raise KeyError(index)
        return assignment

    def __contains__(self, index: object) -> bool:
        return (
            isinstance(index, int)
            and 0 <= index < self.capacity
            and self._slots[index] is not None
        )

    def __iter__(self) -> Iterator[SlotAssignment]:
        return (a for a in self._slots if a is not None)

    def __len__(self) -> int:
        return sum(1 for a in self._slots if a is not None)

    def indices(self) -> list[int]:
        return [a.slot for a in self]

    def __repr__(self) -> str:
        body = ", ".join(
            f"{a.slot}: {a.iface_type}/{a.network_name or '?'}" for a in self
        )
        return f"SlotTable({{{body}}})"


class SlotAllocator:
    """Assigns interface intents to slots.

    Intents are processed in declaration order. An explicit ``adapter``
    claims that exact slot; anything else takes the lowest free slot.
    """

    def __init__(self, capacity: int = MAX_SLOTS):
        self.capacity = capacity

    def allocate(self, intents: Iterable[InterfaceIntent]) -> SlotTable:
        """Build the slot table for a run.

        Raises:
            InterfaceSlotConflict: explicit slot already occupied
            InterfaceSlotExhausted: no free slot for an auto-assigned intent
            InterfaceSlotOutOfRange: explicit slot outside 0..capacity-1
        """
        table = SlotTable(self.capacity)

        for intent in intents:
            logger.debug(
                "Allocating slot for %s interface (adapter=%s)",
                intent.iface_type,
                intent.adapter,
            )
            if intent.adapter is not None:
                slot = intent.adapter
                if not table.is_free(slot):
                    raise InterfaceSlotConflict(
                        f"Interface slot {slot} requested by a {intent.iface_type} "
                        f"interface is already in use",
                        slot=slot,
                    )
                logger.debug("Using specified adapter slot %d", slot)
            else:
                slot = table.first_free()
                if slot is None:
                    raise InterfaceSlotExhausted(
                        f"No free interface slot left for {intent.iface_type} "
                        f"interface (limit is {self.capacity})"
                    )
                logger.debug("Adapter not specified so found slot %d", slot)

            table.occupy(slot, SlotAssignment.from_intent(slot, intent))

        if table.is_free(MANAGEMENT_SLOT):
            logger.debug("Slot %d unclaimed, reserving it for management", MANAGEMENT_SLOT)
            table.occupy(
                MANAGEMENT_SLOT,
                SlotAssignment(slot=MANAGEMENT_SLOT, iface_type=MANAGEMENT),
            )

        return table
