# Copyright 2026 Seth Bang
# SPDX-License-Identifier: Apache-2.0
"""
Vehicle record types.

Vehicles are never deleted. Deactivating one hides it from availability
searches and new bookings while its historical reservations stay valid.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any


@dataclass
class Vehicle:
    """
    A fleet vehicle that can be booked for transport requests.

    Attributes:
        id: Opaque unique identifier
        name: Display name
        capacity_kg: Maximum load in kilograms (always > 0)
        tyres: Number of tyres
        is_active: Whether the vehicle accepts new bookings
        created_at: UTC timestamp when the vehicle was added
    """

    id: str
    name: str
    capacity_kg: float
    tyres: int
    is_active: bool = True
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def summary(self) -> str:
        """One-line description, e.g. "Tata Ace - 750kg capacity, 4 tyres"."""
        return f"{self.name} - {self.capacity_kg:g}kg capacity, {self.tyres} tyres"

    def to_dict(self) -> dict[str, Any]:
        """Serialize for the transport layer."""
        return {
            "id": self.id,
            "name": self.name,
            "capacity_kg": self.capacity_kg,
            "tyres": self.tyres,
            "is_active": self.is_active,
            "created_at": self.created_at.isoformat(),
            "summary": self.summary,
        }


__all__ = ["Vehicle"]
