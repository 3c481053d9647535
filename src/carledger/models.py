"""Pydantic models for the records held in the ledger.

Field aliases carry the PascalCase names used on the wire and in stored
JSON; Python code works with the snake_case attributes.
"""

from __future__ import annotations

from decimal import Decimal
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class _Record(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    def to_wire(self) -> dict:
        """JSON-compatible dict using the wire field names."""
        return self.model_dump(mode="json", by_alias=True)


class CarMalfunction(_Record):
    """A reported defect and what it costs to repair."""

    description: str = Field(alias="Description")
    repair_price: Decimal = Field(alias="RepairPrice", ge=0)


class Car(_Record):
    """A vehicle on the ledger.

    ``id`` and ``price`` never change after creation; ``colour`` and
    ``owner_id`` change through ChangeCarColour and ChangeOwner.
    """

    id: str = Field(alias="Id", min_length=1)
    brand: str = Field(alias="Brand")
    model: str = Field(alias="Model")
    year: int = Field(alias="Year")
    colour: str = Field(alias="Colour")
    owner_id: str = Field(alias="OwnerId")
    price: Decimal = Field(alias="Price")
    malfunctions: list[CarMalfunction] = Field(default_factory=list, alias="MalfunctionList")

    @property
    def repair_cost(self) -> Decimal:
        """Sum of the repair prices of all outstanding malfunctions."""
        return sum((m.repair_price for m in self.malfunctions), Decimal("0"))

    @property
    def has_malfunctions(self) -> bool:
        return bool(self.malfunctions)


class Person(_Record):
    """A car owner or prospective buyer."""

    id: str = Field(alias="Id", min_length=1)
    name: str = Field(alias="Name")
    surname: str = Field(alias="Surname")
    email: str = Field(alias="Email")
    money: Decimal = Field(alias="Money")


class CarLifecycle(str, Enum):
    """Lifecycle of a car: active cars are addressable, scrapped cars are gone."""

    ACTIVE = "active"
    SCRAPPED = "scrapped"


def lifecycle_for(car: Car) -> CarLifecycle:
    """Scrapped once accumulated repair cost exceeds the car's price."""
    if car.repair_cost > car.price:
        return CarLifecycle.SCRAPPED
    return CarLifecycle.ACTIVE


class MalfunctionOutcome(_Record):
    """Result of AddMalfunction."""

    car_id: str = Field(alias="CarId")
    lifecycle: CarLifecycle = Field(alias="Lifecycle")
    repair_cost: Decimal = Field(alias="RepairCost")
    price: Decimal = Field(alias="Price")


__all__ = [
    "Car",
    "CarMalfunction",
    "Person",
    "CarLifecycle",
    "MalfunctionOutcome",
    "lifecycle_for",
]
