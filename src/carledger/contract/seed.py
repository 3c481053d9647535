"""Genesis records written by InitLedger."""

from __future__ import annotations

from decimal import Decimal

from ..models import Car, CarMalfunction, Person


def _malfunction(description: str, repair_price: str) -> CarMalfunction:
    return CarMalfunction(description=description, repair_price=Decimal(repair_price))


def genesis_cars() -> list[Car]:
    return [
        Car(
            id="car1", brand="Toyota", model="Prius", year=2001, colour="blue",
            owner_id="person1", price=Decimal("100.00"),
            malfunctions=[
                _malfunction("Broken Tail/Head Lights", "40"),
                _malfunction("Warning Lights", "50"),
            ],
        ),
        Car(
            id="car2", brand="Ford", model="Mustang", year=2001, colour="red",
            owner_id="person1", price=Decimal("200.00"),
            malfunctions=[_malfunction("Bad Fuel Economy", "40")],
        ),
        Car(
            id="car3", brand="Fiat", model="XXL", year=2001, colour="pink",
            owner_id="person1", price=Decimal("300.00"),
            malfunctions=[_malfunction("Flat Tires", "50")],
        ),
        Car(
            id="car4", brand="Hyundai", model="Tucson", year=2001, colour="green",
            owner_id="person2", price=Decimal("400.00"),
            malfunctions=[_malfunction("Rusting", "100")],
        ),
        Car(
            id="car5", brand="Volkswagen", model="Passat", year=2001, colour="yellow",
            owner_id="person3", price=Decimal("500.00"),
            malfunctions=[
                _malfunction("Bad Brakes", "10"),
                _malfunction("Overheating", "15"),
            ],
        ),
        Car(
            id="car6", brand="Tesla", model="S", year=2001, colour="black",
            owner_id="person3", price=Decimal("600.00"),
            malfunctions=[_malfunction("Airbags That Injure", "20")],
        ),
    ]


def genesis_persons() -> list[Person]:
    return [
        Person(
            id="person1", name="Jean-Jacques", surname="Rousseau",
            email="rousseau@gmail.com", money=Decimal("8900.99"),
        ),
        Person(
            id="person2", name="Marco", surname="Polo",
            email="polo@gmail.com", money=Decimal("3230.33"),
        ),
        Person(
            id="person3", name="Amadeo", surname="Avogadro",
            email="avogadro@gmail.com", money=Decimal("3333.33"),
        ),
    ]


__all__ = ["genesis_cars", "genesis_persons"]
