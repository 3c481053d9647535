"""Transaction handlers - the business rules of the car marketplace.

Each public method is one named transaction. It reads records through the
repository, decides the new state, writes it back and reconciles the
composite index for any colour or owner change. Every method runs inside a
single store transaction, so a failure part-way leaves nothing behind.
"""

from __future__ import annotations

import decimal
import logging
from collections.abc import Callable
from decimal import Decimal
from functools import wraps
from typing import Any, TypeVar

from ..errors import InsufficientFundsError, InvalidOperationError
from ..models import (
    Car,
    CarLifecycle,
    CarMalfunction,
    MalfunctionOutcome,
    Person,
    lifecycle_for,
)
from ..persistence.index import CompositeIndex
from ..persistence.repository import EntityRepository
from ..persistence.store import LedgerStore
from .seed import genesis_cars, genesis_persons

logger = logging.getLogger(__name__)

F = TypeVar("F", bound=Callable[..., Any])


def transactional(func: F) -> F:
    """Run a handler inside one store transaction."""

    @wraps(func)
    def wrapper(self: CarContract, *args: Any, **kwargs: Any) -> Any:
        with self.store.transaction():
            return func(self, *args, **kwargs)

    return wrapper  # type: ignore[return-value]


def parse_decimal(value: Decimal | int | float | str) -> Decimal:
    """Coerce an amount to a finite Decimal the current context can represent.

    Amounts beyond the context's exponent range are rejected rather than
    left to overflow in later arithmetic.
    """
    try:
        amount = value if isinstance(value, Decimal) else Decimal(str(value).strip())
        if amount.is_finite():
            amount = decimal.getcontext().create_decimal(amount)
    except decimal.Overflow as e:
        raise InvalidOperationError(f"Amount out of range: {value!r}") from e
    except decimal.DecimalException as e:
        raise InvalidOperationError(f"Not a decimal amount: {value!r}") from e
    if not amount.is_finite():
        raise InvalidOperationError(f"Not a finite amount: {value!r}")
    return amount


class CarContract:
    """The named transactions of the car ledger.

    Example:
        contract = CarContract(SQLiteLedgerStore(":memory:"))
        contract.init_ledger()
        contract.change_owner("car5", "person1", accept_malfunctioned=True)
        contract.query_cars_by_owner("person1")
    """

    def __init__(
        self,
        store: LedgerStore,
        *,
        cars: Callable[[], list[Car]] = genesis_cars,
        persons: Callable[[], list[Person]] = genesis_persons,
    ) -> None:
        self.store = store
        self.repository = EntityRepository(store)
        self.index = CompositeIndex(store)
        self._seed_cars = cars
        self._seed_persons = persons

    # -----------------------------------------------------------------------
    # Genesis
    # -----------------------------------------------------------------------

    @transactional
    def init_ledger(self) -> None:
        """Seed the ledger with the genesis cars and persons.

        Existing records with the same ids are overwritten.
        """
        cars = self._seed_cars()
        persons = self._seed_persons()

        for car in cars:
            self.repository.put_car(car)
            self.index.upsert(car)

        for person in persons:
            self.repository.put_person(person)

        logger.info(f"Ledger initialised with {len(cars)} cars and {len(persons)} persons")

    # -----------------------------------------------------------------------
    # Queries
    # -----------------------------------------------------------------------

    @transactional
    def query_car(self, car_id: str) -> Car:
        return self.repository.get_car(car_id)

    @transactional
    def query_person(self, person_id: str) -> Person:
        return self.repository.get_person(person_id)

    @transactional
    def query_all_cars(self) -> list[Car]:
        return list(self.repository.iter_cars())

    def _load_cars(self, car_ids: list[str]) -> list[Car]:
        # A scrapped car keeps its index entry, so this can raise NotFound
        return [self.repository.get_car(car_id) for car_id in car_ids]

    @transactional
    def query_cars_by_color(self, colour: str) -> list[Car]:
        return self._load_cars(self.index.by_color(colour))

    @transactional
    def query_cars_by_owner(self, owner_id: str) -> list[Car]:
        return self._load_cars(self.index.by_owner(owner_id))

    @transactional
    def query_cars_by_color_and_owner(self, colour: str, owner_id: str) -> list[Car]:
        return self._load_cars(self.index.by_color_and_owner(colour, owner_id))

    # -----------------------------------------------------------------------
    # Mutations
    # -----------------------------------------------------------------------

    @transactional
    def change_owner(self, car_id: str, new_owner_id: str, accept_malfunctioned: bool) -> None:
        """Sell a car to ``new_owner_id``.

        The buyer pays the car's price to the current owner. A car with
        outstanding malfunctions is only sold when the buyer accepts them,
        and then at its price minus the total repair cost. That price is not
        clamped, so it can be zero or negative.

        Raises:
            NotFoundError: car, buyer or seller is missing
            InvalidOperationError: buyer already owns the car, malfunctions
                were not accepted, or the buyer cannot afford the price
        """
        car = self.repository.get_car(car_id)

        if car.owner_id == new_owner_id:
            raise InvalidOperationError(
                f"{new_owner_id} already owns {car_id}", key=car_id
            )

        buyer = self.repository.get_person(new_owner_id)
        seller = self.repository.get_person(car.owner_id)

        price = car.price
        if car.has_malfunctions:
            if not accept_malfunctioned:
                raise InvalidOperationError(
                    f"{car_id} has malfunctions, purchase cannot be made", key=car_id
                )
            price -= car.repair_cost
            if price < 0:
                logger.warning(
                    f"Effective price of {car_id} is negative ({price}); "
                    f"seller {seller.id} pays buyer {buyer.id}"
                )

        if buyer.money < price:
            raise InvalidOperationError(
                f"{buyer.id} does not have enough money to buy {car_id}", key=car_id
            )

        buyer.money -= price
        seller.money += price
        previous_owner_id = car.owner_id
        car.owner_id = new_owner_id

        self.repository.put_car(car)
        self.index.upsert(car, previous_owner_id=previous_owner_id)
        self.repository.put_person(seller)
        self.repository.put_person(buyer)

        logger.info(
            f"{car_id} sold by {seller.id} to {buyer.id} for {price}"
        )

    @transactional
    def change_car_colour(self, car_id: str, new_colour: str) -> None:
        car = self.repository.get_car(car_id)

        previous_colour = car.colour
        car.colour = new_colour

        self.repository.put_car(car)
        self.index.upsert(car, previous_colour=previous_colour)

        logger.info(f"{car_id} repainted {previous_colour} -> {new_colour}")

    @transactional
    def add_malfunction(
        self, car_id: str, description: str, repair_price: Decimal | int | str
    ) -> MalfunctionOutcome:
        """Record a malfunction; scrap the car once repairs outweigh its price.

        A scrapped car is deleted from the ledger. Its index entry is left
        in place.
        """
        repair_price = parse_decimal(repair_price)
        if repair_price < 0:
            raise InvalidOperationError(
                f"Repair price must not be negative: {repair_price}", key=car_id
            )

        car = self.repository.get_car(car_id)
        car.malfunctions.append(
            CarMalfunction(description=description, repair_price=repair_price)
        )

        try:
            lifecycle = lifecycle_for(car)
        except decimal.Overflow as e:
            raise InvalidOperationError(
                f"Repair cost of {car_id} is out of range", key=car_id
            ) from e
        if lifecycle is CarLifecycle.SCRAPPED:
            self.repository.delete_car(car_id)
            logger.info(
                f"{car_id} scrapped: repair cost {car.repair_cost} exceeds price {car.price}"
            )
        else:
            self.repository.put_car(car)
            logger.info(f"Malfunction added to {car_id}: {description} ({repair_price})")

        return MalfunctionOutcome(
            car_id=car_id,
            lifecycle=lifecycle,
            repair_cost=car.repair_cost,
            price=car.price,
        )

    @transactional
    def repair_car(self, car_id: str) -> None:
        """Owner pays for every outstanding malfunction; the list is cleared.

        Raises:
            NotFoundError: car or owner is missing
            InsufficientFundsError: owner cannot pay the total repair cost
        """
        car = self.repository.get_car(car_id)
        owner = self.repository.get_person(car.owner_id)

        total = car.repair_cost
        if owner.money < total:
            raise InsufficientFundsError(
                f"{owner.id} does not have enough money to repair {car_id}", key=car_id
            )

        owner.money -= total
        car.malfunctions = []

        self.repository.put_car(car)
        self.repository.put_person(owner)

        logger.info(f"{car_id} repaired by {owner.id} for {total}")


__all__ = ["CarContract", "transactional", "parse_decimal"]
