"""Transaction Dispatcher - invocation names and string arguments to handlers.

This is the surface a gateway talks to: an invocation name from the fixed
set below plus positional string arguments in, a JSON document out.
``submit`` runs any transaction and journals it; ``evaluate`` runs queries
only.
"""

from __future__ import annotations

import json
import time
import uuid
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from typing import Any

import structlog
from pydantic import BaseModel

from ..errors import InvalidOperationError, LedgerError, UnknownTransactionError
from ..persistence.journal import InvocationJournal
from .handlers import CarContract, parse_decimal

logger = structlog.get_logger(__name__)

_TRUE_VALUES = frozenset({"true", "1", "yes"})
_FALSE_VALUES = frozenset({"false", "0", "no"})


def parse_bool(value: str) -> bool:
    """Decode a boolean flag ("true"/"false", also "yes"/"no" and "1"/"0")."""
    normalized = value.strip().lower()
    if normalized in _TRUE_VALUES:
        return True
    if normalized in _FALSE_VALUES:
        return False
    raise InvalidOperationError(f"Not a boolean flag: {value!r}")


def _text(value: str) -> str:
    return value


@dataclass(frozen=True, slots=True)
class TransactionSpec:
    """How one invocation name maps onto a CarContract method."""

    name: str
    method: str
    params: tuple[tuple[str, Callable[[str], Any]], ...] = ()
    read_only: bool = False

    @property
    def arity(self) -> int:
        return len(self.params)


TRANSACTIONS: dict[str, TransactionSpec] = {
    spec.name: spec
    for spec in (
        TransactionSpec("InitLedger", "init_ledger"),
        TransactionSpec("QueryCar", "query_car", (("carId", _text),), read_only=True),
        TransactionSpec("QueryPerson", "query_person", (("personId", _text),), read_only=True),
        TransactionSpec("QueryAllCars", "query_all_cars", read_only=True),
        TransactionSpec(
            "QueryCarsByColor", "query_cars_by_color", (("colour", _text),), read_only=True
        ),
        TransactionSpec(
            "QueryCarsByOwner", "query_cars_by_owner", (("ownerId", _text),), read_only=True
        ),
        TransactionSpec(
            "QueryCarsByColorAndOwner",
            "query_cars_by_color_and_owner",
            (("colour", _text), ("ownerId", _text)),
            read_only=True,
        ),
        TransactionSpec(
            "ChangeOwner",
            "change_owner",
            (("carId", _text), ("newOwnerId", _text), ("acceptCarWithMalfunction", parse_bool)),
        ),
        TransactionSpec(
            "ChangeCarColour",
            "change_car_colour",
            (("carId", _text), ("newColour", _text)),
        ),
        TransactionSpec(
            "AddMalfunction",
            "add_malfunction",
            (("carId", _text), ("description", _text), ("repairPrice", parse_decimal)),
        ),
        TransactionSpec("RepairCar", "repair_car", (("carId", _text),)),
    )
}


def encode_result(result: Any) -> str:
    """JSON-encode a handler result; handlers with no result give ""."""
    if result is None:
        return ""
    if isinstance(result, BaseModel):
        return json.dumps(result.model_dump(mode="json", by_alias=True))
    if isinstance(result, list):
        return json.dumps(
            [r.model_dump(mode="json", by_alias=True) for r in result]
        )
    raise TypeError(f"Cannot encode handler result of type {type(result).__name__}")


@dataclass(frozen=True, slots=True)
class InvocationResult:
    """Outcome of one successful invocation."""

    tx_id: str
    function: str
    payload: str

    def decoded(self) -> Any:
        """The payload as Python data (None for an empty payload)."""
        return json.loads(self.payload) if self.payload else None


class TransactionDispatcher:
    """Routes named invocations to a CarContract.

    Example:
        dispatcher = TransactionDispatcher(contract, journal=InvocationJournal())
        dispatcher.submit("InitLedger")
        dispatcher.submit("ChangeOwner", "car5", "person1", "true")
        cars = dispatcher.evaluate("QueryCarsByOwner", "person1").decoded()
    """

    def __init__(
        self,
        contract: CarContract,
        journal: InvocationJournal | None = None,
    ) -> None:
        self.contract = contract
        self.journal = journal

    def functions(self) -> list[str]:
        return list(TRANSACTIONS)

    def _lookup(self, name: str) -> TransactionSpec:
        spec = TRANSACTIONS.get(name)
        if spec is None:
            raise UnknownTransactionError(f"Unknown transaction: {name}")
        return spec

    def _decode_args(self, spec: TransactionSpec, args: Sequence[str]) -> list[Any]:
        if len(args) != spec.arity:
            raise InvalidOperationError(
                f"{spec.name} expects {spec.arity} argument(s), got {len(args)}"
            )
        decoded = []
        for (param, decode), raw in zip(spec.params, args):
            if not isinstance(raw, str):
                raise InvalidOperationError(f"{spec.name}: {param} must be a string")
            decoded.append(decode(raw))
        return decoded

    def _invoke(self, spec: TransactionSpec, args: Sequence[str]) -> str:
        handler = getattr(self.contract, spec.method)
        with self.contract.store.transaction():
            return encode_result(handler(*self._decode_args(spec, args)))

    def evaluate(self, name: str, *args: str) -> InvocationResult:
        """Run a query transaction. Nothing is written or journaled."""
        spec = self._lookup(name)
        if not spec.read_only:
            raise InvalidOperationError(f"{name} modifies the ledger; submit it instead")

        tx_id = uuid.uuid4().hex
        with structlog.contextvars.bound_contextvars(tx_id=tx_id, function=name):
            payload = self._invoke(spec, args)
        return InvocationResult(tx_id=tx_id, function=name, payload=payload)

    def submit(self, name: str, *args: str) -> InvocationResult:
        """Run any transaction atomically and record the outcome.

        Raises:
            LedgerError: the handler's failure, unchanged
        """
        tx_id = uuid.uuid4().hex
        start = time.perf_counter()

        with structlog.contextvars.bound_contextvars(tx_id=tx_id, function=name):
            try:
                payload = self._invoke(self._lookup(name), args)
            except LedgerError as e:
                self._record(tx_id, name, args, start, error_code=e.code, error=str(e))
                logger.warning("transaction_failed", error_code=e.code, error=str(e))
                raise
            except Exception as e:
                self._record(tx_id, name, args, start, error_code="internal_error", error=str(e))
                logger.exception("transaction_crashed")
                raise

            self._record(tx_id, name, args, start)
            logger.info("transaction_committed")

        return InvocationResult(tx_id=tx_id, function=name, payload=payload)

    def _record(
        self,
        tx_id: str,
        name: str,
        args: Sequence[str],
        start: float,
        error_code: str | None = None,
        error: str | None = None,
    ) -> None:
        if self.journal is None:
            return
        self.journal.record(
            tx_id=tx_id,
            function=name,
            args=list(args),
            error_code=error_code,
            error=error,
            latency_ms=(time.perf_counter() - start) * 1000,
        )


__all__ = [
    "TransactionDispatcher",
    "InvocationResult",
    "TransactionSpec",
    "TRANSACTIONS",
    "encode_result",
    "parse_bool",
]
