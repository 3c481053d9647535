"""FastAPI router for the car ledger gateway.

Every route maps onto exactly one named transaction; no business rules
live here. Query routes evaluate, mutating routes submit:
- Queries (/cars/*, /persons/*)
- Mutations (/cars/ownership, /cars/color, /cars/malfunction, /cars/repair)
- Generic invocation (/transactions/{name})
- Journal (/journal/*)
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from fastapi import APIRouter, HTTPException, Query, Response, status

from .models import ErrorResponse, InvocationRequest, InvocationResponse, JournalEntryModel

if TYPE_CHECKING:
    from ..contract.dispatch import InvocationResult, TransactionDispatcher


def _json(result: InvocationResult) -> Response:
    return Response(content=result.payload or "null", media_type="application/json")


def _submitted(result: InvocationResult) -> InvocationResponse:
    return InvocationResponse(
        tx_id=result.tx_id,
        function=result.function,
        result=result.decoded(),
    )


def build_router(dispatcher: TransactionDispatcher) -> APIRouter:
    """Build the gateway router around a dispatcher."""
    router = APIRouter(
        responses={
            status.HTTP_404_NOT_FOUND: {"model": ErrorResponse},
            status.HTTP_409_CONFLICT: {"model": ErrorResponse},
            status.HTTP_503_SERVICE_UNAVAILABLE: {"model": ErrorResponse},
        }
    )

    # -----------------------------------------------------------------------
    # Ledger
    # -----------------------------------------------------------------------

    @router.post("/ledger/init", response_model=InvocationResponse)
    def init_ledger() -> InvocationResponse:
        """Seed the ledger with the genesis cars and persons."""
        return _submitted(dispatcher.submit("InitLedger"))

    # -----------------------------------------------------------------------
    # Queries
    # -----------------------------------------------------------------------

    @router.get("/cars")
    def get_all_cars() -> Response:
        return _json(dispatcher.evaluate("QueryAllCars"))

    @router.get("/cars/color/{color}")
    def get_cars_by_color(color: str) -> Response:
        return _json(dispatcher.evaluate("QueryCarsByColor", color))

    @router.get("/cars/owner/{owner}")
    def get_cars_by_owner(owner: str) -> Response:
        return _json(dispatcher.evaluate("QueryCarsByOwner", owner))

    @router.get("/cars/{car_id}")
    def get_car(car_id: str) -> Response:
        return _json(dispatcher.evaluate("QueryCar", car_id))

    @router.get("/cars/{color}/{owner}")
    def get_cars_by_color_and_owner(color: str, owner: str) -> Response:
        return _json(dispatcher.evaluate("QueryCarsByColorAndOwner", color, owner))

    @router.get("/persons/{person_id}")
    def get_person(person_id: str) -> Response:
        return _json(dispatcher.evaluate("QueryPerson", person_id))

    # -----------------------------------------------------------------------
    # Mutations
    # -----------------------------------------------------------------------

    @router.post("/cars/ownership/{car}/{owner}/{flag}", response_model=InvocationResponse)
    def transfer_car_ownership(car: str, owner: str, flag: str) -> InvocationResponse:
        """Sell ``car`` to ``owner``; ``flag`` (yes/no) accepts malfunctions."""
        return _submitted(dispatcher.submit("ChangeOwner", car, owner, flag))

    @router.post("/cars/color/{car}/{color}", response_model=InvocationResponse)
    def change_car_color(car: str, color: str) -> InvocationResponse:
        return _submitted(dispatcher.submit("ChangeCarColour", car, color))

    @router.post(
        "/cars/malfunction/{car}/{description}/{repair_price}",
        response_model=InvocationResponse,
    )
    def add_car_malfunction(car: str, description: str, repair_price: str) -> InvocationResponse:
        return _submitted(dispatcher.submit("AddMalfunction", car, description, repair_price))

    @router.post("/cars/repair/{car}", response_model=InvocationResponse)
    def repair_car(car: str) -> InvocationResponse:
        return _submitted(dispatcher.submit("RepairCar", car))

    # -----------------------------------------------------------------------
    # Generic invocation
    # -----------------------------------------------------------------------

    @router.get("/transactions")
    def list_transactions() -> dict[str, Any]:
        return {"functions": dispatcher.functions()}

    @router.post("/transactions/{name}", response_model=InvocationResponse)
    def submit_transaction(name: str, request: InvocationRequest) -> InvocationResponse:
        """Submit any named transaction with positional string arguments."""
        return _submitted(dispatcher.submit(name, *request.args))

    # -----------------------------------------------------------------------
    # Journal
    # -----------------------------------------------------------------------

    def _journal():
        if dispatcher.journal is None:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Invocation journal is disabled",
            )
        return dispatcher.journal

    @router.get("/journal/recent")
    def journal_recent(n: int = Query(default=10, ge=1, le=1000)) -> list[JournalEntryModel]:
        return [JournalEntryModel(**entry.to_dict()) for entry in _journal().recent(n)]

    @router.get("/journal/stats")
    def journal_stats() -> dict[str, Any]:
        return _journal().stats()

    return router


__all__ = ["build_router"]
