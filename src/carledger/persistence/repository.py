"""Entity Repository - Car and Person records in the world state.

Records are stored as JSON under their Id with a ``docType`` marker so a
range scan over primary keys can tell cars from persons.
"""

from __future__ import annotations

import json
from collections.abc import Iterator
from typing import Any, TypeVar

from pydantic import ValidationError

from ..errors import NotFoundError, SerializationError
from ..models import Car, Person
from .keys import is_composite_key
from .store import LedgerStore

DOC_TYPE_FIELD = "docType"
CAR_DOC_TYPE = "car"
PERSON_DOC_TYPE = "person"

RecordT = TypeVar("RecordT", Car, Person)


def encode_record(record: Car | Person, doc_type: str) -> bytes:
    """Serialize a record, nested malfunctions included."""
    data = record.to_wire()
    data[DOC_TYPE_FIELD] = doc_type
    return json.dumps(data, separators=(",", ":")).encode("utf-8")


def _load_json(key: str, raw: bytes) -> dict[str, Any]:
    try:
        data = json.loads(raw)
    except (UnicodeDecodeError, json.JSONDecodeError) as e:
        raise SerializationError(f"Failed to decode record {key}: {e}", key=key) from e
    if not isinstance(data, dict):
        raise SerializationError(f"Record {key} is not a JSON object", key=key)
    return data


def _validate(model: type[RecordT], key: str, data: dict[str, Any]) -> RecordT:
    try:
        return model.model_validate(data)
    except ValidationError as e:
        raise SerializationError(
            f"Record {key} is not a valid {model.__name__}: {e.error_count()} error(s)",
            key=key,
        ) from e


class EntityRepository:
    """Reads and writes Car and Person records through a LedgerStore.

    Reads raise NotFoundError for absent keys and SerializationError for
    bytes that do not decode. Writes overwrite unconditionally.
    """

    def __init__(self, store: LedgerStore) -> None:
        self._store = store

    def _read(self, model: type[RecordT], doc_type: str, record_id: str) -> RecordT:
        # Index entries and the empty key never hold a record
        if not record_id or is_composite_key(record_id):
            raise NotFoundError(f"{record_id!r} does not exist", key=record_id)

        raw = self._store.get(record_id)
        if raw is None:
            raise NotFoundError(f"{record_id} does not exist", key=record_id)

        data = _load_json(record_id, raw)
        stored_type = data.pop(DOC_TYPE_FIELD, doc_type)
        if stored_type != doc_type:
            raise NotFoundError(
                f"{record_id} does not exist as a {model.__name__.lower()}", key=record_id
            )
        return _validate(model, record_id, data)

    def get_car(self, car_id: str) -> Car:
        return self._read(Car, CAR_DOC_TYPE, car_id)

    def put_car(self, car: Car) -> None:
        self._store.put(car.id, encode_record(car, CAR_DOC_TYPE))

    def delete_car(self, car_id: str) -> None:
        self._store.delete(car_id)

    def get_person(self, person_id: str) -> Person:
        return self._read(Person, PERSON_DOC_TYPE, person_id)

    def put_person(self, person: Person) -> None:
        self._store.put(person.id, encode_record(person, PERSON_DOC_TYPE))

    def iter_cars(self) -> Iterator[Car]:
        """Decode every car record in key order.

        Person records are skipped; anything else must decode as a Car.
        """
        for key, raw in self._store.scan_range("", ""):
            data = _load_json(key, raw)
            if data.pop(DOC_TYPE_FIELD, CAR_DOC_TYPE) == PERSON_DOC_TYPE:
                continue
            yield _validate(Car, key, data)


__all__ = ["EntityRepository", "encode_record", "DOC_TYPE_FIELD"]
