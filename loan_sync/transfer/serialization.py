"""Wire serialization of loan records.

The wire format is the JSON shape used by existing exports: camelCase keys,
``installments`` holding the count, ``installmentsList`` holding the
schedule, dates as ``YYYY-MM-DD`` and money as JSON numbers.
"""

import re
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Any

from loan_sync.exceptions import InvalidRecordError, ParseError
from loan_sync.models import Installment, LoanRecord, LoanStatus


def serialize_value(value: Any) -> Any:
    """Serialize a value for JSON output."""
    if isinstance(value, Decimal):
        # Integral amounts stay integers on the wire
        return int(value) if value == value.to_integral_value() else float(value)
    elif isinstance(value, Enum):
        return value.value
    elif isinstance(value, datetime):
        return value.isoformat()
    elif isinstance(value, date):
        return value.isoformat()
    elif isinstance(value, dict):
        return {k: serialize_value(v) for k, v in value.items()}
    elif isinstance(value, list):
        return [serialize_value(v) for v in value]
    return value


def installment_to_dict(installment: Installment) -> dict[str, Any]:
    return {
        "number": installment.number,
        "dueDate": serialize_value(installment.due_date),
        "value": serialize_value(installment.value),
        "isPaid": installment.is_paid,
    }


def record_to_dict(record: LoanRecord) -> dict[str, Any]:
    """Convert a record to its wire dictionary."""
    return {
        "id": record.id,
        "name": record.name,
        "phone": record.phone,
        "principal": serialize_value(record.principal),
        "installments": record.installments_count,
        "interestRate": serialize_value(record.interest_rate),
        "startDate": serialize_value(record.start_date),
        "status": serialize_value(record.status),
        "installmentsList": [installment_to_dict(inst) for inst in record.installments],
        "annotation": record.annotation,
        "observation": record.observation,
        "isDeleted": record.is_deleted,
        "lastUpdated": record.last_updated,
    }


def _decimal(value: Any, name: str) -> Decimal:
    if isinstance(value, bool) or value is None:
        raise ParseError(f"Field {name!r} is not a number: {value!r}")
    try:
        result = Decimal(str(value))
    except InvalidOperation as e:
        raise ParseError(f"Field {name!r} is not a number: {value!r}") from e
    if not result.is_finite():
        raise ParseError(f"Field {name!r} is not finite: {value!r}")
    return result


def _int(value: Any, name: str) -> int:
    if isinstance(value, bool):
        raise ParseError(f"Field {name!r} is not an integer: {value!r}")
    if isinstance(value, int):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    if isinstance(value, str) and re.fullmatch(r"\s*-?\d+\s*", value):
        return int(value)
    raise ParseError(f"Field {name!r} is not an integer: {value!r}")


def _bool(value: Any, name: str) -> bool:
    if value is None:
        return False
    if not isinstance(value, bool):
        raise ParseError(f"Field {name!r} is not a boolean: {value!r}")
    return value


def _date(value: Any, name: str) -> date:
    if not isinstance(value, str):
        raise ParseError(f"Field {name!r} is not a date: {value!r}")
    try:
        # Only the calendar part counts; "2024-01-15T00:00:00.000Z" is accepted
        return date.fromisoformat(value[:10])
    except ValueError as e:
        raise ParseError(f"Field {name!r} is not a date: {value!r}") from e


def _text(value: Any) -> str:
    return "" if value is None else str(value)


def installment_from_dict(data: Any) -> Installment:
    if not isinstance(data, dict):
        raise ParseError(f"Installment entry is not an object: {data!r}")
    try:
        return Installment(
            number=_int(data["number"], "number"),
            due_date=_date(data["dueDate"], "dueDate"),
            value=_decimal(data["value"], "value"),
            is_paid=_bool(data.get("isPaid"), "isPaid"),
        )
    except KeyError as e:
        raise ParseError(f"Installment entry is missing {e.args[0]!r}") from e


def record_from_dict(data: Any) -> LoanRecord:
    """Build a validated record from its wire dictionary.

    Raises
    ------
    ParseError
        If the entry is not a valid record.
    """
    if not isinstance(data, dict):
        raise ParseError(f"Record entry is not an object: {data!r}")

    record_id = data.get("id")
    if not record_id or not isinstance(record_id, str):
        raise ParseError(f"Record entry is missing an id: {data!r}")

    count_value = data.get("installments", data.get("installmentsCount"))
    schedule = data.get("installmentsList", [])
    if not isinstance(schedule, list):
        raise ParseError(f"Record {record_id}: installmentsList is not an array")

    try:
        status = LoanStatus(data.get("status", LoanStatus.ACTIVE.value))
    except ValueError as e:
        raise ParseError(f"Record {record_id}: unknown status {data.get('status')!r}") from e

    try:
        record = LoanRecord(
            id=record_id,
            name=_text(data.get("name")),
            phone=_text(data.get("phone")),
            principal=_decimal(data.get("principal"), "principal"),
            installments_count=_int(count_value, "installments"),
            interest_rate=_decimal(data.get("interestRate", 0), "interestRate"),
            start_date=_date(data.get("startDate"), "startDate"),
            installments=[installment_from_dict(entry) for entry in schedule],
            status=status,
            annotation=_text(data.get("annotation")),
            observation=_text(data.get("observation")),
            is_deleted=_bool(data.get("isDeleted"), "isDeleted"),
            last_updated=_int(data.get("lastUpdated") or 0, "lastUpdated"),
        )
        record.validate()
    except InvalidRecordError as e:
        raise ParseError(str(e)) from e
    return record


def records_from_list(data: Any) -> list[LoanRecord]:
    """Convert a decoded JSON array into records, all or nothing."""
    if not isinstance(data, list):
        raise ParseError(f"Expected a JSON array of records, got {type(data).__name__}")
    return [record_from_dict(entry) for entry in data]
