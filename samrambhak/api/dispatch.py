"""
Action dispatch - every handler is one POST endpoint keyed by `action`.

Each route module builds a table of action name -> function and hands the
request body to `dispatch`, which rejects anything not in the table.
"""

from enum import Enum
from typing import Callable, Dict

from fastapi import HTTPException
from sqlalchemy import text

from samrambhak.schemas.schemas import ActionRequest
from samrambhak.utils.dates import utcnow


def dispatch(actions: Dict[str, Callable], body: ActionRequest, *args):
    handler = actions.get(body.action)
    if handler is None:
        raise HTTPException(status_code=400, detail="Invalid action")
    return handler(body, *args)


def require_field(value, message: str):
    """400 when a required field is missing or blank; returns the value (stripped if text)."""
    if isinstance(value, str):
        value = value.strip()
    if value is None or value == "":
        raise HTTPException(status_code=400, detail=message)
    return value


def clean_text(value):
    """Trim optional text; blank becomes None."""
    if value is None:
        return None
    value = value.strip()
    return value or None


def collect_updates(data, fields) -> dict:
    """Only provided fields are updated (None means "not sent")."""
    values = {}
    for field in fields:
        value = getattr(data, field)
        if value is not None:
            values[field] = value.value if isinstance(value, Enum) else value
    return values


def update_row(db, table: str, key_column: str, key: int, values: dict) -> None:
    """UPDATE one row from a whitelisted column -> value dict, bumping updated_at."""
    assignments = ", ".join(f"{column} = :{column}" for column in values)
    params = dict(values, row_key=key, now=utcnow())
    db.execute(
        text(f"UPDATE {table} SET {assignments}, updated_at = :now WHERE {key_column} = :row_key"),
        params
    )
