"""Request models for ledger endpoints."""

from typing import Any

from pydantic import BaseModel


class FoodLogRequest(BaseModel):
    """Payload for logging a food entry.

    Fields accept any JSON value; meal names, dates and the entry itself are
    validated by the ledger service so malformed input gets a 400.
    """

    meal: Any = None
    date: Any = None
    log: Any = None
