"""Validation of user-supplied holdings payloads."""

from __future__ import annotations

import math
import re
from dataclasses import dataclass
from typing import Any

from portfolio_server.portfolio.metrics import UNCLASSIFIED_SECTOR, create_holding
from portfolio_server.portfolio.models import Holding

SYMBOL_PATTERN = re.compile(r"^[A-Z0-9][A-Z0-9.&\-]{0,19}$")


@dataclass
class ValidationIssue:
    field: str
    message: str
    row: int | None = None
    code: str = "invalid_value"

    def to_dict(self) -> dict[str, Any]:
        return {"field": self.field, "message": self.message, "row": self.row, "code": self.code}


class InvalidInput(ValueError):
    def __init__(self, message: str, issues: list[ValidationIssue] | None = None) -> None:
        self.issues = list(issues or [])
        super().__init__(message)


def _number(value: object) -> float | None:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    number = float(value)
    return number if math.isfinite(number) else None


def _optional_positive(item: dict[str, Any], key: str) -> float | None:
    number = _number(item.get(key))
    return number if number is not None and number > 0 else None


def validate_symbol(symbol: object) -> str:
    clean = str(symbol or "").strip().upper()
    if not SYMBOL_PATTERN.match(clean):
        raise ValueError("Symbol must be 1-20 chars: A-Z, 0-9, dot, ampersand, hyphen.")
    return clean


def _first(item: dict[str, Any], *keys: str) -> object:
    for key in keys:
        if key in item and item[key] is not None:
            return item[key]
    return None


def parse_holdings(payload: object) -> list[Holding]:
    """Turn a JSON array of holdings into validated ``Holding`` values.

    Accepts camelCase keys as served by ``GET /portfolio``. ``qty``, ``nseCode``
    and ``cmp`` are also recognised.
    """
    if not isinstance(payload, list):
        raise InvalidInput("Holdings payload must be a JSON array.")

    issues: list[ValidationIssue] = []
    holdings: list[Holding] = []
    for index, item in enumerate(payload):
        if not isinstance(item, dict):
            issues.append(ValidationIssue(field="holding", row=index, code="invalid_item", message="Each holding must be an object."))
            continue
        row_issues: list[ValidationIssue] = []
        try:
            symbol = validate_symbol(_first(item, "symbol", "nseCode"))
        except ValueError as error:
            row_issues.append(ValidationIssue(field="symbol", row=index, code="invalid_symbol", message=str(error)))
            symbol = ""

        quantity = _number(_first(item, "quantity", "qty"))
        if quantity is None or quantity <= 0:
            row_issues.append(
                ValidationIssue(field="quantity", row=index, code="invalid_quantity", message="Quantity must be a positive number.")
            )
        purchase_price = _number(item.get("purchasePrice"))
        if purchase_price is None or purchase_price < 0:
            row_issues.append(
                ValidationIssue(
                    field="purchasePrice",
                    row=index,
                    code="invalid_purchase_price",
                    message="purchasePrice must be a non-negative number.",
                )
            )
        current_price = _number(_first(item, "currentPrice", "cmp"))
        if current_price is not None and current_price < 0:
            row_issues.append(
                ValidationIssue(field="currentPrice", row=index, code="invalid_current_price", message="currentPrice must not be negative.")
            )
        if row_issues:
            issues.extend(row_issues)
            continue

        identifier = item.get("id")
        holdings.append(
            create_holding(
                id=int(identifier) if isinstance(identifier, int) and not isinstance(identifier, bool) else index + 1,
                particulars=str(item.get("particulars") or symbol),
                symbol=symbol,
                purchase_price=purchase_price,
                quantity=quantity,
                sector=str(item.get("sector") or UNCLASSIFIED_SECTOR),
                current_price=current_price,
                pe_ratio=_optional_positive(item, "peRatio"),
                latest_earnings=_optional_positive(item, "latestEarnings"),
                market_cap=_optional_positive(item, "marketCap"),
            )
        )

    if issues:
        raise InvalidInput(f"{len(issues)} invalid holding field(s).", issues)
    return holdings
