"""Rental price computation shared by booking creation and quotes."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from decimal import ROUND_HALF_UP, Decimal

from ..core.config import settings
from ..core.constants import MONEY_QUANT

_CENT = Decimal(MONEY_QUANT)


def _money(value: Decimal) -> Decimal:
    return value.quantize(_CENT, rounding=ROUND_HALF_UP)


@dataclass(frozen=True)
class RentalQuote:
    days: int
    daily_price: Decimal
    subtotal: Decimal
    service_fee: Decimal
    total_price: Decimal
    deposit: Decimal

    @property
    def amount_paid(self) -> Decimal:
        return self.total_price + self.deposit


def rental_days(start_date: date, end_date: date) -> int:
    """Number of billed days; a same-day rental is billed as one day."""
    return max(1, (end_date - start_date).days)


def quote_rental(
    daily_price: Decimal,
    start_date: date,
    end_date: date,
    deposit: Decimal = Decimal("0"),
) -> RentalQuote:
    """
    Price a rental.

    The service fee is a flat rate over the daily-rate subtotal; the deposit
    is charged on top and is not part of ``total_price``.
    """
    days = rental_days(start_date, end_date)
    daily = _money(Decimal(daily_price))
    subtotal = _money(daily * days)
    fee = _money(subtotal * Decimal(settings.service_fee_rate))
    return RentalQuote(
        days=days,
        daily_price=daily,
        subtotal=subtotal,
        service_fee=fee,
        total_price=subtotal + fee,
        deposit=_money(Decimal(deposit)),
    )
