"""LedgerTransaction - read-only view of a host ledger row"""
from dataclasses import dataclass
from datetime import date
from decimal import Decimal


@dataclass(frozen=True)
class LedgerTransaction:
    id: str
    owner_id: str
    property_id: str | None
    date: date
    amount: Decimal  # signed: expenses are negative
    category: str
    description: str = ""
    transaction_type: str | None = None

    @property
    def magnitude(self) -> Decimal:
        return abs(Decimal(self.amount))
