"""Error types raised by the ijcalc engine."""

from __future__ import annotations


class InvalidClaimError(ValueError):
    """Raised when a claim, a stoppage period or a rate table is malformed.

    The engine never coerces bad input: missing or unparseable dates, a
    period ending before it starts, an empty period list or an unknown
    benefit class all abort the computation with this error.
    """

    def __init__(self, message: str, *, field: str | None = None) -> None:
        super().__init__(message)
        self.field = field

    def __str__(self) -> str:
        base = super().__str__()
        if self.field:
            return f"{self.field}: {base}"
        return base
