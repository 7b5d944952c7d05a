"""Rental workflow guard."""

from .guard import RentalGuard, RENTAL_SETTLE_DELAY

__all__ = ["RentalGuard", "RENTAL_SETTLE_DELAY"]
