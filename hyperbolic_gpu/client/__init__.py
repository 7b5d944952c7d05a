"""Hyperbolic marketplace REST client."""

from .hyperbolic import HyperbolicClient, HYPERBOLIC_API_BASE
from .models import (
    RentalCandidate,
    NodeInstance,
    Hardware,
    CreateRentalRequest,
    CreateRentalResponse,
    RentedInstance,
)

__all__ = [
    "HyperbolicClient",
    "HYPERBOLIC_API_BASE",
    "RentalCandidate",
    "NodeInstance",
    "Hardware",
    "CreateRentalRequest",
    "CreateRentalResponse",
    "RentedInstance",
]
