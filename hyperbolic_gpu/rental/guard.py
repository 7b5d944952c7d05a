"""Rental workflow guard.

Checks a node's live GPU capacity before submitting a rental, and
provides the fixed settle delay applied after creation.
"""

import asyncio
import logging
from typing import Awaitable, Callable

from hyperbolic_gpu.client.models import RentalCandidate
from hyperbolic_gpu.ssh.outcome import Outcome
from hyperbolic_gpu.utils.errors import (
    CandidateNotFoundError,
    InsufficientCapacityError,
    InvalidRentalRequestError,
    MarketplaceError,
)

logger = logging.getLogger(__name__)

# Provisioning lag on the remote side before the instance accepts SSH.
RENTAL_SETTLE_DELAY = 15.0  # seconds


class RentalGuard:
    """Validate-then-create wrapper around the marketplace client.

    Usage:
        guard = RentalGuard(client)
        outcome = await guard.rent("extrasmall-chamomile-duck", "node-01", 2)
        if outcome.ok:
            await guard.settle()
    """

    def __init__(
        self,
        client,
        settle_delay: float = RENTAL_SETTLE_DELAY,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        """Initialize the guard.

        Args:
            client: Object with list_candidates() and create_instance()
                (normally HyperbolicClient)
            settle_delay: Seconds to wait after a successful rental
            sleep: Sleep coroutine (replaceable in tests)
        """
        self.client = client
        self.settle_delay = settle_delay
        self._sleep = sleep

    async def validate(
        self,
        cluster_name: str,
        node_name: str,
        gpu_count: int,
    ) -> RentalCandidate:
        """Check the live listing has room for the request.

        Raises:
            CandidateNotFoundError: No node with that cluster and node name
            InsufficientCapacityError: Fewer free GPUs than requested
            InvalidRentalRequestError: gpu_count below 1
        """
        if gpu_count < 1:
            raise InvalidRentalRequestError(
                f"GPU count must be at least 1, got {gpu_count}"
            )

        candidates = await self.client.list_candidates()

        candidate = next(
            (
                c
                for c in candidates
                if c.cluster_name == cluster_name and c.id == node_name
            ),
            None,
        )
        if candidate is None:
            raise CandidateNotFoundError(cluster_name, node_name)

        available = candidate.available_gpus
        if gpu_count > available:
            raise InsufficientCapacityError(gpu_count, available)

        return candidate

    async def rent(
        self,
        cluster_name: str,
        node_name: str,
        gpu_count: int,
    ) -> Outcome:
        """Validate capacity, then create the rental.

        Returns:
            Outcome with the CreateRentalResponse as data on success
        """
        try:
            await self.validate(cluster_name, node_name, gpu_count)
            logger.info(
                f"Renting {gpu_count} GPU(s) on {node_name} ({cluster_name})"
            )
            response = await self.client.create_instance(
                cluster_name, node_name, gpu_count
            )
        except MarketplaceError as e:
            logger.error(f"Rental failed: {e}")
            return Outcome.from_error(e)

        return Outcome.success("Successfully rented GPU instance!", data=response)

    async def settle(self) -> None:
        """Wait out provisioning lag before reporting the rental connectable.

        Unconditional: no readiness probe is made.
        """
        logger.info(f"Waiting {self.settle_delay:g}s for the instance to settle")
        await self._sleep(self.settle_delay)
