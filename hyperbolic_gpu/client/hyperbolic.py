"""REST client for the Hyperbolic GPU marketplace API.

Implements the endpoints used by this project:
- POST /marketplace - list marketplace nodes
- POST /marketplace/instances/create - rent GPUs on a node
- GET /marketplace/instances - list the caller's rented instances
- POST /marketplace/instances/terminate - release a rented instance
"""

import logging
from typing import Any, Dict, List, Optional

import httpx
from pydantic import BaseModel, ValidationError

from hyperbolic_gpu import __version__
from hyperbolic_gpu.utils.errors import (
    AuthenticationError,
    ConfigError,
    InvalidRentalRequestError,
    MarketplaceAPIError,
    RateLimitError,
)
from .models import (
    CreateRentalRequest,
    CreateRentalResponse,
    RentalCandidate,
    RentedInstance,
)

logger = logging.getLogger(__name__)

HYPERBOLIC_API_BASE = "https://api.hyperbolic.xyz/v1"

DEFAULT_CONNECT_TIMEOUT = 10.0
DEFAULT_REQUEST_TIMEOUT = 30.0


class HyperbolicClient:
    """REST client for the Hyperbolic marketplace.

    Usage:
        async with HyperbolicClient(api_token) as client:
            nodes = await client.list_available()
            response = await client.create_instance(
                nodes[0].cluster_name, nodes[0].id, gpu_count=1
            )
    """

    def __init__(
        self,
        api_token: str,
        base_url: str = HYPERBOLIC_API_BASE,
        timeout: float = DEFAULT_REQUEST_TIMEOUT,
        debug: bool = False,
    ):
        """Initialize the client.

        Args:
            api_token: Hyperbolic API token (sent as a bearer token)
            base_url: API base URL
            timeout: Request timeout in seconds
            debug: Enable verbose request/response logging
        """
        if not api_token:
            raise ConfigError("HYPERBOLIC_API_TOKEN environment variable is not set")

        self.api_token = api_token
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.debug = debug
        self._client: Optional[httpx.AsyncClient] = None

    async def __aenter__(self) -> "HyperbolicClient":
        self._client = httpx.AsyncClient(
            base_url=self.base_url,
            timeout=httpx.Timeout(self.timeout, connect=DEFAULT_CONNECT_TIMEOUT),
            headers={
                "Authorization": f"Bearer {self.api_token}",
                "Content-Type": "application/json",
                "Accept": "application/json",
                "User-Agent": f"hyperbolic-gpu/{__version__}",
            },
        )
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    async def close(self) -> None:
        """Explicitly close the client (for non-context-manager usage)."""
        if self._client:
            await self._client.aclose()
            self._client = None

    @property
    def client(self) -> httpx.AsyncClient:
        if not self._client:
            raise RuntimeError("Client not initialized. Use 'async with' context.")
        return self._client

    async def _request(self, method: str, path: str, **kwargs) -> httpx.Response:
        """Make HTTP request with error handling."""
        if self.debug:
            logger.info(f"Request: {method} {path}")
            if kwargs.get("json") is not None:
                logger.info(f"Body: {kwargs['json']}")

        try:
            response = await self.client.request(method, path, **kwargs)
        except httpx.TimeoutException as e:
            raise MarketplaceAPIError(f"Request timeout: {method} {path}") from e
        except httpx.ConnectError as e:
            raise MarketplaceAPIError(f"Connection failed: {self.base_url}") from e
        except httpx.RequestError as e:
            raise MarketplaceAPIError(f"Request error: {e}") from e

        if self.debug:
            logger.info(f"Response: {response.status_code} {response.text[:500]}")

        if not response.is_success:
            self._handle_error(response)

        return response

    def _handle_error(self, response: httpx.Response):
        """Raise the error matching an unsuccessful response."""
        message = f"Hyperbolic API error ({response.status_code}): {response.text}"
        logger.error(message)

        if response.status_code in (401, 403):
            raise AuthenticationError(message, status_code=response.status_code)

        if response.status_code == 429:
            retry_after = response.headers.get("Retry-After")
            retry_after_int = None
            if retry_after:
                try:
                    retry_after_int = int(retry_after)
                except ValueError:
                    logger.warning(f"Invalid Retry-After header: {retry_after}")
            raise RateLimitError(message=message, retry_after=retry_after_int)

        raise MarketplaceAPIError(message, status_code=response.status_code)

    @staticmethod
    def _parse(model: type, data: Any) -> BaseModel:
        try:
            return model.model_validate(data)
        except ValidationError as e:
            raise MarketplaceAPIError(
                f"Invalid response format from Hyperbolic API: {e.error_count()} "
                f"invalid field(s) in {model.__name__}"
            ) from e

    @staticmethod
    def _json(response: httpx.Response) -> Any:
        try:
            return response.json()
        except ValueError as e:
            raise MarketplaceAPIError(
                "Invalid response format from Hyperbolic API",
                status_code=response.status_code,
            ) from e

    # Marketplace

    async def list_candidates(
        self,
        filters: Optional[Dict[str, Any]] = None,
    ) -> List[RentalCandidate]:
        """List every marketplace node (POST /marketplace).

        Args:
            filters: Filters passed through to the API unchanged

        Returns:
            All nodes, including busy and fully reserved ones
        """
        response = await self._request(
            "POST", "/marketplace", json={"filters": filters or {}}
        )
        data = self._json(response)

        instances = data.get("instances") if isinstance(data, dict) else None
        if not isinstance(instances, list):
            raise MarketplaceAPIError("Invalid response format from Hyperbolic API")

        return [self._parse(RentalCandidate, node) for node in instances]

    async def list_available(
        self,
        filters: Optional[Dict[str, Any]] = None,
    ) -> List[RentalCandidate]:
        """List nodes that are ready and have at least one free GPU."""
        nodes = await self.list_candidates(filters)
        return [n for n in nodes if n.is_ready and n.available_gpus > 0]

    async def get_cluster(self, cluster_name: str) -> Optional[RentalCandidate]:
        """Find the node belonging to ``cluster_name``, or None."""
        for node in await self.list_candidates():
            if node.cluster_name == cluster_name:
                return node
        return None

    # Instances

    async def create_instance(
        self,
        cluster_name: str,
        node_name: str,
        gpu_count: int,
    ) -> CreateRentalResponse:
        """Rent GPUs on a node (POST /marketplace/instances/create).

        Callers should go through RentalGuard, which checks capacity first.
        """
        if gpu_count < 1:
            raise InvalidRentalRequestError(
                f"GPU count must be at least 1, got {gpu_count}"
            )
        request = CreateRentalRequest(
            cluster_name=cluster_name,
            node_name=node_name,
            gpu_count=gpu_count,
        )
        response = await self._request(
            "POST", "/marketplace/instances/create", json=request.model_dump()
        )
        data = self._json(response)
        if not isinstance(data, dict):
            data = {"result": data}
        return self._parse(CreateRentalResponse, data)

    async def list_instances(self) -> List[RentedInstance]:
        """List the caller's rented instances (GET /marketplace/instances)."""
        response = await self._request("GET", "/marketplace/instances")
        data = self._json(response)
        instances = data.get("instances", []) if isinstance(data, dict) else data
        if instances is None:
            instances = []
        if not isinstance(instances, list):
            raise MarketplaceAPIError("Invalid response format from Hyperbolic API")
        return [self._parse(RentedInstance, i) for i in instances]

    async def terminate_instance(self, instance_id: str) -> Dict[str, Any]:
        """Release a rented instance (POST /marketplace/instances/terminate)."""
        if not instance_id:
            raise ValueError("instance_id cannot be empty")
        response = await self._request(
            "POST", "/marketplace/instances/terminate", json={"id": instance_id}
        )
        data = self._json(response)
        return data if isinstance(data, dict) else {"result": data}
