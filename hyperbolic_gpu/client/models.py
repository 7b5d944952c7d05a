"""Pydantic models for Hyperbolic marketplace API types.

Based on the payloads of:
- POST /v1/marketplace - marketplace node listing
- POST /v1/marketplace/instances/create - rental creation
- GET /v1/marketplace/instances - the caller's rented instances
"""

import shlex
from typing import Any, Dict, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, field_validator

NODE_READY = "node_ready"

_SSH_OPTIONS_WITH_ARG = {"-i", "-o", "-l", "-J", "-F", "-L", "-R"}


class GPUSpec(BaseModel):
    """One GPU on a marketplace node."""

    model_config = ConfigDict(extra="allow")

    model: Optional[str] = Field(None, description="GPU model name")
    ram: Optional[float] = Field(None, description="VRAM in MB")


class CPUSpec(BaseModel):
    """CPU on a marketplace node."""

    model_config = ConfigDict(extra="allow")

    model: Optional[str] = None
    virtual_cores: Optional[int] = None


class CapacitySpec(BaseModel):
    """RAM or storage entry; capacity units are as reported by the API."""

    model_config = ConfigDict(extra="allow")

    capacity: Optional[float] = None


class Hardware(BaseModel):
    """Hardware inventory of a marketplace node."""

    model_config = ConfigDict(extra="allow")

    gpus: List[GPUSpec] = Field(default_factory=list)
    cpus: List[CPUSpec] = Field(default_factory=list)
    ram: List[CapacitySpec] = Field(default_factory=list)
    storage: List[CapacitySpec] = Field(default_factory=list)

    @field_validator("gpus", "cpus", "ram", "storage", mode="before")
    @classmethod
    def _none_to_empty(cls, value):
        return [] if value is None else value


class Price(BaseModel):
    model_config = ConfigDict(extra="allow")

    amount: float = Field(0, description="Price in cents")
    period: Optional[str] = Field(None, description="Billing period")


class Pricing(BaseModel):
    model_config = ConfigDict(extra="allow")

    price: Optional[Price] = None


class Location(BaseModel):
    model_config = ConfigDict(extra="allow")

    region: Optional[str] = None


class NodeInstance(BaseModel):
    """An instance already running on a marketplace node."""

    model_config = ConfigDict(extra="allow")

    id: str
    status: Optional[str] = None
    hardware: List[Dict[str, Any]] = Field(default_factory=list)

    @field_validator("hardware", mode="before")
    @classmethod
    def _none_to_empty(cls, value):
        return [] if value is None else value

    @property
    def gpu_count(self) -> int:
        return sum(1 for h in self.hardware if h.get("gpu"))

    @property
    def storage_gb(self) -> float:
        for h in self.hardware:
            storage = h.get("storage")
            if storage:
                return storage.get("capacity") or 0
        return 0


class RentalCandidate(BaseModel):
    """A GPU node advertised on the marketplace.

    ``id`` is the node name used when renting.
    """

    model_config = ConfigDict(extra="allow")

    id: str = Field("unknown", description="Node name")
    cluster_name: str = Field("unknown", description="Cluster name")
    status: Optional[str] = Field(None, description="Node status")
    hardware: Hardware = Field(default_factory=Hardware)
    gpus_total: int = Field(0, description="Total GPUs on the node")
    gpus_reserved: int = Field(0, description="GPUs already rented")
    pricing: Optional[Pricing] = None
    reserved: bool = False
    location: Optional[Location] = None
    has_persistent_storage: bool = False
    instances: List[NodeInstance] = Field(default_factory=list)

    @field_validator("hardware", mode="before")
    @classmethod
    def _none_to_hardware(cls, value):
        return {} if value is None else value

    @field_validator("instances", mode="before")
    @classmethod
    def _none_to_empty(cls, value):
        return [] if value is None else value

    @field_validator("gpus_total", "gpus_reserved", mode="before")
    @classmethod
    def _none_to_zero(cls, value):
        return 0 if value is None else value

    @property
    def available_gpus(self) -> int:
        return self.gpus_total - self.gpus_reserved

    @property
    def is_ready(self) -> bool:
        return self.status == NODE_READY

    @property
    def gpu_models(self) -> List[str]:
        """Distinct GPU model names, in listing order."""
        models = []
        for gpu in self.hardware.gpus:
            name = gpu.model or "Unknown"
            if name not in models:
                models.append(name)
        return models or ["Unknown"]

    @property
    def gpu_vram_gb(self) -> Optional[int]:
        if self.hardware.gpus and self.hardware.gpus[0].ram:
            return round(self.hardware.gpus[0].ram / 1024)
        return None

    @property
    def cpu_cores(self) -> Optional[int]:
        if self.hardware.cpus:
            return self.hardware.cpus[0].virtual_cores
        return None

    @property
    def ram_capacity(self) -> float:
        if self.hardware.ram:
            return self.hardware.ram[0].capacity or 0
        return 0

    @property
    def storage_capacity(self) -> float:
        if self.hardware.storage:
            return self.hardware.storage[0].capacity or 0
        return 0

    @property
    def region(self) -> Optional[str]:
        return self.location.region if self.location else None

    @property
    def price_per_hour(self) -> float:
        """Hourly price in dollars (the API reports cents)."""
        if self.pricing and self.pricing.price:
            return self.pricing.price.amount / 100
        return 0.0

    @property
    def price_period(self) -> Optional[str]:
        if self.pricing and self.pricing.price:
            return self.pricing.price.period or "hour"
        return None


class CreateRentalRequest(BaseModel):
    """Request body for POST /v1/marketplace/instances/create."""

    cluster_name: str = Field(..., description="Cluster to rent from")
    node_name: str = Field(..., description="Node within the cluster")
    gpu_count: int = Field(..., ge=1, description="Number of GPUs to rent")


class CreateRentalResponse(BaseModel):
    """Response from POST /v1/marketplace/instances/create.

    The payload shape is not fixed; unknown fields are kept.
    """

    model_config = ConfigDict(extra="allow")

    instance_name: Optional[str] = None
    status: Optional[str] = None


class RentedInstance(BaseModel):
    """An instance rented by the caller (GET /v1/marketplace/instances)."""

    model_config = ConfigDict(extra="allow", populate_by_name=True)

    id: str
    start: Optional[str] = None
    end: Optional[str] = None
    ssh_command: Optional[str] = Field(None, alias="sshCommand")
    instance: Dict[str, Any] = Field(default_factory=dict)

    @field_validator("instance", mode="before")
    @classmethod
    def _none_to_empty(cls, value):
        return {} if value is None else value

    @property
    def status(self) -> str:
        return self.instance.get("status") or "unknown"

    @property
    def gpu_count(self) -> int:
        return self.instance.get("gpu_count") or 0

    def ssh_target(self) -> Optional[Tuple[str, str, int]]:
        """Parse ``ssh_command`` into (host, username, port).

        Returns None when there is no usable ssh command.
        """
        if not self.ssh_command:
            return None

        try:
            parts = shlex.split(self.ssh_command)
        except ValueError:
            return None
        if not parts or parts[0] != "ssh":
            return None

        port = 22
        target = None
        args = iter(parts[1:])
        for arg in args:
            if arg == "-p":
                value = next(args, None)
                if value is None or not value.isdigit():
                    return None
                port = int(value)
            elif arg in _SSH_OPTIONS_WITH_ARG:
                next(args, None)
            elif arg.startswith("-"):
                continue
            elif target is None:
                target = arg

        if not target or "@" not in target:
            return None
        username, host = target.split("@", 1)
        return host, username, port
