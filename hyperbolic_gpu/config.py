"""Runtime configuration loaded from the environment.

A ``.env`` file in the working directory is read first; variables already
set in the environment take precedence.
"""

import os
from dataclasses import dataclass
from typing import Optional

from dotenv import find_dotenv, load_dotenv

from hyperbolic_gpu.client.hyperbolic import HYPERBOLIC_API_BASE
from hyperbolic_gpu.ssh.manager import DEFAULT_CONNECT_TIMEOUT
from hyperbolic_gpu.utils.errors import ConfigError


@dataclass
class Settings:
    """Process-wide settings."""

    api_token: Optional[str] = None
    api_url: str = HYPERBOLIC_API_BASE
    ssh_private_key_path: Optional[str] = None
    ssh_connect_timeout: float = DEFAULT_CONNECT_TIMEOUT
    ssh_known_hosts: Optional[str] = None

    @classmethod
    def from_env(cls, load_dotenv_file: bool = True) -> "Settings":
        """Build settings from environment variables.

        Variables:
            HYPERBOLIC_API_TOKEN: API token for marketplace calls
            HYPERBOLIC_API_URL: API base URL
            SSH_PRIVATE_KEY_PATH: Default private key for SSH connections
            SSH_CONNECT_TIMEOUT: Connection timeout in seconds
            SSH_KNOWN_HOSTS: known_hosts file for host key checking
        """
        if load_dotenv_file:
            load_dotenv(find_dotenv(usecwd=True))

        timeout = os.environ.get("SSH_CONNECT_TIMEOUT")
        try:
            connect_timeout = float(timeout) if timeout else DEFAULT_CONNECT_TIMEOUT
        except ValueError:
            raise ConfigError(f"Invalid SSH_CONNECT_TIMEOUT: {timeout}")

        return cls(
            api_token=os.environ.get("HYPERBOLIC_API_TOKEN") or None,
            api_url=os.environ.get("HYPERBOLIC_API_URL") or HYPERBOLIC_API_BASE,
            ssh_private_key_path=os.environ.get("SSH_PRIVATE_KEY_PATH") or None,
            ssh_connect_timeout=connect_timeout,
            ssh_known_hosts=os.environ.get("SSH_KNOWN_HOSTS") or None,
        )

    def require_api_token(self) -> str:
        """Return the API token or raise ConfigError."""
        if not self.api_token:
            raise ConfigError("HYPERBOLIC_API_TOKEN environment variable is not set")
        return self.api_token
