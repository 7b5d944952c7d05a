"""Credential resolution for SSH connection attempts."""

import logging
import os
from dataclasses import dataclass, field
from typing import Optional

from hyperbolic_gpu.utils.errors import KeyNotFoundError, KeyReadError

logger = logging.getLogger(__name__)

FALLBACK_KEY_PATH = "~/.ssh/id_rsa"


@dataclass(frozen=True)
class Credential:
    """Authentication material for one connection attempt.

    Exactly one of ``password`` or ``private_key`` is set.
    """

    password: Optional[str] = field(default=None, repr=False)
    private_key: Optional[bytes] = field(default=None, repr=False)
    key_path: Optional[str] = None

    @property
    def is_password(self) -> bool:
        return self.password is not None

    @property
    def method(self) -> str:
        return "password" if self.is_password else "publickey"


def resolve_credential(
    password: Optional[str] = None,
    key_path: Optional[str] = None,
    default_key_path: Optional[str] = None,
) -> Credential:
    """Pick the credential for a connection attempt.

    Args:
        password: Explicit password; wins over any key inputs
        key_path: Explicit private key path
        default_key_path: Default key path (usually SSH_PRIVATE_KEY_PATH)

    Returns:
        Password or key credential

    Raises:
        KeyNotFoundError: The resolved key file does not exist
        KeyReadError: The key file exists but could not be read
    """
    if password:
        return Credential(password=password)

    path = os.path.expanduser(key_path or default_key_path or FALLBACK_KEY_PATH)

    if not os.path.exists(path):
        raise KeyNotFoundError(path)

    try:
        with open(path, "rb") as f:
            data = f.read()
    except OSError as e:
        raise KeyReadError(path, str(e)) from e

    logger.debug(f"Loaded SSH key from {path}")
    return Credential(private_key=data, key_path=path)
