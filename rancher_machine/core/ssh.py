"""SSH key pair handling for provisioned machines."""

import os
from pathlib import Path
from typing import Union

import paramiko

from rancher_machine.core.exceptions import SSHKeyError
from rancher_machine.utils.logger import get_logger

logger = get_logger(__name__)

KEY_BITS = 2048


def public_key_path(key_path: Union[str, Path]) -> Path:
    """Path of the public half of a key pair."""
    return Path(f"{key_path}.pub")


def generate_ssh_key(key_path: Union[str, Path]) -> None:
    """
    Generate an RSA key pair at ``key_path`` and ``key_path.pub``.

    An existing private key is kept, matching docker-machine: re-running
    create against the same store does not rotate the machine key.

    Raises:
        SSHKeyError: If the key cannot be generated or written
    """
    key_path = Path(key_path)
    if key_path.exists():
        logger.debug("SSH key already exists", extra={"key_path": str(key_path)})
        return

    try:
        key_path.parent.mkdir(parents=True, exist_ok=True)
        key = paramiko.RSAKey.generate(KEY_BITS)
        key.write_private_key_file(str(key_path))
        os.chmod(key_path, 0o600)
        public_key_path(key_path).write_text(f"{key.get_name()} {key.get_base64()}\n")
    except (OSError, paramiko.SSHException) as e:
        raise SSHKeyError(f"Unable to generate SSH key at {key_path}: {e}") from e

    logger.debug("SSH key generated", extra={"key_path": str(key_path)})


def read_public_key(key_path: Union[str, Path]) -> str:
    """
    Read the public key matching ``key_path``, without trailing whitespace.

    Raises:
        SSHKeyError: If the public key file cannot be read
    """
    path = public_key_path(key_path)
    try:
        return path.read_text().rstrip("\r\n\t ")
    except OSError as e:
        raise SSHKeyError(f"Unable to read SSH public key {path}: {e}") from e
