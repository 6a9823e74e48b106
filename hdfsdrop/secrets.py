"""Readers for ``config.properties``, plain or SOPS-encrypted.

Values are taken literally: ``${VAR}`` is never expanded, so credentials
such as ``internal.key`` reach the gateway exactly as written. Unquoted
values still lose a trailing `` #comment``; quote a value with single
quotes to keep ``#`` in it.
"""

import subprocess
from io import StringIO
from pathlib import Path

from dotenv import dotenv_values

SOPS_COMMAND = ("sops", "--decrypt", "--input-type", "dotenv", "--output-type", "dotenv")


def _parse(text: str) -> dict[str, str | None]:
    return dict(dotenv_values(stream=StringIO(text), interpolate=False))


def load_properties(properties_path: str | Path) -> dict[str, str | None]:
    """Load a plain ``key=value`` properties file.

    Raises:
        FileNotFoundError: If the file does not exist.
    """
    path = Path(properties_path)
    if not path.exists():
        raise FileNotFoundError(f"Config file not found: {path}")
    return _parse(path.read_text(encoding="utf-8"))


def load_encrypted_properties(encrypted_path: str | Path) -> dict[str, str | None]:
    """Decrypt ``config.properties.enc`` with SOPS and parse the result.

    Raises:
        FileNotFoundError: If the encrypted file does not exist.
        subprocess.CalledProcessError: If SOPS decryption fails.
    """
    path = Path(encrypted_path)
    if not path.exists():
        raise FileNotFoundError(f"Encrypted config file not found: {path}")

    result = subprocess.run(
        [*SOPS_COMMAND, str(path)],
        capture_output=True,
        text=True,
        check=True,
    )
    return _parse(result.stdout)
