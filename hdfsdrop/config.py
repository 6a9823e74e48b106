"""Single source of truth for runtime configuration.

The configuration is read once at startup from ``config.properties`` (or a
SOPS-encrypted ``config.properties.enc``) and turned into a frozen
:class:`IngestConfig`. Nothing else in the package reads the file or the
environment directly.

Recognized keys::

    base.dir              local working directory (relative: under $HOME)
    base.domain           gateway prefix, e.g. http://nn:9870/webhdfs/v1
    hdfs.dir              remote target directory
    hdfs.user             Hdfs-User header value
    internal.key          Authorization header value
    hdfs.overwrite        true|false (default false)
    hdfs.user_param       true|false, send user.name on create (default false)
    accept.extensions     comma-separated, default .xml
    poll.interval         seconds between ticks, default 60
    http.connect_timeout  seconds, default 10
    http.read_timeout     seconds, default 60
"""

import os
import subprocess
from pathlib import Path

from pydantic import ValidationError

from hdfsdrop.schemas.ingest import IngestConfig
from hdfsdrop.secrets import load_encrypted_properties, load_properties

CONFIG_FILE = "config.properties"
DEFAULT_BASE_DIR = "demo"

REQUIRED_KEYS = ("base.domain", "hdfs.dir")

_TRUE_VALUES = {"1", "true", "yes", "on"}


class ConfigError(Exception):
    """Raised when the configuration is missing, unreadable, or invalid."""


def default_config_path() -> Path:
    return Path(os.environ.get("HDFSDROP_CONFIG", Path.cwd() / CONFIG_FILE))


def use_sops() -> bool:
    return os.environ.get("HDFSDROP_USE_SOPS", "false").lower() == "true"


def resolve_base_path(base_dir: str | Path) -> Path:
    """Relative working directories live under the user's home."""
    path = Path(base_dir).expanduser()
    if not path.is_absolute():
        path = Path.home() / path
    return path


def _as_bool(value: str | None, default: bool = False) -> bool:
    if value is None or value.strip() == "":
        return default
    return value.strip().lower() in _TRUE_VALUES


def _blank_to_none(value: str | None) -> str | None:
    if value is None or value.strip() == "":
        return None
    return value.strip()


def build_config(
    *,
    remote_base_url: str,
    remote_dir: str,
    base_dir: str | Path = DEFAULT_BASE_DIR,
    **options,
) -> IngestConfig:
    """Build an :class:`IngestConfig` from constants.

    Extra keyword arguments are passed through as ``IngestConfig`` fields
    (``hdfs_user``, ``internal_key``, ``overwrite``, ...).

    Raises:
        ConfigError: If a value fails validation.
    """
    try:
        return IngestConfig(
            remote_base_url=remote_base_url,
            remote_dir=remote_dir,
            base_path=resolve_base_path(base_dir),
            **options,
        )
    except ValidationError as exc:
        raise ConfigError(f"Invalid configuration: {exc}") from exc


def config_from_properties(props: dict[str, str | None]) -> IngestConfig:
    """Map raw ``key=value`` pairs onto an :class:`IngestConfig`."""
    missing = [key for key in REQUIRED_KEYS if not _blank_to_none(props.get(key))]
    if missing:
        raise ConfigError(f"Missing required config: {', '.join(missing)}")

    options: dict = {
        "hdfs_user": _blank_to_none(props.get("hdfs.user")),
        "internal_key": _blank_to_none(props.get("internal.key")),
        "overwrite": _as_bool(props.get("hdfs.overwrite")),
        "send_user_param": _as_bool(props.get("hdfs.user_param")),
    }
    optional = {
        "accepted_extensions": "accept.extensions",
        "poll_interval_seconds": "poll.interval",
        "connect_timeout": "http.connect_timeout",
        "read_timeout": "http.read_timeout",
    }
    for field, key in optional.items():
        value = _blank_to_none(props.get(key))
        if value is not None:
            options[field] = value

    return build_config(
        remote_base_url=props["base.domain"].strip(),
        remote_dir=props["hdfs.dir"].strip(),
        base_dir=_blank_to_none(props.get("base.dir")) or DEFAULT_BASE_DIR,
        **options,
    )


def load_config(path: str | Path | None = None, *, encrypted: bool | None = None) -> IngestConfig:
    """Read the properties file and return the frozen configuration.

    Args:
        path: Properties file. Defaults to ``$HDFSDROP_CONFIG`` or
            ``./config.properties``.
        encrypted: Read ``<path>.enc`` through SOPS. Defaults to
            ``$HDFSDROP_USE_SOPS``.

    Raises:
        ConfigError: If the file cannot be read or a required key is missing.
    """
    path = Path(path) if path else default_config_path()
    if encrypted is None:
        encrypted = use_sops()

    try:
        if encrypted:
            props = load_encrypted_properties(path.with_name(path.name + ".enc"))
        else:
            props = load_properties(path)
    except (OSError, subprocess.CalledProcessError) as exc:
        raise ConfigError(f"Cannot read configuration from {path.absolute()}: {exc}") from exc

    return config_from_properties(props)
