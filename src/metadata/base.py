"""Base types for provider cloud metadata.

Each provider variant is a dataclass whose fields carry the environment
variable name they map to:

    kube_config: Optional[str] = env_field('KUBECONFIG')

The same key vocabulary is used in both directions: get_env_vars() emits
it and update_cloud_metadata_details() accepts it, so a mapping read from
one instance can be merged into another unchanged.
"""

import logging
import threading
from dataclasses import dataclass, field, fields
from typing import Any, Mapping, Optional, Protocol, runtime_checkable

logger = logging.getLogger(__name__)

ENV_KEY = 'env'


@runtime_checkable
class CloudMetadata(Protocol):
    """Protocol for provider-specific provisioning settings."""

    def get_env_vars(self) -> dict[str, str]:
        """Return environment variables derived from the set fields."""

    def update_cloud_metadata_details(self, config_data: Optional[Mapping[str, Any]]) -> None:
        """Merge recognised keys from config_data into this instance."""


def env_field(name: str) -> Any:
    """Declare an optional string field exported as env var `name`."""
    return field(default=None, metadata={ENV_KEY: name})


@dataclass
class EnvMappedMetadata:
    """CloudMetadata implementation driven by field metadata.

    Unset fields are None and never appear in get_env_vars(). Updates are
    serialised against reads per instance.
    """
    provider_code = ''

    _lock: threading.RLock = field(
        default_factory=threading.RLock, init=False, repr=False, compare=False)

    @classmethod
    def _env_fields(cls) -> dict[str, str]:
        """Map env var name -> attribute name, in declaration order."""
        return {f.metadata[ENV_KEY]: f.name for f in fields(cls) if ENV_KEY in f.metadata}

    @classmethod
    def env_keys(cls) -> list[str]:
        """Environment variable names this variant recognises."""
        return list(cls._env_fields())

    @classmethod
    def from_config(cls, config_data: Optional[Mapping[str, Any]] = None) -> 'EnvMappedMetadata':
        """Build an instance from a raw config section."""
        instance = cls()
        instance.update_cloud_metadata_details(config_data)
        return instance

    def get_env_vars(self) -> dict[str, str]:
        with self._lock:
            env: dict[str, str] = {}
            for env_name, attr in self._env_fields().items():
                value = getattr(self, attr)
                if value is not None:
                    env[env_name] = value
            return env

    def update_cloud_metadata_details(self, config_data: Optional[Mapping[str, Any]]) -> None:
        if not config_data:
            return
        env_fields = self._env_fields()
        with self._lock:
            for key, value in config_data.items():
                attr = env_fields.get(key)
                if attr is None:
                    logger.debug(f"Ignoring unknown {self.provider_code} metadata key: {key}")
                    continue
                setattr(self, attr, None if value is None else str(value))

    def to_dict(self) -> dict[str, str]:
        """Serialise set fields (alias of get_env_vars for config files)."""
        return self.get_env_vars()


# Registry of metadata variants keyed by provider code
_variants: dict[str, type[EnvMappedMetadata]] = {}


def register_metadata(code: str):
    """Decorator to register a metadata variant for a provider code."""
    def _wrap(cls: type[EnvMappedMetadata]) -> type[EnvMappedMetadata]:
        cls.provider_code = code
        _variants[code] = cls
        return cls
    return _wrap


def get_metadata_class(code: str) -> type[EnvMappedMetadata]:
    """Get the metadata variant for a provider code.

    Raises:
        ConfigError: If no variant is registered for the code
    """
    from config import ConfigError

    if code not in _variants:
        raise ConfigError(
            f"Unknown provider code: {code}. Available: {list_provider_codes()}")
    return _variants[code]


def create_metadata(code: str, config_data: Optional[Mapping[str, Any]] = None) -> EnvMappedMetadata:
    """Create a metadata instance of the variant registered for `code`."""
    return get_metadata_class(code).from_config(config_data)


def list_provider_codes() -> list[str]:
    """List registered provider codes."""
    return sorted(_variants)
