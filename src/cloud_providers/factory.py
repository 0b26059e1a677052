"""
Provider factory and process-wide registry.

The backend is chosen by explicit argument or the CLOUD_PROVIDER setting.
The environment is validated before anything else, and only the selected
backend package is imported, so an AWS deployment never imports the
Google SDKs (and vice versa).
"""

import importlib
import logging
import threading
from typing import Callable, Dict, Optional, Tuple, Union

from pydantic import ValidationError

from cloud_providers.env_validator import validate_and_log_environment
from cloud_providers.exceptions import ConfigurationError
from cloud_providers.interfaces import CloudProvider, CloudProviderType
from cloud_providers.settings import Settings, describe_validation_error, get_settings

logger = logging.getLogger(__name__)

# backend -> (module, storage class, queue class)
BACKENDS: Dict[CloudProviderType, Tuple[str, str, str]] = {
    CloudProviderType.LOCAL: ("cloud_providers.local", "LocalStorageProvider", "LocalQueueProvider"),
    CloudProviderType.AWS: ("cloud_providers.aws", "AWSStorageProvider", "AWSQueueProvider"),
    CloudProviderType.GCP: ("cloud_providers.gcp", "GCPStorageProvider", "GCPQueueProvider"),
}


def resolve_provider_type(provider_type: Optional[Union[CloudProviderType, str]] = None,
                          settings: Optional[Settings] = None) -> CloudProviderType:
    """Pick the backend from the argument, falling back to settings."""
    if provider_type is None:
        provider_type = (settings or get_settings()).cloud_provider
    try:
        return CloudProviderType(str(getattr(provider_type, "value", provider_type)).strip().lower())
    except ValueError:
        raise ConfigurationError(
            f"Invalid cloud provider: {provider_type}. "
            f"Choose from {[member.value for member in CloudProviderType]}",
            errors=[f"Unknown cloud provider '{provider_type}'"],
        ) from None


def _backend_kwargs(provider_type: CloudProviderType, settings: Settings):
    if provider_type == CloudProviderType.LOCAL:
        return {"base_dir": settings.local_storage_dir}, {"dlq_suffix": settings.dlq_suffix}
    return {"settings": settings}, {"settings": settings}


def create_cloud_provider(provider_type: Optional[Union[CloudProviderType, str]] = None,
                          settings: Optional[Settings] = None) -> CloudProvider:
    """Build a new provider triple.

    Raises:
        ConfigurationError: if the provider is unknown or its environment is
            invalid; no SDK client has been created at that point
    """
    try:
        settings = settings or get_settings()
    except ValidationError as e:
        errors = describe_validation_error(e)
        raise ConfigurationError(
            "Invalid cloud provider configuration:\n" + "\n".join(f"  - {error}" for error in errors),
            errors=errors,
        ) from e
    resolved = resolve_provider_type(provider_type, settings)

    # Validate what the backends will be built from, .env included
    validate_and_log_environment(resolved.value, environ=settings.as_environ())

    module_name, storage_class, queue_class = BACKENDS[resolved]
    # Lazy import so unselected backends never load their SDKs
    backend = importlib.import_module(module_name)

    storage_kwargs, queue_kwargs = _backend_kwargs(resolved, settings)
    provider = CloudProvider(
        type=resolved,
        storage=getattr(backend, storage_class)(**storage_kwargs),
        queue=getattr(backend, queue_class)(**queue_kwargs),
    )

    logger.info(f"Created cloud provider: {resolved.value}")
    return provider


class ProviderRegistry:
    """Holds one shared CloudProvider, created on first use.

    Concurrent first callers block on the same lock, so the provider is
    constructed exactly once. A failed construction is not remembered and the
    next caller tries again.
    """

    def __init__(self, factory: Callable[[], CloudProvider] = create_cloud_provider):
        self._factory = factory
        self._provider: Optional[CloudProvider] = None
        self._lock = threading.Lock()

    def get(self) -> CloudProvider:
        provider = self._provider
        if provider is not None:
            return provider

        with self._lock:
            if self._provider is None:
                self._provider = self._factory()
            return self._provider

    def override(self, provider: Optional[CloudProvider]) -> None:
        """Replace the shared provider, e.g. with a test double."""
        with self._lock:
            self._provider = provider

    def reset(self) -> None:
        self.override(None)


_default_registry = ProviderRegistry()


def get_cloud_provider() -> CloudProvider:
    """Get the process-wide provider, creating it from settings on first call."""
    return _default_registry.get()


def set_cloud_provider(provider: Optional[CloudProvider]) -> None:
    _default_registry.override(provider)


def reset_cloud_provider() -> None:
    _default_registry.reset()
