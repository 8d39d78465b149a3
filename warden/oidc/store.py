"""Publication of validated policy snapshots to concurrent readers."""

import threading

from warden.config.types import ProviderConfig
from warden.core.errors import ConfigurationError
from warden.core.logging import get_logger
from warden.oidc.provider import validate_provider
from warden.oidc.types import PolicyModel, ValidationResult

logger = get_logger(__name__)


class PolicyStore:
    """Holds the active policy model and swaps it on successful reloads.

    Readers take ``current`` without locking and keep the snapshot they got
    for as long as they need it. Reloads are serialized; a configuration with
    errors is never published and leaves the active snapshot in place.
    """

    def __init__(self, model: PolicyModel | None = None) -> None:
        self._lock = threading.Lock()
        self._current = model if model is not None else PolicyModel()
        self._generation = 0 if model is None else 1

    @property
    def current(self) -> PolicyModel:
        """The active snapshot."""
        return self._current

    @property
    def generation(self) -> int:
        """Number of snapshots published so far."""
        return self._generation

    def reload(self, config: ProviderConfig) -> ValidationResult:
        """Validate a configuration and publish it when it has no errors."""
        with self._lock:
            result = validate_provider(config)
            if not result.ok:
                logger.warning(
                    "policy.reload_rejected",
                    generation=self._generation,
                    errors=list(result.errors),
                )
                raise ConfigurationError(list(result.errors), list(result.warnings))
            self._current = result.model
            self._generation += 1
            logger.info(
                "policy.published",
                generation=self._generation,
                clients=len(result.model.clients),
                warnings=len(result.warnings),
            )
            return result

    @classmethod
    def from_config(cls, config: ProviderConfig) -> "PolicyStore":
        """Create a store whose first snapshot comes from a configuration."""
        store = cls()
        store.reload(config)
        return store
