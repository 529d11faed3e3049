"""Named storage driver constructors.

A DriverRegistry is built once at startup and handed to whatever needs
to create drivers. Nothing registers itself at import time.
"""

import logging
from typing import Any, Callable, Dict, List, Mapping

from bos_driver.driver import DRIVER_NAME, BosDriver
from bos_driver.exceptions import ConfigurationError
from bos_driver.storage_driver import StorageDriver

logger = logging.getLogger(__name__)

DriverFactory = Callable[[Mapping[str, Any]], StorageDriver]


class DriverRegistry:
    """Maps driver names to factories that build drivers from parameters."""

    def __init__(self) -> None:
        self._factories: Dict[str, DriverFactory] = {}

    def register(self, name: str, factory: DriverFactory) -> None:
        """Register a factory under name.

        Raises:
            ConfigurationError: If name is already registered
        """
        if name in self._factories:
            raise ConfigurationError(
                f"Storage driver already registered: {name}", driver=name
            )
        self._factories[name] = factory

    def create(self, name: str, parameters: Mapping[str, Any]) -> StorageDriver:
        """Build a driver by name.

        Raises:
            ConfigurationError: If name is unknown or parameters are invalid
        """
        factory = self._factories.get(name)
        if factory is None:
            raise ConfigurationError(
                f"Storage driver not registered: {name} (available: {', '.join(self.names())})",
                driver=name,
            )
        driver = factory(parameters)
        logger.info("Created storage driver", extra={"driver": name})
        return driver

    def names(self) -> List[str]:
        return sorted(self._factories)

    def __contains__(self, name: object) -> bool:
        return name in self._factories


def default_registry() -> DriverRegistry:
    """Return a new registry with the BOS driver registered."""
    registry = DriverRegistry()
    registry.register(DRIVER_NAME, BosDriver.from_parameters)
    return registry
