"""Component registry for application wiring.

The registry is the table the bootstrap consults before constructing a
component: when the embedding application already registered a
component under the same name, the bootstrap uses it instead of
building its own.
"""

from typing import Any

from starlette.applications import Starlette

from optic.errors import ConfigurationError

STATE_ATTRIBUTE = "optic_components"


class ComponentRegistry:
    """Name to component table."""

    def __init__(self) -> None:
        self._components: dict[str, Any] = {}

    def register(self, name: str, component: Any) -> None:
        """Register a component.

        Raises:
            ConfigurationError: If the name is already taken
        """
        if name in self._components:
            raise ConfigurationError(f"Component already registered: {name}")
        self._components[name] = component

    def get(self, name: str, default: Any = None) -> Any:
        return self._components.get(name, default)

    def names(self) -> list[str]:
        return list(self._components)

    def __contains__(self, name: object) -> bool:
        return name in self._components

    def __len__(self) -> int:
        return len(self._components)


def get_registry(app: Starlette) -> ComponentRegistry:
    """Return the registry attached to ``app.state``, creating it on first use."""
    registry = getattr(app.state, STATE_ATTRIBUTE, None)
    if registry is None:
        registry = ComponentRegistry()
        setattr(app.state, STATE_ATTRIBUTE, registry)
    return registry
