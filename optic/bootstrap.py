"""Wire Optic into a Starlette or FastAPI application.

Provides one call that builds the telemetry client from configuration,
registers the HTTP telemetry middleware as the outermost user middleware,
creates a meter registry tagged with the service identity, and closes
the client when the application shuts down.

Example usage:

    from fastapi import FastAPI
    from optic.bootstrap import configure_optic

    app = FastAPI()
    app.add_middleware(CORSMiddleware, allow_origins=["*"])
    components = configure_optic(app)

Every component is registered in the application's ComponentRegistry.
Components the application registered itself beforehand are reused,
never replaced.
"""

import importlib.util
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from typing import Any

from prometheus_client import make_asgi_app
from starlette.applications import Starlette
from starlette.middleware import Middleware

from optic.client import Optic
from optic.components import ComponentRegistry, get_registry
from optic.config import get_settings
from optic.config.models.client import OpticConfig
from optic.config.models.properties import OpticProperties
from optic.config.settings import Settings
from optic.errors import ConfigurationError
from optic.metrics.registry import MeterRegistry
from optic.middleware.http_telemetry import HttpTelemetryMiddleware
from optic.observability.logging import get_logger, setup_logging

logger = get_logger(__name__)

CLIENT_COMPONENT = "optic"
METER_REGISTRY_COMPONENT = "optic_meter_registry"
MIDDLEWARE_COMPONENT = "optic_http_telemetry_middleware"
PROMETHEUS_COMPONENT = "optic_prometheus_endpoint"

METER_REGISTRY_SCOPE = "optic-meter-registry"

REQUIRED_MODULES = (
    "opentelemetry.sdk.trace",
    "opentelemetry.sdk.metrics",
    "opentelemetry.sdk._logs",
    "starlette.middleware",
)


@dataclass(frozen=True)
class MiddlewareRegistration:
    """Middleware installed by the bootstrap."""

    name: str
    middleware_class: type
    options: dict[str, Any] = field(default_factory=dict)


@dataclass
class OpticComponents:
    """Components resolved by configure_optic."""

    client: Optic
    meter_registry: MeterRegistry | None
    middleware: MiddlewareRegistration | None
    owns_client: bool


def _has_text(value: str | None) -> bool:
    return value is not None and bool(value.strip())


def missing_modules(modules: tuple[str, ...] = REQUIRED_MODULES) -> list[str]:
    """Return the modules among ``modules`` that cannot be imported."""
    missing = []
    for name in modules:
        try:
            found = importlib.util.find_spec(name) is not None
        except ModuleNotFoundError:
            found = False
        if not found:
            missing.append(name)
    return missing


def build_config(properties: OpticProperties, settings: Settings | None = None) -> OpticConfig:
    """Resolve the client configuration.

    Starts from the OPTIC_* environment, overlays every non-blank text
    property and all switches, then falls back to the application name
    when no service name is known.

    Args:
        properties: Integration properties
        settings: Application settings providing the fallback service name

    Returns:
        Validated client configuration
    """
    values = OpticConfig.from_env().model_dump()

    for name in ("api_key", "service_name", "endpoint", "environment", "service_version"):
        value = getattr(properties, name)
        if _has_text(value):
            values[name] = value

    values.update(
        enable_traces=properties.enable_traces,
        enable_metrics=properties.enable_metrics,
        enable_logs=properties.enable_logs,
        export_interval_ms=properties.export_interval_ms,
        prometheus_enabled=properties.prometheus.enabled,
    )

    if not _has_text(values.get("service_name")):
        values["service_name"] = settings.app_name if settings is not None else ""

    return OpticConfig.model_validate(values)


def create_meter_registry(client: Optic) -> MeterRegistry:
    """Create a meter registry tagged with the client's service identity."""
    config = client.config
    registry = MeterRegistry(client.meter(METER_REGISTRY_SCOPE))
    registry.add_common_tags(**{
        "service.name": config.service_name,
        "deployment.environment": config.environment,
        "service.version": config.service_version,
    })
    return registry


def has_middleware(app: Starlette, middleware_class: type) -> bool:
    """Whether ``middleware_class`` is already in the app's user middleware."""
    return any(entry.cls is middleware_class for entry in app.user_middleware)


def check_installable(app: Starlette, name: str) -> None:
    """Raise ConfigurationError if middleware can no longer be added to ``app``."""
    if app.middleware_stack is not None:
        raise ConfigurationError(f"Cannot register {name} after the application has started")


def install_middleware(app: Starlette, registration: MiddlewareRegistration) -> None:
    """Insert the middleware as the outermost user middleware.

    Every request reaches it, since ASGI middleware is not bound to paths.

    Raises:
        ConfigurationError: If the application already built its middleware stack
    """
    check_installable(app, registration.name)
    app.user_middleware.insert(
        0, Middleware(registration.middleware_class, **registration.options)
    )


def chain_shutdown(app: Starlette, client: Optic) -> None:
    """Shut the client down when the application lifespan ends."""
    original = app.router.lifespan_context

    @asynccontextmanager
    async def lifespan(lifespan_app: Any) -> AsyncIterator[Any]:
        try:
            async with original(lifespan_app) as state:
                yield state
        finally:
            client.shutdown()

    app.router.lifespan_context = lifespan


def configure_optic(
    app: Starlette,
    settings: Settings | None = None,
    registry: ComponentRegistry | None = None,
    configure_logging: bool = False,
) -> OpticComponents | None:
    """Wire Optic into ``app``.

    Call it after the application's own middleware has been added, so the
    telemetry middleware wraps all of it.

    Args:
        app: Starlette or FastAPI application
        settings: Settings to use (default: get_settings())
        registry: Component registry (default: the one on app.state)
        configure_logging: Also configure structlog from settings.logging

    Returns:
        The resolved components, or None when the integration is disabled
        or its required modules are missing

    Raises:
        ConfigurationError: If the middleware is needed but the application
            already built its middleware stack; nothing is created then
    """
    settings = settings or get_settings()

    if configure_logging:
        setup_logging(
            level=settings.logging.level,
            format=settings.logging.format,
            redact_pii=settings.logging.redact_pii,
            include_trace_id=settings.logging.include_trace_id,
        )

    properties = settings.optic
    if not properties.enabled:
        logger.info("optic_disabled")
        return None

    missing = missing_modules()
    if missing:
        logger.warning("optic_skipped", reason="missing_modules", modules=missing)
        return None

    components = registry if registry is not None else get_registry(app)

    # Fail before anything is built when the middleware can no longer be added
    install_needed = not (
        MIDDLEWARE_COMPONENT in components or has_middleware(app, HttpTelemetryMiddleware)
    )
    if install_needed:
        check_installable(app, MIDDLEWARE_COMPONENT)

    client = components.get(CLIENT_COMPONENT)
    owns_client = client is None
    if client is None:
        client = Optic.init(build_config(properties, settings))
        components.register(CLIENT_COMPONENT, client)
        chain_shutdown(app, client)
    else:
        logger.info("optic_component_skipped", component=CLIENT_COMPONENT, reason="already_registered")

    meter_registry = None
    if properties.enable_metrics:
        meter_registry = components.get(METER_REGISTRY_COMPONENT)
        if meter_registry is None:
            meter_registry = create_meter_registry(client)
            components.register(METER_REGISTRY_COMPONENT, meter_registry)
        else:
            logger.info(
                "optic_component_skipped",
                component=METER_REGISTRY_COMPONENT,
                reason="already_registered",
            )

    middleware = None
    if install_needed:
        middleware = MiddlewareRegistration(
            name=MIDDLEWARE_COMPONENT,
            middleware_class=HttpTelemetryMiddleware,
            options={"client": client},
        )
        install_middleware(app, middleware)
        components.register(MIDDLEWARE_COMPONENT, middleware)
    else:
        logger.info(
            "optic_component_skipped",
            component=MIDDLEWARE_COMPONENT,
            reason="already_registered",
        )

    if properties.prometheus.enabled and PROMETHEUS_COMPONENT not in components:
        if client.config.prometheus_enabled:
            app.mount(properties.prometheus.path, make_asgi_app())
            components.register(PROMETHEUS_COMPONENT, properties.prometheus.path)
        else:
            logger.info(
                "optic_component_skipped",
                component=PROMETHEUS_COMPONENT,
                reason="client_without_prometheus_reader",
            )

    logger.info(
        "optic_configured",
        service_name=client.config.service_name,
        owns_client=owns_client,
        meter_registry=meter_registry is not None,
        middleware=middleware is not None,
    )

    return OpticComponents(
        client=client,
        meter_registry=meter_registry,
        middleware=middleware,
        owns_client=owns_client,
    )
