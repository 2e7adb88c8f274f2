"""
Service configuration for graphql_rest_router.

A service description names the upstream endpoint, the GraphQL document
holding the exposed operations, router defaults, the routes to mount and
optional documentation modules. It is loaded from YAML or JSON and can be
overridden through ``GRAPHQL_REST_ROUTER_*`` environment variables.

Example ``service.yaml``:

```yaml
endpoint: https://api.example.com/graphql
schema_path: operations.graphql
port: 8080
router:
  default_timeout_in_ms: 5000
  pass_through_headers: [authorization]
cache:
  type: memory
routes:
  - operation: GetUserById
    path: /user/:id
    cache_time_in_ms: 5000
docs:
  - type: openapi
    title: Users
    version: 1.0.0
```
"""

from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from typing import Any, Dict, List, Literal, Mapping, Optional, Union

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from .cache import CacheEngine, InMemoryCache, RedisCache
from .exceptions import ConfigurationError
from .models import RouterConfig
from .openapi import MountableDocument, OpenApiV2, OpenApiV3
from .router import Router

logger = logging.getLogger(__name__)

ENV_PREFIX = "GRAPHQL_REST_ROUTER_"


class CacheConfig(BaseModel):
    """Cache engine selection."""

    type: Literal["memory", "redis"] = Field(default="memory", description="Cache engine type")
    url: str = Field(default="redis://localhost:6379", description="Redis connection URL")
    key_prefix: str = Field(default="graphql-rest-router:", description="Redis key prefix")
    sweep_interval_ms: int = Field(default=1000, gt=0, description="In-memory expiry sweep interval")

    def build(self) -> CacheEngine:
        if self.type == "redis":
            return RedisCache(url=self.url, key_prefix=self.key_prefix)
        return InMemoryCache(sweep_interval_ms=self.sweep_interval_ms)


class RouteConfig(BaseModel):
    """A route to mount. Every key besides ``operation`` is a route option."""

    model_config = ConfigDict(extra="allow")

    operation: str = Field(description="Operation name within the schema document")

    @property
    def options(self) -> Dict[str, Any]:
        return dict(self.model_extra or {})


class DocsConfig(BaseModel):
    """A documentation module to mount."""

    model_config = ConfigDict(extra="forbid")

    type: Literal["openapi", "swagger"] = Field(default="openapi", description="OpenAPI 3 or Swagger 2")
    title: str
    version: str
    path: Optional[str] = Field(default=None, description="Mount path override")
    host: Optional[str] = None
    base_path: Optional[str] = None
    terms_of_service: Optional[str] = None
    license: Optional[str] = None

    def build(self) -> MountableDocument:
        document_class = OpenApiV2 if self.type == "swagger" else OpenApiV3
        document = document_class(**self.model_dump(exclude={"type", "path"}))
        if self.path:
            document.at(self.path)
        return document


class ServiceConfig(BaseModel):
    """Complete description of a REST service."""

    model_config = ConfigDict(extra="forbid")

    endpoint: str = Field(description="Upstream GraphQL endpoint URL")
    schema_path: Path = Field(description="File holding the GraphQL operations")
    host: Optional[str] = Field(default=None, description="Listen address")
    port: int = Field(default=8080, gt=0, le=65535, description="Listen port")
    router: RouterConfig = Field(default_factory=RouterConfig)
    cache: Optional[CacheConfig] = None
    routes: List[RouteConfig] = Field(default_factory=list)
    docs: List[DocsConfig] = Field(default_factory=list)

    def read_schema(self) -> str:
        try:
            return self.schema_path.read_text(encoding="utf-8")
        except OSError as e:
            raise ConfigurationError(f"Unable to read schema file {self.schema_path}: {e}") from e


def _parse_config_file(config_path: Path) -> Dict[str, Any]:
    """Parse configuration file based on extension."""
    suffix = config_path.suffix.lower()

    try:
        with open(config_path, "r", encoding="utf-8") as f:
            if suffix in (".yaml", ".yml"):
                return yaml.safe_load(f) or {}
            if suffix == ".json":
                return json.load(f) or {}
    except (OSError, ValueError, yaml.YAMLError) as e:
        raise ConfigurationError(f"Failed to parse config file {config_path}: {e}") from e

    raise ConfigurationError(f"Unsupported config file format: {config_path.suffix}")


def _load_from_environment(environ: Mapping[str, str]) -> Dict[str, Any]:
    env_mappings = {
        f"{ENV_PREFIX}ENDPOINT": "endpoint",
        f"{ENV_PREFIX}SCHEMA": "schema_path",
        f"{ENV_PREFIX}HOST": "host",
        f"{ENV_PREFIX}PORT": "port",
    }

    return {key: environ[env_var] for env_var, key in env_mappings.items() if env_var in environ}


def load_config(
    config_file: Union[str, Path],
    environ: Optional[Mapping[str, str]] = None,
) -> ServiceConfig:
    """
    Load a service configuration.

    Environment variables override the file. A relative ``schema_path`` is
    resolved against the directory holding the config file.

    Args:
        config_file: YAML (``.yaml``/``.yml``) or JSON file
        environ: Environment to read overrides from, ``os.environ`` by default

    Returns:
        Validated ServiceConfig

    Raises:
        ConfigurationError: If the file is missing, unreadable or invalid
    """
    config_path = Path(config_file)
    if not config_path.exists():
        raise ConfigurationError(f"Config file not found: {config_path}")

    config_data = _parse_config_file(config_path)
    if not isinstance(config_data, dict):
        raise ConfigurationError(f"Config file {config_path} must hold a mapping")

    config_data.update(_load_from_environment(os.environ if environ is None else environ))

    try:
        config = ServiceConfig(**config_data)
    except ValidationError as e:
        raise ConfigurationError(f"Invalid configuration in {config_path}: {e}") from e

    if not config.schema_path.is_absolute():
        config.schema_path = config_path.parent / config.schema_path

    return config


def build_router(config: ServiceConfig) -> Router:
    """
    Build a router with every configured route and documentation module mounted.

    Raises:
        ConfigurationError: If the schema cannot be read or a route is invalid
    """
    router_config = config.router
    if config.cache is not None:
        router_config = router_config.model_copy(update={"cache_engine": config.cache.build()})

    router = Router(config.endpoint, config.read_schema(), router_config)

    for route in config.routes:
        router.mount(route.operation, route.options)

    for docs in config.docs:
        router.mount(docs.build())

    logger.info("Built router for %s with %d route(s)", config.endpoint, len(router.routes))

    return router


__all__ = [
    "CacheConfig",
    "DocsConfig",
    "RouteConfig",
    "ServiceConfig",
    "build_router",
    "load_config",
]
