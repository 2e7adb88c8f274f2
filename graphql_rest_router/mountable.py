"""
Mountable items.

Anything exposing a path, an HTTP method and a dispatch function can be
mounted on a router next to GraphQL routes. Mount targets are expressed as
a tagged variant: :class:`Operation` names a GraphQL operation in the
router's document, :class:`Module` wraps an opaque :class:`MountableItem`.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Awaitable, Callable, Mapping, Optional, Union

from .models import RouteResponse
from .variables import clean_path

if TYPE_CHECKING:
    from .router import Router

Dispatcher = Callable[..., Awaitable[RouteResponse]]


class MountableItem(ABC):
    """
    Base class for modules mounted on a :class:`~graphql_rest_router.router.Router`.

    Subclasses provide :meth:`as_dispatcher`. The router calls
    :meth:`on_mount` with itself so modules can inspect the mounted routes.
    """

    path: str = "/"
    http_method: str = "get"

    def at(self, path: str) -> "MountableItem":
        self.path = clean_path(path)
        return self

    def as_(self, http_method: str) -> "MountableItem":
        self.http_method = http_method.lower()
        return self

    def with_options(self, options: Optional[Mapping[str, Any]] = None) -> "MountableItem":
        """Apply ``path`` and ``method`` options; other names are ignored."""
        options = options or {}

        if options.get("path"):
            self.at(options["path"])

        if options.get("method"):
            self.as_(options["method"])

        return self

    def on_mount(self, router: "Router") -> "MountableItem":
        return self

    @abstractmethod
    def as_dispatcher(self) -> Dispatcher:
        """Return ``dispatch(path_params, query_params, body, headers) -> RouteResponse``."""


@dataclass(frozen=True)
class Operation:
    """Mount target naming a GraphQL operation."""

    name: Optional[str] = None


@dataclass(frozen=True)
class Module:
    """Mount target wrapping a mountable module."""

    item: MountableItem


MountTarget = Union[Operation, Module]


@dataclass(frozen=True)
class DispatchEntry:
    """One row of a router dispatch table."""

    path: str
    http_method: str
    dispatch: Dispatcher
