"""
OpenAPI documentation modules.

:class:`OpenApiV2` and :class:`OpenApiV3` are mountable modules that
describe every route of the router they are mounted on. Variable types are
described through a ``__type`` introspection query sent to the upstream
GraphQL endpoint.
"""

from __future__ import annotations

import logging
from abc import abstractmethod
from typing import TYPE_CHECKING, Any, Dict, List, Optional

from pydantic import BaseModel, Field

from .exceptions import GraphQLRestRouterError, RouterNotMountedError
from .models import GraphQLRequest, OperationVariable, RouteResponse
from .mountable import Dispatcher, MountableItem
from .transforms import json_response_transform
from .variables import PATH_VARIABLES_REGEX

if TYPE_CHECKING:
    from .route import Route
    from .router import Router

logger = logging.getLogger(__name__)

TYPE_FRAGMENT = """
fragment TypeFragment on __Type {
  ...InputField
  inputFields {
    name
    type {
      ...InputField
      ofType {
        ...InputField
        ofType {
          ...InputField
        }
      }
    }
  }
}

fragment InputField on __Type {
  kind
  name
  description
  enumValues {
    name
    description
  }
}
"""


class OpenApiOptions(BaseModel):
    """Document metadata."""

    title: str = Field(description="API title")
    version: str = Field(description="API version")
    terms_of_service: Optional[str] = None
    license: Optional[str] = None
    host: Optional[str] = None
    base_path: Optional[str] = None


def openapi_path(path: str) -> str:
    """Translate ``:name`` placeholders to ``{name}``."""
    return PATH_VARIABLES_REGEX.sub(r"{\1}", path)


def body_schema_name(route: "Route") -> str:
    return f"{route.operation_name}Body"


def build_introspection_query(type_names: List[str]) -> str:
    fields = "\n".join(f'  {name}: __type(name: "{name}") {{\n    ...TypeFragment\n  }}' for name in type_names)
    return f"query IntrospectionTypeQuery {{\n{fields}\n}}\n{TYPE_FRAGMENT}"


def used_variable_types(routes: List["Route"]) -> List[str]:
    """Unique variable type names across routes, in first-seen order."""
    names: Dict[str, None] = {}
    for route in routes:
        for variable in route.operation_variables.values():
            names.setdefault(variable.type, None)
    return list(names)


async def describe_route_variables(router: "Router") -> Dict[str, Any]:
    """
    Introspect every variable type used by the router's routes.

    Raises:
        GraphQLRestRouterError: If the upstream endpoint cannot be queried
    """
    type_names = used_variable_types(router.routes)
    if not type_names:
        return {}

    request = GraphQLRequest(document=build_introspection_query(type_names), operation_name="IntrospectionTypeQuery")

    try:
        response = await router.transport.send(request)
    except GraphQLRestRouterError:
        logger.error(
            "There was an issue connecting to GraphQL to generate documentation. "
            "Please ensure your connection string is correct and that any required proxies have been applied."
        )
        raise

    data = json_response_transform(response.data, response.headers)
    if not isinstance(data, dict) or not isinstance(data.get("data"), dict):
        raise GraphQLRestRouterError("Introspection response did not contain any data")

    return {name: node for name, node in data["data"].items() if node}


def translate_scalar_type(scalar_type: Optional[str]) -> str:
    match scalar_type:
        case "Int":
            return "integer"
        case "Float":
            return "number"
        case "Boolean":
            return "boolean"
        case _:
            return "string"


def _unwrap(node: Dict[str, Any]) -> Dict[str, Any]:
    while node.get("kind") == "NON_NULL" and node.get("ofType"):
        node = node["ofType"]
    return node


def build_definition(node: Dict[str, Any]) -> Dict[str, Any]:
    """Build a JSON schema for an introspected ``__Type``."""
    node = _unwrap(node)
    kind = node.get("kind")

    if kind == "LIST":
        return {"type": "array", "items": build_definition(node.get("ofType") or {})}

    if kind == "INPUT_OBJECT":
        definition: Dict[str, Any] = {"type": "object", "properties": {}}
        for field in node.get("inputFields") or ():
            definition["properties"][field["name"]] = build_definition(field["type"])
    elif kind == "ENUM":
        definition = {"type": "string", "enum": [value["name"] for value in node.get("enumValues") or ()]}
    else:
        definition = {"type": translate_scalar_type(node.get("name"))}

    if node.get("description"):
        definition["description"] = node["description"]

    return definition


def build_schema_parameter(variable: OperationVariable, ref_location: str) -> Dict[str, Any]:
    ref = {"$ref": f"{ref_location}/{variable.type}"}

    if variable.is_array:
        return {"type": "array", "items": ref}

    return ref


def build_parameters(variables: List[OperationVariable], location: str, ref_location: str) -> List[Dict[str, Any]]:
    return [
        {
            "name": variable.name,
            "required": variable.required or location == "path",
            "in": location,
            "schema": build_schema_parameter(variable, ref_location),
        }
        for variable in variables
    ]


def build_body_definition(variables: List[OperationVariable], ref_location: str) -> Dict[str, Any]:
    return {
        "type": "object",
        "properties": {variable.name: build_schema_parameter(variable, ref_location) for variable in variables},
    }


class MountableDocument(MountableItem):
    """Base class for documentation modules."""

    path = "/docs/openapi"

    def __init__(self, title: str, version: str, **options: Any):
        self.options = OpenApiOptions(title=title, version=version, **options)
        self.router: Optional["Router"] = None

    def on_mount(self, router: "Router") -> "MountableDocument":
        self.router = router
        return self

    def get_router(self) -> "Router":
        if self.router is None:
            raise RouterNotMountedError(
                "Router must be set in order to generate documentation. "
                "Mount the document with router.mount() or call on_mount() with a router."
            )
        return self.router

    @abstractmethod
    async def generate_documentation(self) -> Dict[str, Any]:
        """Build the documentation page for the mounted router."""

    def as_dispatcher(self) -> Dispatcher:
        document: Dict[str, Any] = {}

        async def dispatch(*_: Any, **__: Any) -> RouteResponse:
            if not document:
                try:
                    document.update(await self.generate_documentation())
                except GraphQLRestRouterError as e:
                    return RouteResponse(status_code=500, body={"error": e.message})
            return RouteResponse(status_code=200, body=document)

        return dispatch


class OpenApiV2(MountableDocument):
    """Swagger 2.0 document served at ``/docs/swagger``."""

    path = "/docs/swagger"

    async def generate_documentation(self) -> Dict[str, Any]:
        router = self.get_router()
        options = self.options
        ref_location = "#/definitions"

        page: Dict[str, Any] = {
            "swagger": "2.0",
            "info": {"title": options.title, "version": options.version},
            "paths": {},
            "produces": ["application/json"],
            "definitions": {},
        }

        if options.terms_of_service:
            page["info"]["termsOfService"] = options.terms_of_service
        if options.license:
            page["info"]["license"] = {"name": options.license}
        if options.host:
            page["host"] = options.host
        if options.base_path:
            page["basePath"] = options.base_path

        for route in router.routes:
            route_doc: Dict[str, Any] = {
                "parameters": [],
                "consumes": [],
                "produces": ["application/json"],
                "responses": {
                    "200": {
                        "description": "Server alive. This does not mean that the query was completed "
                        "successfully. Check the errors object in the response",
                    },
                    "400": {"description": "Missing variables"},
                    "500": {"description": "Server error"},
                    "504": {"description": "GraphQL endpoint timed out"},
                },
            }

            if route.http_method != "get":
                route_doc["consumes"].append("application/json")

            route_doc["parameters"] += build_parameters(route.query_variables, "query", ref_location)
            route_doc["parameters"] += build_parameters(route.path_variables, "path", ref_location)
            route_doc["parameters"] += build_parameters(route.body_variables, "body", ref_location)

            page["paths"].setdefault(openapi_path(route.path), {})[route.http_method] = route_doc

        for name, node in (await describe_route_variables(router)).items():
            page["definitions"][name] = build_definition(node)

        return page


class OpenApiV3(MountableDocument):
    """OpenAPI 3.0 document served at ``/docs/openapi``."""

    async def generate_documentation(self) -> Dict[str, Any]:
        router = self.get_router()
        options = self.options
        ref_location = "#/components/schemas"

        doc: Dict[str, Any] = {
            "openapi": "3.0.0",
            "info": {"title": options.title, "version": options.version},
            "paths": {},
            "components": {"schemas": {}},
        }

        if options.terms_of_service:
            doc["info"]["termsOfService"] = options.terms_of_service
        if options.license:
            doc["info"]["license"] = {"name": options.license}
        if options.host:
            doc["servers"] = [{"url": f"{options.host}{options.base_path or ''}"}]

        for route in router.routes:
            route_doc: Dict[str, Any] = {
                "responses": {"default": {"description": "OK"}},
                "parameters": [
                    *build_parameters(route.query_variables, "query", ref_location),
                    *build_parameters(route.path_variables, "path", ref_location),
                ],
            }

            if route.body_variables:
                route_doc["requestBody"] = {
                    "content": {
                        "application/json": {"schema": {"$ref": f"{ref_location}/{body_schema_name(route)}"}},
                    },
                }

            doc["paths"].setdefault(openapi_path(route.path), {})[route.http_method] = route_doc

        schemas = doc["components"]["schemas"]

        for name, node in (await describe_route_variables(router)).items():
            schemas[name] = build_definition(node)

        for route in router.routes:
            if route.body_variables:
                schemas[body_schema_name(route)] = build_body_definition(route.body_variables, ref_location)

        return doc
