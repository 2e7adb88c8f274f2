"""
Variable binding for GraphQL routes.

Operation variables are partitioned into path, query and body variables,
raw string values from the URL are coerced to the declared GraphQL type, and
caller input is merged with default and static values.
"""

from __future__ import annotations

import json
import re
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional

from .models import OperationVariable, OperationVariableMap

PATH_VARIABLES_REGEX = re.compile(r":([A-Za-z_][A-Za-z0-9_]*)")


def clean_path(path: str) -> str:
    """Ensure a route path starts with a slash."""
    if path.startswith("/"):
        return path

    return f"/{path}"


def path_variable_names(path: str) -> List[str]:
    """Return the ``:name`` placeholders found in a path, in order."""
    return PATH_VARIABLES_REGEX.findall(path)


def path_variables(path: str, variables: OperationVariableMap) -> List[OperationVariable]:
    """Variables bound from the URL path."""
    names = set(path_variable_names(path))

    return [variable for variable in variables.values() if variable.name in names]


def non_path_variables(path: str, variables: OperationVariableMap) -> List[OperationVariable]:
    names = set(path_variable_names(path))

    return [variable for variable in variables.values() if variable.name not in names]


def query_variables(path: str, http_method: str, variables: OperationVariableMap) -> List[OperationVariable]:
    """Variables bound from the query string; only GET routes have any."""
    if http_method != "get":
        return []

    return non_path_variables(path, variables)


def body_variables(path: str, http_method: str, variables: OperationVariableMap) -> List[OperationVariable]:
    """Variables bound from the request body; GET routes have none."""
    if http_method == "get":
        return []

    return non_path_variables(path, variables)


def attempt_json_parse(value: str) -> Any:
    """Decode ``value`` as JSON, returning it unchanged when that fails."""
    try:
        return json.loads(value)
    except (TypeError, ValueError):
        return value


def coerce(value: Any, variable: Optional[OperationVariable] = None) -> Any:
    """
    Convert a raw URL value to the declared type of its variable.

    ``Int`` values are parsed in base 10, ``Boolean`` values follow string
    truthiness, ``String`` values are kept as-is. Every other type, lists,
    and values without a known variable go through a best-effort JSON decode.
    Values that are not strings are returned untouched.
    """
    if not isinstance(value, str):
        return value

    if variable is None or variable.is_array:
        return attempt_json_parse(value)

    match variable.type:
        case "Int":
            try:
                return int(value, 10)
            except ValueError:
                return value
        case "Boolean":
            return bool(value)
        case "String":
            return value
        case _:
            return attempt_json_parse(value)


def coerce_all(values: Mapping[str, Any], variables: OperationVariableMap) -> Dict[str, Any]:
    """Coerce every value of ``values`` using the matching variable definition."""
    return {name: coerce(value, variables.get(name)) for name, value in values.items()}


@dataclass
class AssemblyResult:
    """Outcome of merging caller input with configured variables."""

    variables: Dict[str, Any] = field(default_factory=dict)
    missing: List[str] = field(default_factory=list)
    discarded: List[str] = field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        return not self.missing


def required_variables(variables: OperationVariableMap) -> List[str]:
    """Names of variables that are required and have no default value."""
    return [
        variable.name
        for variable in variables.values()
        if variable.required and variable.default_value is None
    ]


def assemble(
    provided: Mapping[str, Any],
    variables: OperationVariableMap,
    default_variables: Optional[Mapping[str, Any]] = None,
    static_variables: Optional[Mapping[str, Any]] = None,
) -> AssemblyResult:
    """
    Merge caller input with default and static variables.

    Precedence, lowest first: ``default_variables``, ``provided``,
    ``static_variables``. Provided names that collide with a static variable
    are reported in ``discarded``. Required variables absent after the merge
    are reported in ``missing``.
    """
    static_variables = static_variables or {}
    assembled = {**(default_variables or {}), **provided, **static_variables}

    return AssemblyResult(
        variables=assembled,
        missing=[name for name in required_variables(variables) if name not in assembled],
        discarded=[name for name in provided if name in static_variables],
    )
