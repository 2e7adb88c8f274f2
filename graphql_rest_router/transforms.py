"""
Request and response transform pipelines.

Request transforms receive the JSON payload and the outgoing headers and
return the payload to send; they may mutate the headers. Response transforms
receive the response data and the upstream response headers and return the
data handed back to the caller. The default transforms always run first.
"""

from __future__ import annotations

import json
from typing import Any, Dict, Iterable

from .models import RequestTransform, ResponseTransform


def json_request_transform(payload: Dict[str, Any], headers: Dict[str, str]) -> Dict[str, Any]:
    """Mark the request body as JSON."""
    headers["content-type"] = "application/json"
    return payload


def json_response_transform(data: Any, headers: Dict[str, str]) -> Any:
    """Decode JSON text, leaving decoded or non-JSON data untouched."""
    if isinstance(data, bytes):
        data = data.decode("utf-8")

    if isinstance(data, str):
        try:
            return json.loads(data)
        except ValueError:
            return data

    return data


DEFAULT_REQUEST_TRANSFORMS = (json_request_transform,)
DEFAULT_RESPONSE_TRANSFORMS = (json_response_transform,)


def apply_request_transforms(
    transforms: Iterable[RequestTransform], payload: Dict[str, Any], headers: Dict[str, str]
) -> Dict[str, Any]:
    """Run the default request transforms, then ``transforms``, in order."""
    for transform in (*DEFAULT_REQUEST_TRANSFORMS, *transforms):
        payload = transform(payload, headers)
    return payload


def apply_response_transforms(transforms: Iterable[ResponseTransform], data: Any, headers: Dict[str, str]) -> Any:
    """Run the default response transforms, then ``transforms``, in order."""
    for transform in (*DEFAULT_RESPONSE_TRANSFORMS, *transforms):
        data = transform(data, headers)
    return data
