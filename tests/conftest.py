"""
Shared test fixtures for the graphql_rest_router test suite.
"""

import json
import logging
from typing import Any, Dict, List, Optional, Tuple

import pytest

from graphql_rest_router import GraphQLRequest, Route, Router, TransportResponse

ENDPOINT = "https://graphql.example.com/graphql"

SCHEMA = """
fragment UserFields on User {
  id
  name
  ...UserContact
}

fragment UserContact on User {
  email
}

fragment PostFields on Post {
  id
  title
}

query GetUserById($id: ID!) {
  user(id: $id) {
    ...UserFields
  }
}

query SearchUsers(
  $query: String
  $page: Int = 1
  $limit: Int!
  $active: Boolean
  $tags: [String!]
  $filter: UserFilter
) {
  searchUsers(query: $query, page: $page, limit: $limit, active: $active, tags: $tags, filter: $filter) {
    id
  }
}

query ListComments($postId: ID!, $limit: Int!, $after: String) {
  comments(postId: $postId, limit: $limit, after: $after) {
    id
  }
}

query GetPosts($userId: ID!, $first: Int) {
  posts(userId: $userId, first: $first) {
    ...PostFields
  }
}

mutation CreateUser($input: UserInput!, $notify: Boolean) {
  createUser(input: $input, notify: $notify) {
    ...UserFields
  }
}
"""

USER_RESPONSE = {"data": {"user": {"id": "7", "name": "Ada", "email": "ada@example.com"}}}


class FakeTransport:
    """Records every request and answers with a canned response or error."""

    def __init__(
        self,
        data: Any = None,
        status: int = 200,
        error: Optional[Exception] = None,
    ):
        self.data = USER_RESPONSE if data is None else data
        self.status = status
        self.error = error
        self.calls: List[Tuple[GraphQLRequest, Optional[Dict[str, Any]]]] = []

    @property
    def call_count(self) -> int:
        return len(self.calls)

    @property
    def last_request(self) -> GraphQLRequest:
        return self.calls[-1][0]

    @property
    def last_payload(self) -> Optional[Dict[str, Any]]:
        return self.calls[-1][1]

    async def send(self, request: GraphQLRequest, payload: Optional[Dict[str, Any]] = None) -> TransportResponse:
        self.calls.append((request, payload))

        if self.error is not None:
            raise self.error

        return TransportResponse(
            status=self.status,
            data=json.dumps(self.data),
            headers={"content-type": "application/json"},
        )


@pytest.fixture
def schema() -> str:
    """GraphQL document holding every operation used by the tests."""
    return SCHEMA


@pytest.fixture
def transport() -> FakeTransport:
    """Transport answering with a single user."""
    return FakeTransport()


@pytest.fixture
def user_route(schema: str, transport: FakeTransport) -> Route:
    """GetUserById exposed at /user/:id."""
    return Route(schema, "GetUserById", transport=transport).at("/user/:id")


@pytest.fixture
def router(schema: str, transport: FakeTransport) -> Router:
    """Router over the shared schema using the fake transport."""
    return Router(ENDPOINT, schema, transport=transport)


@pytest.fixture
def make_transport():
    """Factory for transports with custom responses or errors."""
    return FakeTransport


@pytest.fixture(autouse=True)
def reset_route_loggers():
    """Undo log levels set on per-route loggers."""
    yield
    for name, logger in list(logging.Logger.manager.loggerDict.items()):
        if name.startswith("graphql_rest_router.route.") and isinstance(logger, logging.Logger):
            logger.setLevel(logging.NOTSET)
