"""
Tests for request fingerprinting.
"""

from graphql_rest_router.cache import fingerprint


class TestFingerprint:
    """Test cache key derivation."""

    def test_deterministic(self):
        """Test that identical inputs give identical keys."""
        first = fingerprint("/user/:id", {"id": 7}, {}, [])
        second = fingerprint("/user/:id", {"id": 7}, {}, [])

        assert first == second
        assert len(first) == 64

    def test_variable_order_does_not_matter(self):
        """Test that mapping order never changes the key."""
        first = fingerprint("/search", {"a": 1, "b": {"x": 1, "y": 2}}, {}, [])
        second = fingerprint("/search", {"b": {"y": 2, "x": 1}, "a": 1}, {}, [])

        assert first == second

    def test_variables_change_key(self):
        """Test that different variable values give different keys."""
        assert fingerprint("/user", {"id": 7}, {}, []) != fingerprint("/user", {"id": 8}, {}, [])

    def test_path_changes_key(self):
        """Test that the route path is part of the key."""
        assert fingerprint("/a", {"id": 7}, {}, []) != fingerprint("/b", {"id": 7}, {}, [])

    def test_allow_listed_header_changes_key(self):
        """Test that cache key headers contribute their value."""
        first = fingerprint("/user", {}, {"x-tenant": "a"}, ["x-tenant"])
        second = fingerprint("/user", {}, {"x-tenant": "b"}, ["x-tenant"])

        assert first != second

    def test_other_headers_are_ignored(self):
        """Test that headers outside the allow-list never contribute."""
        first = fingerprint("/user", {}, {"x-tenant": "a", "cookie": "1"}, ["x-tenant"])
        second = fingerprint("/user", {}, {"x-tenant": "a", "cookie": "2"}, ["x-tenant"])

        assert first == second

    def test_header_list_order_does_not_matter(self):
        """Test that allow-list order never changes the key."""
        headers = {"x-a": "1", "x-b": "2"}

        assert fingerprint("/", {}, headers, ["x-a", "x-b"]) == fingerprint("/", {}, headers, ["x-b", "x-a"])

    def test_variables_and_headers_do_not_collide(self):
        """Test that a variable and a header with the same name and value differ."""
        as_variable = fingerprint("/", {"x-a": "1"}, {}, [])
        as_header = fingerprint("/", {}, {"x-a": "1"}, ["x-a"])

        assert as_variable != as_header
