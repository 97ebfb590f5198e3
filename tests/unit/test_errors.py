"""Tests for error definitions."""

import pytest

from chainplace_core.errors import (
    AdmissionError,
    ChainplaceError,
    ClusterReadError,
    OwnerLookupError,
    ReadCancelledError,
    ScoringError,
)


class TestChainplaceError:
    def test_message_only(self):
        assert str(ChainplaceError("boom")) == "boom"

    def test_details_rendered(self):
        error = ChainplaceError("boom", {"node": "n1"})
        assert str(error) == "boom (node=n1)"


class TestErrorHierarchy:
    @pytest.mark.parametrize(
        "error",
        [
            ClusterReadError("list_nodes", "timeout"),
            ReadCancelledError("list_nodes"),
            OwnerLookupError("default/w", "grouping", "not found"),
            ScoringError("NetworkAware", "default/w", "n1", "timeout"),
            AdmissionError("default/w", "timeout"),
        ],
    )
    def test_all_are_chainplace_errors(self, error):
        assert isinstance(error, ChainplaceError)


class TestClusterReadError:
    def test_with_resource(self):
        error = ClusterReadError("get_node", "node not found", resource="n9")
        assert error.message == "Cluster read failed during get_node for n9: node not found"
        assert error.details["resource"] == "n9"

    def test_cancelled_default_reason(self):
        error = ReadCancelledError("list_nodes")
        assert error.reason == "context cancelled"
        assert error.resource is None


class TestScoringError:
    def test_identity_attached(self):
        error = ScoringError("NetworkSloAware", "default/api", "n2", "timeout", operation="get_node")
        assert error.plugin == "NetworkSloAware"
        assert error.node_name == "n2"
        assert error.details["operation"] == "get_node"
        assert "failed to score node 'n2' for default/api: timeout" in str(error)
