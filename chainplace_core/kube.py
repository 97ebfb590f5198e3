"""
Kubernetes-backed cluster state.

Implements ``ClusterState`` on top of the official Kubernetes Python client.
Pods map to ``Workload``, nodes to ``Node``, ReplicaSets and Deployments to
``OwnerObject``. Listing failures become ``ClusterReadError``; a failed owner
hop becomes ``OwnerLookupError`` so callers can degrade instead of failing.
"""

from typing import Any, Dict, List, Tuple

import urllib3
from kubernetes import client, config
from kubernetes.client.rest import ApiException
from kubernetes.utils import parse_quantity

from .cluster import GROUPING_KIND, CallContext, ClusterState
from .errors import ClusterReadError, OwnerLookupError
from .logging import get_logger
from .types import Node, OwnerObject, OwnerReference, Workload

logger = get_logger(__name__)

_API_ERRORS = (ApiException, urllib3.exceptions.HTTPError)


class KubernetesCluster(ClusterState):
    """Reads nodes, pods and pod owners from a Kubernetes API server."""

    def __init__(self, core_api=None, apps_api=None):
        self.core_api = core_api or client.CoreV1Api()
        self.apps_api = apps_api or client.AppsV1Api()

    @classmethod
    def from_environment(cls) -> "KubernetesCluster":
        """Use the in-cluster service account, falling back to kubeconfig."""
        try:
            config.load_incluster_config()
        except config.ConfigException:
            config.load_kube_config()
        return cls()

    def list_nodes(self, ctx: CallContext) -> List[Node]:
        ctx.check("list_nodes")
        try:
            items = self.core_api.list_node(**_request_options(ctx)).items
        except _API_ERRORS as e:
            raise ClusterReadError("list_nodes", _describe(e)) from e
        return [node_from_api(item) for item in items]

    def get_node(self, ctx: CallContext, name: str) -> Node:
        ctx.check("get_node")
        try:
            item = self.core_api.read_node(name, **_request_options(ctx))
        except _API_ERRORS as e:
            raise ClusterReadError("get_node", _describe(e), resource=name) from e
        return node_from_api(item)

    def list_workloads_on_node(
        self, ctx: CallContext, node_name: str, namespace: str
    ) -> List[Workload]:
        ctx.check("list_workloads_on_node")
        try:
            items = self.core_api.list_namespaced_pod(
                namespace,
                field_selector=f"spec.nodeName={node_name}",
                **_request_options(ctx),
            ).items
        except _API_ERRORS as e:
            raise ClusterReadError("list_workloads_on_node", _describe(e), resource=node_name) from e
        return [workload_from_api(item) for item in items]

    def list_workloads(
        self, ctx: CallContext, namespace: str, selector: Dict[str, str]
    ) -> List[Workload]:
        ctx.check("list_workloads")
        label_selector = ",".join(f"{k}={v}" for k, v in sorted(selector.items()))
        try:
            items = self.core_api.list_namespaced_pod(
                namespace, label_selector=label_selector, **_request_options(ctx)
            ).items
        except _API_ERRORS as e:
            raise ClusterReadError("list_workloads", _describe(e), resource=label_selector) from e
        return [workload_from_api(item) for item in items]

    def get_owner_chain(
        self, ctx: CallContext, workload: Workload
    ) -> Tuple[OwnerObject, OwnerObject]:
        ctx.check("get_owner_chain")
        refs = workload.owner_references
        if not refs or refs[0].kind != GROUPING_KIND:
            raise OwnerLookupError(workload.key, "workload", f"no owner {GROUPING_KIND}")

        try:
            replica_set = self.apps_api.read_namespaced_replica_set(
                refs[0].name, workload.namespace, **_request_options(ctx)
            )
        except _API_ERRORS as e:
            raise OwnerLookupError(workload.key, "grouping", _describe(e)) from e
        grouping = owner_from_api("ReplicaSet", replica_set)

        if not grouping.owner_references:
            raise OwnerLookupError(workload.key, "grouping", f"no owner for {grouping.name}")

        ctx.check("get_owner_chain")
        try:
            deployment = self.apps_api.read_namespaced_deployment(
                grouping.owner_references[0].name, grouping.namespace, **_request_options(ctx)
            )
        except _API_ERRORS as e:
            raise OwnerLookupError(workload.key, "template", _describe(e)) from e

        return grouping, owner_from_api("Deployment", deployment)


def node_from_api(item: Any) -> Node:
    allocatable = (item.status.allocatable if item.status else None) or {}
    return Node(
        name=item.metadata.name,
        allocatable_milli_cpu=int(parse_quantity(allocatable.get("cpu", "0")) * 1000),
        allocatable_memory=int(parse_quantity(allocatable.get("memory", "0"))),
        labels=dict(item.metadata.labels or {}),
        annotations=dict(item.metadata.annotations or {}),
    )


def workload_from_api(item: Any) -> Workload:
    metadata = item.metadata
    return Workload(
        name=metadata.name,
        namespace=metadata.namespace or "default",
        labels=dict(metadata.labels or {}),
        annotations=dict(metadata.annotations or {}),
        owner_references=_owner_refs(metadata.owner_references),
        node_name=(item.spec.node_name if item.spec else None) or None,
    )


def owner_from_api(kind: str, item: Any) -> OwnerObject:
    metadata = item.metadata
    return OwnerObject(
        kind=kind,
        name=metadata.name,
        namespace=metadata.namespace or "default",
        labels=dict(metadata.labels or {}),
        annotations=dict(metadata.annotations or {}),
        owner_references=_owner_refs(metadata.owner_references),
    )


def _owner_refs(refs) -> List[OwnerReference]:
    return [OwnerReference(kind=ref.kind, name=ref.name) for ref in refs or []]


def _request_options(ctx: CallContext) -> Dict[str, Any]:
    remaining = ctx.remaining()
    if remaining is None:
        return {}
    return {"_request_timeout": remaining}


def _describe(error: Exception) -> str:
    if isinstance(error, ApiException):
        return f"{error.status} {error.reason}"
    return str(error)
