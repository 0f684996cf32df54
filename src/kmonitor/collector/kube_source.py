"""
Metrics source backed by metrics-server (metrics.k8s.io/v1beta1).

The Metrics API is an aggregated extension API, so the generated typed
clients don't know about it -- we go through CustomObjectsApi and get
plain dicts back. Fields that are missing on an item default to "".
"""

from __future__ import annotations

import logging
from typing import List, Optional

import urllib3
from kubernetes import client as k8s_client
from kubernetes import config as k8s_config
from kubernetes.client.rest import ApiException

from kmonitor.collector.base import MetricsSource, MetricsSourceError
from kmonitor.metrics import ContainerUsage, NodeUsage, PodUsage

log = logging.getLogger(__name__)

METRICS_GROUP = "metrics.k8s.io"
METRICS_VERSION = "v1beta1"


def load_api_client(kubeconfig: Optional[str] = None) -> k8s_client.ApiClient:
    """Build an ApiClient from in-cluster credentials, else a kubeconfig file.

    With no `kubeconfig` path the client library's default lookup applies
    ($KUBECONFIG, then ~/.kube/config). Raises ConfigException or OSError
    when neither works.
    """
    configuration = k8s_client.Configuration()
    try:
        k8s_config.load_incluster_config(client_configuration=configuration)
        log.info("Loaded in-cluster config")
    except k8s_config.ConfigException as e:
        log.info("In-cluster config unavailable, falling back to kubeconfig: %s", e)
        k8s_config.load_kube_config(config_file=kubeconfig, client_configuration=configuration)
        log.info("Loaded kubeconfig %s", kubeconfig or "(default)")
    return k8s_client.ApiClient(configuration)


def _parse_node(item: dict) -> NodeUsage:
    metadata = item.get("metadata") or {}
    usage = item.get("usage") or {}
    return NodeUsage(
        name=metadata.get("name", ""),
        cpu=usage.get("cpu", ""),
        memory=usage.get("memory", ""),
        timestamp=item.get("timestamp"),
        window=item.get("window"),
    )


def _parse_pod(item: dict) -> PodUsage:
    metadata = item.get("metadata") or {}
    containers = []
    for c in item.get("containers") or []:
        usage = c.get("usage") or {}
        containers.append(ContainerUsage(
            name=c.get("name", ""),
            cpu=usage.get("cpu", ""),
            memory=usage.get("memory", ""),
        ))
    return PodUsage(
        namespace=metadata.get("namespace", ""),
        name=metadata.get("name", ""),
        containers=tuple(containers),
        timestamp=item.get("timestamp"),
        window=item.get("window"),
    )


class KubeMetricsSource(MetricsSource):

    def __init__(self, api_client: k8s_client.ApiClient):
        self._api_client = api_client
        self._api = k8s_client.CustomObjectsApi(api_client)

    def list_node_usage(self, timeout: float) -> List[NodeUsage]:
        try:
            result = self._api.list_cluster_custom_object(
                group=METRICS_GROUP,
                version=METRICS_VERSION,
                plural="nodes",
                _request_timeout=timeout,
            )
        except (ApiException, urllib3.exceptions.HTTPError) as e:
            raise MetricsSourceError(f"listing node metrics failed: {e}") from e

        return [_parse_node(item) for item in result.get("items", [])]

    def list_pod_usage(self, namespace: str, timeout: float) -> List[PodUsage]:
        try:
            if namespace:
                result = self._api.list_namespaced_custom_object(
                    group=METRICS_GROUP,
                    version=METRICS_VERSION,
                    namespace=namespace,
                    plural="pods",
                    _request_timeout=timeout,
                )
            else:
                result = self._api.list_cluster_custom_object(
                    group=METRICS_GROUP,
                    version=METRICS_VERSION,
                    plural="pods",
                    _request_timeout=timeout,
                )
        except (ApiException, urllib3.exceptions.HTTPError) as e:
            scope = namespace or "all namespaces"
            raise MetricsSourceError(f"listing pod metrics ({scope}) failed: {e}") from e

        return [_parse_pod(item) for item in result.get("items", [])]

    def name(self) -> str:
        return f"metrics-server ({self._api_client.configuration.host})"

    def close(self):
        self._api_client.close()
