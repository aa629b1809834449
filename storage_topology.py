#!/usr/bin/env python3
"""
Cluster storage topology resolution.

For one compute cluster, splits the datastores the cluster can reach into
the storage pods (datastore clusters) that contain them and the standalone
remainder. Each reachable datastore is reported exactly once: under the
first storage pod, in discovery order, whose children include it, or as
standalone when no pod claims it.
"""
from typing import Dict, Iterable

from error_handler import VSphereError
from logger import get_logger
from storage_models import (
    ClusterReport,
    DatastoreClusterReport,
    DatastoreDetails,
    DatastoreSummary,
    StoragePodGroup,
)

logger = get_logger(__name__)


def resolve_cluster_storage(cluster_name: str,
                            storage_pods: Iterable[StoragePodGroup],
                            datastore_details: Dict[str, DatastoreDetails]) -> ClusterReport:
    """
    Partition a cluster's datastores into storage pod buckets and standalone.

    Args:
        cluster_name: Name of the compute cluster
        storage_pods: Storage pods of the datacenter, in discovery order
        datastore_details: Datastores reachable by the cluster, keyed by
            managed object id, in the order the inventory returned them

    Returns:
        ClusterReport listing every discovered pod (possibly empty) and the
        unclaimed datastores as standalone
    """
    report = ClusterReport(name=cluster_name)
    claimed = set()

    for pod in storage_pods:
        pod_report = DatastoreClusterReport(name=pod.name)
        for ref in pod.member_refs:
            # Children that are not datastores of this cluster, or that an
            # earlier pod already claimed, are skipped.
            details = datastore_details.get(ref)
            if details is None or ref in claimed:
                continue
            claimed.add(ref)
            pod_report.datastores.append(DatastoreSummary.from_details(details))
        report.datastore_clusters.append(pod_report)

    report.standalone_datastores = [
        DatastoreSummary.from_details(details)
        for ref, details in datastore_details.items()
        if ref not in claimed
    ]
    return report


def collect_cluster_report(inventory, datacenter, cluster, cluster_name=None) -> ClusterReport:
    """
    Read the storage of one cluster from the inventory and resolve it.

    A vSphere failure degrades this cluster only: the returned report has
    empty collections and carries the error message.
    """
    cluster_name = cluster_name or cluster.name

    try:
        storage_pods = []
        for folder in inventory.list_datastore_folders(datacenter):
            storage_pods.extend(inventory.list_storage_pods(folder))

        datastores = inventory.get_cluster_datastores(cluster)
        datastore_details = inventory.get_datastore_details(datastores)
    except VSphereError as e:
        logger.warning(f"Skipping storage of cluster {cluster_name}: {e.message}")
        return ClusterReport(name=cluster_name, error=e.message)

    logger.debug(f"Cluster {cluster_name}: {len(datastore_details)} reachable datastores, storage pods "
                 f"[{', '.join(f'{pod.name} ({pod.ref})' for pod in storage_pods)}]")
    return resolve_cluster_storage(cluster_name, storage_pods, datastore_details)
