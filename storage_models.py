#!/usr/bin/env python3
"""
Storage topology report model.

Plain dataclasses describing what the report shows for one datacenter:
clusters, the storage pods (datastore clusters) visible to each cluster and
the standalone datastores. Inventory objects are reduced to
``StoragePodGroup`` and ``DatastoreDetails`` before they reach the resolver,
so nothing here touches pyVmomi.
"""
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

BYTES_PER_GB = 1024 ** 3


def bytes_to_gb(value):
    """Convert a byte count to binary gigabytes (GiB)."""
    return float(value or 0) / BYTES_PER_GB


@dataclass(frozen=True)
class DatastoreDetails:
    """Name and capacity of one datastore, keyed by its managed object id."""
    ref: str
    name: str
    capacity_bytes: int
    free_bytes: int


@dataclass(frozen=True)
class StoragePodGroup:
    """A storage pod and the managed object ids of its children, in inventory order."""
    name: str
    ref: str
    member_refs: tuple = ()


@dataclass
class DatastoreSummary:
    name: str
    capacity_gb: float
    free_space_gb: float

    @classmethod
    def from_details(cls, details: DatastoreDetails) -> 'DatastoreSummary':
        return cls(
            name=details.name,
            capacity_gb=bytes_to_gb(details.capacity_bytes),
            free_space_gb=bytes_to_gb(details.free_bytes)
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            'name': self.name,
            'capacity_gb': self.capacity_gb,
            'free_space_gb': self.free_space_gb
        }


@dataclass
class DatastoreClusterReport:
    name: str
    datastores: List[DatastoreSummary] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'name': self.name,
            'datastores': [ds.to_dict() for ds in self.datastores]
        }


@dataclass
class ClusterReport:
    """
    Storage view of one compute cluster.

    ``datastore_clusters`` keeps every discovered storage pod, including the
    ones with no datastore reachable from this cluster, so the text report
    can announce them. ``error`` is set when the cluster could not be read;
    its collections then stay empty.
    """
    name: str
    datastore_clusters: List[DatastoreClusterReport] = field(default_factory=list)
    standalone_datastores: List[DatastoreSummary] = field(default_factory=list)
    error: Optional[str] = None

    @property
    def degraded(self) -> bool:
        return self.error is not None

    def populated_datastore_clusters(self) -> List[DatastoreClusterReport]:
        """Storage pods holding at least one datastore of this cluster."""
        return [pod for pod in self.datastore_clusters if pod.datastores]

    def to_dict(self) -> Dict[str, Any]:
        return {
            'name': self.name,
            'datastore_clusters': [pod.to_dict() for pod in self.populated_datastore_clusters()],
            'standalone_datastores': [ds.to_dict() for ds in self.standalone_datastores]
        }


@dataclass
class DatacenterReport:
    datacenter: str
    clusters: List[ClusterReport] = field(default_factory=list)

    def add_cluster(self, cluster_report: ClusterReport):
        self.clusters.append(cluster_report)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'datacenter': self.datacenter,
            'clusters': [cluster.to_dict() for cluster in self.clusters]
        }
