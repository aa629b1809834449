#!/usr/bin/env python3
"""
Read-only vSphere inventory access for the datastore report.

``VSphereInventory`` wraps a pyVmomi service content object and exposes the
few lookups the report needs: datacenters, compute clusters, datastore
folders, storage pods (datastore clusters) and datastores. Storage pods and
datastores are reduced to ``StoragePodGroup`` and ``DatastoreDetails`` so
the topology resolver never handles managed objects.

Every lookup that fails raises ``VSphereError``. Lookups of a single item
inside a scan (one storage pod of a folder) return None instead, and the
caller treats that as "not found".
"""
import logging
from typing import Dict, List, Optional

from pyVmomi import vim

from error_handler import ResourceNotFoundError, VSphereError, robust_operation
from logger import get_logger
from storage_models import DatastoreDetails, StoragePodGroup

logger = get_logger(__name__)

# Datastore folder lookups, tried in order; the first one returning folders wins.
# 'child' looks the name up below the datacenter, 'inventory_path' formats the
# template with the datacenter's inventory path.
DATASTORE_FOLDER_LOOKUPS = (
    ('child', 'datastores'),
    ('child', 'datastore'),
    ('inventory_path', '{datacenter_path}/datastore'),
)


def get_moid(obj):
    """Managed object id of a pyVmomi object, e.g. 'datastore-101'."""
    return str(obj._moId)


def inventory_path(entity):
    """
    Inventory path of a managed entity, e.g. 'Folder/DC01'.

    The root folder is not part of the path, matching what
    SearchIndex.FindByInventoryPath expects.
    """
    names = []
    while entity is not None and getattr(entity, 'parent', None) is not None:
        names.append(entity.name)
        entity = entity.parent
    return '/'.join(reversed(names))


class VSphereInventory:
    """Narrow read interface over the vSphere inventory."""

    def __init__(self, service_instance=None, content=None):
        """
        Args:
            service_instance: Connected pyVmomi service instance
            content: Service content, used instead of the service instance when given
        """
        if content is None:
            content = service_instance.RetrieveContent()
        self.content = content

    def _get_all_obj(self, folder, vimtype, recurse=True):
        """Get all vSphere objects of the given types below a folder."""
        container = self.content.viewManager.CreateContainerView(folder, vimtype, recurse)
        try:
            return list(container.view)
        finally:
            container.Destroy()

    @robust_operation(VSphereError, "Error listing datacenters")
    def list_datacenters(self) -> List:
        return self._get_all_obj(self.content.rootFolder, [vim.Datacenter])

    def resolve_datacenter(self, name=None):
        """
        Find the datacenter to report on.

        A name matches either the datacenter name or its inventory path.
        Without a name, the default datacenter is the only datacenter of
        the inventory.

        Raises:
            ResourceNotFoundError: no datacenter matches, or no default exists
        """
        datacenters = self.list_datacenters()

        if name:
            wanted = name.strip('/')
            for datacenter in datacenters:
                if datacenter.name == wanted or inventory_path(datacenter) == wanted:
                    logger.info(f"Resolved datacenter {name}")
                    return datacenter
            raise ResourceNotFoundError(f"datacenter '{name}' not found", {'datacenter': name})

        if len(datacenters) == 1:
            return datacenters[0]

        if not datacenters:
            raise ResourceNotFoundError("no datacenters found")

        raise ResourceNotFoundError(
            "default datacenter resolves to multiple instances, please specify",
            {'datacenters': len(datacenters)}
        )

    @robust_operation(VSphereError, "Error getting clusters")
    def list_clusters(self, datacenter) -> List:
        return self._get_all_obj(datacenter.hostFolder, [vim.ClusterComputeResource])

    def get_cluster_name(self, cluster) -> str:
        """
        Name of a compute cluster.

        Raises:
            VSphereError: the name could not be read; details carry the
                cluster's managed object id so the cluster can still be named
        """
        try:
            return cluster.name
        except Exception as e:
            ref = get_moid(cluster)
            logger.warning(f"Error getting name of cluster {ref}: {str(e)}")
            raise VSphereError(
                f"Error getting cluster name: {getattr(e, 'msg', None) or str(e)}",
                {'cluster': ref}, e
            ) from e

    def _lookup_datastore_folder(self, datacenter, kind, value):
        search_index = self.content.searchIndex
        if kind == 'child':
            found = search_index.FindChild(datacenter, value)
        else:
            path = value.format(datacenter_path=inventory_path(datacenter))
            found = search_index.FindByInventoryPath(path)

        if found is not None and isinstance(found, vim.Folder):
            return [found]
        return []

    def list_datastore_folders(self, datacenter) -> List:
        """
        Locate the datastore folder(s) of a datacenter.

        Each lookup of DATASTORE_FOLDER_LOOKUPS is tried in order and the
        first one that succeeds with a non-empty result is used.

        Raises:
            VSphereError: every lookup failed or found nothing
        """
        last_error = None
        for kind, value in DATASTORE_FOLDER_LOOKUPS:
            try:
                folders = self._lookup_datastore_folder(datacenter, kind, value)
            except Exception as e:
                logger.debug(f"Datastore folder lookup {kind}:{value} failed: {str(e)}")
                last_error = e
                continue

            if folders:
                logger.debug(f"Datastore folder found with lookup {kind}:{value}")
                return folders

        reason = getattr(last_error, 'msg', None) or str(last_error) if last_error else 'folder not found'
        raise VSphereError(
            f"Error finding datastore folders: {reason}",
            {'lookups': [f"{kind}:{value}" for kind, value in DATASTORE_FOLDER_LOOKUPS]},
            last_error
        )

    def _read_storage_pod(self, pod) -> Optional[StoragePodGroup]:
        """Read name and children of a storage pod, or None when the pod cannot be read."""
        try:
            return StoragePodGroup(
                name=pod.name,
                ref=get_moid(pod),
                member_refs=tuple(get_moid(child) for child in pod.childEntity)
            )
        except Exception as e:
            logger.debug(f"Skipping unreadable storage pod: {str(e)}")
            return None

    @robust_operation(VSphereError, "Error listing datastore clusters", log_level=logging.WARNING)
    def list_storage_pods(self, folder) -> List[StoragePodGroup]:
        """Storage pods anywhere below a datastore folder, subfolders included."""
        pods = []
        for storage_pod in self._get_all_obj(folder, [vim.StoragePod]):
            pod = self._read_storage_pod(storage_pod)
            if pod is not None:
                pods.append(pod)
        return pods

    @robust_operation(VSphereError, "Error getting cluster details", log_level=logging.WARNING)
    def get_cluster_datastores(self, cluster) -> List:
        """Datastores reachable by the hosts of a cluster."""
        return list(cluster.datastore)

    @robust_operation(VSphereError, "Error retrieving datastore details", log_level=logging.WARNING)
    def get_datastore_details(self, datastores) -> Dict[str, DatastoreDetails]:
        """Name, capacity and free space per datastore, keyed by managed object id."""
        details = {}
        for datastore in datastores:
            summary = datastore.summary
            ref = get_moid(datastore)
            details[ref] = DatastoreDetails(
                ref=ref,
                name=datastore.name,
                capacity_bytes=summary.capacity or 0,
                free_bytes=summary.freeSpace or 0
            )
        return details
