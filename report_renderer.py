"""
Text and JSON rendering of the datastore report.

Both renderers are pure functions of the report model. The text renderer is
split per cluster so the command line can print a cluster header before the
cluster's storage is read and the body once it is resolved.
"""
import json

from storage_models import ClusterReport, DatacenterReport, DatastoreSummary

NO_DATASTORE_CLUSTERS = "  No datastore clusters found for this cluster"
NO_DATASTORES_IN_POD = "    No datastores from this cluster in this datastore cluster"
NO_STANDALONE_DATASTORES = "    No standalone datastores found"
STANDALONE_HEADER = "  Standalone Datastores:"


def format_datacenter_line(datacenter_name):
    return f"Using datacenter: {datacenter_name}"


def format_cluster_header(cluster_name):
    """Blank line, cluster title and a dash rule as wide as the title."""
    return [
        "",
        f"Cluster: {cluster_name}",
        "-" * (len(cluster_name) + 9),
    ]


def format_datastore_line(datastore: DatastoreSummary):
    return (f"    - {datastore.name} "
            f"(Capacity: {datastore.capacity_gb:.2f} GB, Free: {datastore.free_space_gb:.2f} GB)")


def format_cluster_body(cluster_report: ClusterReport):
    """Lines listing the storage pods and standalone datastores of a cluster."""
    if cluster_report.degraded:
        return [f"  {cluster_report.error}"]

    lines = []
    if not cluster_report.datastore_clusters:
        lines.append(NO_DATASTORE_CLUSTERS)

    for pod in cluster_report.datastore_clusters:
        lines.append(f"  Datastore Cluster: {pod.name}")
        if pod.datastores:
            lines.extend(format_datastore_line(ds) for ds in pod.datastores)
        else:
            lines.append(NO_DATASTORES_IN_POD)

    lines.append(STANDALONE_HEADER)
    if cluster_report.standalone_datastores:
        lines.extend(format_datastore_line(ds) for ds in cluster_report.standalone_datastores)
    else:
        lines.append(NO_STANDALONE_DATASTORES)

    return lines


def render_text(report: DatacenterReport):
    """Whole text report as a single string."""
    lines = [format_datacenter_line(report.datacenter)]
    for cluster_report in report.clusters:
        lines.extend(format_cluster_header(cluster_report.name))
        lines.extend(format_cluster_body(cluster_report))
    return "\n".join(lines)


def report_to_dict(report: DatacenterReport):
    """
    Structured form of the report.

    Storage pods without a datastore of the cluster are left out, and a
    degraded cluster appears with empty lists.
    """
    return report.to_dict()


def render_json(report: DatacenterReport):
    return json.dumps(report_to_dict(report), indent=2)
