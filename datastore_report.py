#!/usr/bin/env python3
"""
Report datastore clusters and standalone datastores per vSphere compute cluster.

For the selected datacenter, every compute cluster is listed with the storage
pods (datastore clusters) holding its datastores and the datastores that
belong to no storage pod, with capacity and free space in GB.

Usage:
    python datastore_report.py --url vcenter.example.com --username admin --password secret
    python datastore_report.py --datacenter DC01 -o json

Connection values can also come from VSPHERE_URL, VSPHERE_USERNAME,
VSPHERE_PASSWORD and VSPHERE_DATACENTER, in the environment or a .env file.
"""
import sys
import argparse

from config import OUTPUT_FORMATS, OUTPUT_TEXT, Configuration, build_settings
from error_handler import AppError, ConfigurationError, ResourceNotFoundError, VSphereError
from logger import context, get_logger, setup_logging
from report_renderer import (
    format_cluster_body,
    format_cluster_header,
    format_datacenter_line,
    render_json,
)
from storage_models import ClusterReport, DatacenterReport
from storage_topology import collect_cluster_report
from vsphere_inventory import VSphereInventory
from vsphere_utils import connect_to_vsphere, disconnect

logger = get_logger(__name__)


def build_parser():
    parser = argparse.ArgumentParser(
        description='Report datastore clusters and standalone datastores for each vSphere cluster'
    )
    parser.add_argument('-u', '--url', help='vSphere URL (can also set VSPHERE_URL env var)')
    parser.add_argument('-n', '--username', help='vSphere username (can also set VSPHERE_USERNAME env var)')
    parser.add_argument('-p', '--password', help='vSphere password (can also set VSPHERE_PASSWORD env var)')
    parser.add_argument('-d', '--datacenter',
                        help='vSphere datacenter name (can also set VSPHERE_DATACENTER env var)')
    parser.add_argument('-k', '--insecure', action=argparse.BooleanOptionalAction, default=None,
                        help='Skip verification of server certificate (default: enabled)')
    parser.add_argument('-o', '--output', choices=OUTPUT_FORMATS, default=OUTPUT_TEXT,
                        help='Output format')
    parser.add_argument('--env-file', default='.env', help='dotenv file with connection settings')
    parser.add_argument('--log-level', help='Log level for diagnostics on stderr (default: WARNING)')
    parser.add_argument('--log-format', choices=('standard', 'simple', 'json'), help='Log format')
    parser.add_argument('--log-file', help='Also write diagnostics to this rotating log file')
    return parser


def print_lines(lines, out=None):
    out = out or sys.stdout
    for line in lines:
        print(line, file=out)


def print_available_datacenters(inventory, out=None):
    """List datacenter names after the datacenter could not be resolved. Returns the exit code."""
    out = out or sys.stdout
    try:
        datacenters = inventory.list_datacenters()
    except VSphereError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    if not datacenters:
        print("No datacenters found. Please check your vSphere environment.", file=out)
        return 1

    print("Available datacenters:", file=out)
    for datacenter in datacenters:
        print(f"- {datacenter.name}", file=out)
    print("\nPlease specify a datacenter using the --datacenter flag.", file=out)
    return 1


def run_report(inventory, datacenter, clusters, settings, out=None):
    """
    Resolve the storage of every cluster and print the report.

    In text mode each cluster is printed as soon as it is resolved; in JSON
    mode the document is printed once all clusters are done.
    """
    out = out or sys.stdout
    report = DatacenterReport(datacenter=datacenter.name)

    for cluster in clusters:
        try:
            cluster_name = inventory.get_cluster_name(cluster)
        except VSphereError as e:
            cluster_name = e.details.get('cluster', 'unknown')
            cluster_report = ClusterReport(name=cluster_name, error=e.message)
        else:
            cluster_report = None

        if not settings.output_json:
            print_lines(format_cluster_header(cluster_name), out)

        if cluster_report is None:
            with context(datacenter=report.datacenter, cluster=cluster_name):
                with logger.timer(f"Storage of cluster {cluster_name}"):
                    cluster_report = collect_cluster_report(inventory, datacenter, cluster, cluster_name)

        report.add_cluster(cluster_report)
        if not settings.output_json:
            print_lines(format_cluster_body(cluster_report), out)

    if settings.output_json:
        print(render_json(report), file=out)

    return report


def report_datacenter(inventory, settings, out=None):
    """Resolve the datacenter, list its clusters and print the report. Returns the exit code."""
    out = out or sys.stdout

    try:
        datacenter = inventory.resolve_datacenter(settings.datacenter)
    except ResourceNotFoundError as e:
        logger.warning(f"Datacenter not resolved: {e.message}")
        return print_available_datacenters(inventory, out)

    if not settings.output_json:
        print(format_datacenter_line(datacenter.name), file=out)

    clusters = inventory.list_clusters(datacenter)
    if not clusters:
        if settings.output_json:
            print(render_json(DatacenterReport(datacenter=datacenter.name)), file=out)
        else:
            print("No clusters found in the selected datacenter.", file=out)
        return 0

    run_report(inventory, datacenter, clusters, settings, out)
    return 0


def main(argv=None):
    parser = build_parser()
    args = parser.parse_args(argv)

    # Command line logging options only, until the full settings are known
    setup_logging(level=args.log_level, log_format=args.log_format)

    configuration = Configuration(env_file=args.env_file)
    try:
        settings = build_settings(args, configuration)
    except ConfigurationError as e:
        print(e.message, file=sys.stderr)
        print("Usage:", file=sys.stderr)
        parser.print_help(sys.stderr)
        return 1

    setup_logging(
        level=settings.log_level,
        log_format=settings.log_format,
        log_file=settings.log_file,
        use_colors=settings.log_colors
    )
    configuration.log_configuration()

    try:
        service_instance = connect_to_vsphere(settings)
    except AppError as e:
        print(f"Error connecting to vSphere: {e}", file=sys.stderr)
        return 1

    try:
        inventory = VSphereInventory(service_instance)
        return report_datacenter(inventory, settings)
    except AppError as e:
        print(str(e), file=sys.stderr)
        return 1
    finally:
        disconnect(service_instance)


if __name__ == "__main__":
    sys.exit(main())
