"""
vSphere connectivity utilities for the datastore report.
These functions turn a connection URL into a pyVmomi session and back.
"""
import ssl
from urllib.error import URLError
from urllib.parse import urlsplit

from pyVim import connect
from pyVmomi import vim

from error_handler import AuthenticationError, ConfigurationError, VSphereError
from logger import get_logger

logger = get_logger(__name__)

DEFAULT_PORT = 443
DEFAULT_SDK_PATH = '/sdk'


def parse_vsphere_url(url):
    """
    Split a vSphere URL into host, port and SDK path.

    Accepts a bare host name ("vcenter.example.com"), host and port, or a
    full URL such as "https://vcenter.example.com/sdk". Credentials embedded
    in the URL are ignored; username and password are passed separately.

    Args:
        url (str): vSphere connection URL

    Returns:
        tuple: (host, port, path)
    """
    if not url or not url.strip():
        raise ConfigurationError("vSphere URL is empty")

    url = url.strip()
    if '://' not in url:
        url = f"https://{url}"

    try:
        parts = urlsplit(url)
        port = parts.port or DEFAULT_PORT
    except ValueError as e:
        raise ConfigurationError(f"Malformed vSphere URL: {url}", {'url': url}, e) from e

    if parts.scheme not in ('http', 'https') or not parts.hostname:
        raise ConfigurationError(f"Malformed vSphere URL: {url}", {'url': url})

    path = parts.path if parts.path and parts.path != '/' else DEFAULT_SDK_PATH
    return parts.hostname, port, path


def create_ssl_context(insecure=True):
    """Create the SSL context for the connection, skipping certificate checks when insecure."""
    if not insecure:
        return ssl.create_default_context()

    context = ssl.SSLContext(ssl.PROTOCOL_TLS_CLIENT)
    context.check_hostname = False
    context.verify_mode = ssl.CERT_NONE  # Disable certificate verification
    return context


def connect_to_vsphere(settings):
    """
    Connect to the vSphere server described by the run settings.

    Args:
        settings (ReportSettings): connection URL, credentials and insecure flag

    Returns:
        The pyVmomi service instance
    """
    host, port, path = parse_vsphere_url(settings.url)

    try:
        logger.info(f"Connecting to vSphere server: {host}:{port}")

        service_instance = connect.SmartConnect(
            host=host,
            user=settings.username,
            pwd=settings.password,
            port=port,
            path=path,
            sslContext=create_ssl_context(settings.insecure)
        )
    except vim.fault.InvalidLogin as e:
        logger.error(f"Invalid login credentials for vSphere server: {host}")
        raise AuthenticationError(
            'Invalid login credentials. Please check your username and password.',
            {'server': host}, e
        ) from e
    except (URLError, OSError) as e:
        logger.error(f"Connection error to vSphere server {host}: {str(e)}")
        raise VSphereError(f"Connection error: {str(e)}", {'server': host}, e) from e
    except Exception as e:
        logger.error(f"Error connecting to vSphere server {host}: {str(e)}")
        raise VSphereError(f"Error connecting to vSphere server: {getattr(e, 'msg', None) or str(e)}",
                           {'server': host}, e) from e

    if not service_instance:
        raise VSphereError('Failed to connect to vSphere server. Connection returned null.', {'server': host})

    logger.info("Successfully connected to vSphere server")
    return service_instance


def disconnect(service_instance):
    """Log out of the vSphere server, tolerating an already closed session."""
    if not service_instance:
        return
    try:
        connect.Disconnect(service_instance)
    except Exception as e:
        logger.warning(f"Error disconnecting from vSphere server: {str(e)}")

