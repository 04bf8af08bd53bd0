"""TLS context construction for the broker connection."""

import logging
import ssl
from pathlib import Path

from wis2_subscriber.core.errors.exceptions import ConfigError

logger = logging.getLogger(__name__)


def build_tls_context(
    cafile: str | Path | None = None,
    certfile: str | Path | None = None,
    keyfile: str | Path | None = None,
) -> ssl.SSLContext:
    """
    Build the SSL context used for the MQTT connection.

    Without a CA bundle the broker certificate is NOT verified. This keeps
    parity with deployments that connect to WIS2 global brokers without
    distributing a CA file; pass cafile to get verification.

    Args:
        cafile: PEM CA bundle used to verify the broker
        certfile: Client certificate (PEM), requires keyfile
        keyfile: Client private key (PEM), requires certfile

    Raises:
        ConfigError: If only one of certfile/keyfile is given, or any
            certificate material cannot be read or parsed
    """
    if bool(certfile) != bool(keyfile):
        raise ConfigError("Client certificate and key must be provided together")

    context = ssl.SSLContext(ssl.PROTOCOL_TLS_CLIENT)

    if cafile:
        try:
            context.load_verify_locations(cafile=str(cafile))
        except (OSError, ssl.SSLError) as e:
            raise ConfigError(f"Error loading CA certificate: {cafile}", cause=e) from e
        context.verify_mode = ssl.CERT_REQUIRED
        context.check_hostname = True
    else:
        context.check_hostname = False
        context.verify_mode = ssl.CERT_NONE
        logger.warning("No CA file configured, broker certificate will not be verified")

    if certfile and keyfile:
        try:
            context.load_cert_chain(certfile=str(certfile), keyfile=str(keyfile))
        except (OSError, ssl.SSLError) as e:
            raise ConfigError(
                f"Error loading client certificate and key: {certfile}, {keyfile}",
                cause=e,
            ) from e

    return context


__all__ = ["build_tls_context"]
