"""
Custom CA certificates supplied through the environment.

The platform provides extra CA certificates as base64-encoded PEM values in
variables prefixed with ``TRUSTSTORE_`` (e.g. ``TRUSTSTORE_INTERNAL_CA``).
PyMongo takes CA certificates as a file path, so the decoded certificates are
written to a single PEM bundle.
"""

import base64
import binascii
import tempfile
from collections.abc import Mapping
from pathlib import Path

import structlog

logger = structlog.get_logger(__name__)

TRUSTSTORE_PREFIX = "TRUSTSTORE_"
PEM_MARKER = b"-----BEGIN CERTIFICATE-----"


def scan_truststore_certificates(environ: Mapping[str, str]) -> dict[str, bytes]:
    """
    Collect decoded certificates from TRUSTSTORE_* variables.

    Blank, undecodable or non-PEM values are skipped.

    Returns:
        Mapping of variable name to PEM bytes, ordered by variable name
    """
    certificates: dict[str, bytes] = {}

    for name in sorted(environ):
        if not name.startswith(TRUSTSTORE_PREFIX):
            continue

        value = environ[name]
        if not value or not value.strip():
            logger.warning("Certificate variable is empty, skipping", variable=name)
            continue

        try:
            data = base64.b64decode(value.strip(), validate=True)
        except (binascii.Error, ValueError) as e:
            logger.error("Failed to decode certificate, skipping", variable=name, error=str(e))
            continue

        if PEM_MARKER not in data:
            logger.error("Decoded value is not a PEM certificate, skipping", variable=name)
            continue

        certificates[name] = data
        logger.info("Found certificate", variable=name, size=len(data))

    logger.info("Custom certificate scan complete", count=len(certificates))
    return certificates


def write_ca_bundle(
    certificates: Mapping[str, bytes],
    directory: str | Path | None = None,
) -> Path | None:
    """
    Write certificates into one PEM bundle file.

    Returns:
        Path of the bundle, or None when there are no certificates
    """
    if not certificates:
        return None

    with tempfile.NamedTemporaryFile(
        mode="wb",
        prefix="trade-demo-ca-",
        suffix=".pem",
        dir=directory,
        delete=False,
    ) as bundle:
        for data in certificates.values():
            bundle.write(data.rstrip(b"\n") + b"\n")

    logger.info("Wrote CA bundle", path=bundle.name, certificates=len(certificates))
    return Path(bundle.name)


class CaBundle:
    """
    Temporary PEM bundle owned by one client factory.

    The file is written when a client needs it and removed when that client
    is disposed, so a factory leaves nothing behind after close().
    """

    def __init__(self, certificates: Mapping[str, bytes]) -> None:
        self._certificates = dict(certificates)
        self._path: Path | None = None

    @property
    def path(self) -> Path | None:
        return self._path

    def open(self) -> Path | None:
        """Write the bundle if it is not on disk yet and return its path."""
        if self._path is None:
            self._path = write_ca_bundle(self._certificates)
        return self._path

    def remove(self) -> None:
        """Delete the bundle file. Safe to call more than once."""
        if self._path is None:
            return
        self._path.unlink(missing_ok=True)
        logger.debug("Removed CA bundle", path=str(self._path))
        self._path = None
