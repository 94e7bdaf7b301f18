"""
repro.tls
~~~~~~~~~
One-shot provisioning of the self-signed certificate pair the local HTTPS
server runs on, plus the SSL contexts built from it.

The pair is generated once and then left alone: presence of both files is
the only check made, so a stale or truncated pair is never replaced
automatically.  Delete the files to force regeneration.
"""

from __future__ import annotations

import ipaddress
import logging
import os
import ssl
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from pathlib import Path

from cryptography import x509
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import rsa
from cryptography.x509.oid import NameOID

LOOPBACK_HOST = "localhost"
LOOPBACK_IP = "127.0.0.1"
VALIDITY_DAYS = 365
KEY_SIZE = 2048

logger = logging.getLogger(__name__)


class GenerationError(Exception):
    """Key or certificate synthesis failed."""


@dataclass(frozen=True, slots=True)
class CertificateMaterial:
    cert_pem: bytes
    key_pem: bytes


def ensure_certificates(cert_path: str | Path, key_path: str | Path) -> bool:
    """
    Make sure a certificate/key pair exists at *cert_path* / *key_path*.

    Returns False when both files were already there (nothing is read or
    validated), True when a fresh pair was generated and written.
    """
    cert_path, key_path = Path(cert_path), Path(key_path)
    if cert_path.exists() and key_path.exists():
        logger.debug("Certificate pair present at %s, %s", cert_path, key_path)
        return False

    material = generate_certificate_material()
    _write_pair(material, cert_path, key_path)
    logger.info("Generated self-signed certificate %s (key %s)", cert_path, key_path)
    return True


def generate_certificate_material(
    hostname: str = LOOPBACK_HOST,
    ip: str = LOOPBACK_IP,
    days: int = VALIDITY_DAYS,
    key_size: int = KEY_SIZE,
) -> CertificateMaterial:
    """Build a CA-flagged self-signed certificate for *hostname* and *ip* in memory."""
    try:
        key = rsa.generate_private_key(public_exponent=65537, key_size=key_size)

        name = x509.Name([x509.NameAttribute(NameOID.COMMON_NAME, hostname)])
        # X.509 times carry whole seconds only
        now = datetime.now(timezone.utc).replace(microsecond=0)

        cert = (
            x509.CertificateBuilder()
            .subject_name(name)
            .issuer_name(name)
            .public_key(key.public_key())
            .serial_number(x509.random_serial_number())
            .not_valid_before(now)
            .not_valid_after(now + timedelta(days=days))
            .add_extension(x509.BasicConstraints(ca=True, path_length=None), critical=True)
            .add_extension(
                x509.SubjectAlternativeName([
                    x509.DNSName(hostname),
                    x509.IPAddress(ipaddress.ip_address(ip)),
                ]),
                critical=False,
            )
            .sign(key, hashes.SHA256())
        )
    except (ValueError, TypeError) as e:
        raise GenerationError(f"Cannot generate certificate for {hostname}: {e}") from e

    return CertificateMaterial(
        cert_pem=cert.public_bytes(serialization.Encoding.PEM),
        key_pem=key.private_bytes(
            encoding=serialization.Encoding.PEM,
            format=serialization.PrivateFormat.TraditionalOpenSSL,
            encryption_algorithm=serialization.NoEncryption(),
        ),
    )


def _write_pair(material: CertificateMaterial, cert_path: Path, key_path: Path) -> None:
    cert_path.write_bytes(material.cert_pem)
    try:
        if key_path.exists():  # O_CREAT mode only applies to new files
            os.chmod(key_path, 0o600)
        fd = os.open(key_path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o600)
        with os.fdopen(fd, "wb") as fh:
            fh.write(material.key_pem)
    except OSError:
        # never leave a certificate without its key
        cert_path.unlink(missing_ok=True)
        raise


def server_ssl_context(cert_path: str | Path, key_path: str | Path) -> ssl.SSLContext:
    ctx = ssl.create_default_context(ssl.Purpose.CLIENT_AUTH)
    ctx.load_cert_chain(str(cert_path), str(key_path))
    return ctx


def client_ssl_context(cert_path: str | Path) -> ssl.SSLContext:
    """Client context trusting exactly the provisioned certificate."""
    ctx = ssl.create_default_context(ssl.Purpose.SERVER_AUTH, cafile=str(cert_path))
    # strict mode wants key-usage and key-identifier extensions the pair doesn't carry
    ctx.verify_flags &= ~ssl.VERIFY_X509_STRICT
    return ctx
