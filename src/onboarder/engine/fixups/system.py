"""System-level fixups: HTTPD access and LDAP certificate references."""
import base64
import hashlib
from typing import Any, Optional

from .base import FixupContext

LDAP_CA_CERT = "do_ldapCaCert.crt"
LDAP_CLIENT_CERT = "do_ldapClientCert.crt"
LDAP_CLIENT_KEY = "do_ldapClientCert.key"


def fix_httpd(ctx: FixupContext) -> None:
    """``allow: 'all'`` is a one-element list on the device; ``'none'`` stays."""
    httpd = ctx.declaration.get("HTTPD")
    if not httpd or "allow" not in httpd:
        return
    allow = httpd["allow"]
    if isinstance(allow, str):
        if allow.lower() == "all":
            httpd["allow"] = ["all"]
    elif isinstance(allow, list):
        httpd["allow"] = ["all" if str(item).lower() == "all" else item for item in allow]


def file_checksum(payload: bytes) -> str:
    """Checksum string as the device reports it for a stored file."""
    return f"SHA1:{len(payload)}:{hashlib.sha1(payload).hexdigest()}"


def _file_reference(name: str, pem: Any) -> Optional[dict[str, Any]]:
    """Turn ``{"base64": ...}`` into a named, checksummed file reference."""
    if not isinstance(pem, dict) or "base64" not in pem:
        return None
    payload = base64.b64decode(pem["base64"])
    return {"name": name, "checksum": file_checksum(payload), "partition": "Common"}


def fix_ldap_certificates(ctx: FixupContext) -> None:
    authentication = ctx.declaration.get("Authentication") or {}
    ldap = authentication.get("ldap")
    if not ldap:
        return

    ca_cert = ldap.get("sslCaCertFile")
    if isinstance(ca_cert, dict):
        reference = _file_reference(LDAP_CA_CERT, ca_cert.get("certificate"))
        if reference:
            ldap["sslCaCertFile"] = reference

    client_cert = ldap.get("sslClientCert")
    if isinstance(client_cert, dict) and "certificate" in client_cert:
        cert_reference = _file_reference(LDAP_CLIENT_CERT, client_cert.get("certificate"))
        key_reference = _file_reference(LDAP_CLIENT_KEY, client_cert.get("privateKey"))
        if cert_reference:
            ldap["sslClientCert"] = cert_reference
        if key_reference:
            ldap["sslClientKey"] = key_reference
