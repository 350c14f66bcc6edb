"""TLS certificate probe: connect (optionally through a proxy), then check revocation.

With verification on, the handshake validates the chain against the system
trust store and each certificate naming an OCSP responder is checked with an
OCSP request. With verification off the probe only proves a TLS handshake
completes.
"""

from __future__ import annotations

import base64
import logging
import socket
import ssl
import urllib.request
from dataclasses import dataclass
from urllib.parse import unquote, urlsplit

import httpx
from cryptography import x509
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.x509 import ocsp
from cryptography.x509.oid import AuthorityInformationAccessOID, ExtensionOID

from ..config import settings
from ..engine.executor import Deadline, ProbeOutcome
from ..engine.steps import Method, Payload

logger = logging.getLogger(__name__)

MAX_CONNECT_RESPONSE = 16 * 1024


class TunnelError(Exception):
    """Raised when the proxy refuses or mangles a CONNECT request."""


@dataclass(frozen=True)
class ProxyConfig:
    host: str
    port: int = 8080
    scheme: str = "http"
    user: str = ""
    password: str = ""

    @classmethod
    def from_url(cls, url: str) -> ProxyConfig:
        parts = urlsplit(url if "://" in url else f"http://{url}")
        return cls(
            host=parts.hostname or "",
            port=parts.port or settings.proxy_port,
            scheme=parts.scheme or settings.proxy_scheme,
            user=unquote(parts.username or ""),
            password=unquote(parts.password or ""),
        )

    @classmethod
    def from_env(cls) -> ProxyConfig | None:
        """Proxy from ``https_proxy``/``HTTPS_PROXY``, if any."""
        url = urllib.request.getproxies().get("https")
        return cls.from_url(url) if url else None

    def authorization(self) -> str | None:
        if not self.user:
            return None
        token = base64.b64encode(f"{self.user}:{self.password}".encode()).decode("ascii")
        return f"Basic {token}"


def split_target(target: str, default_port: int | None = None) -> tuple[str, int]:
    """``host``, ``host:port`` or ``[v6addr]:port`` to a (host, port) pair."""
    port = default_port or settings.tls_default_port
    text = target.strip()
    if text.startswith("["):
        host, _, rest = text[1:].partition("]")
        if rest.startswith(":") and rest[1:]:
            port = int(rest[1:])
        return host, port
    host, sep, raw_port = text.partition(":")
    if sep and raw_port:
        port = int(raw_port)
    return host, port


# ── Proxy tunnel ─────────────────────────────────────────────────────────────


def build_connect_request(host: str, port: int, authorization: str | None = None) -> bytes:
    lines = [f"CONNECT {host}:{port} HTTP/1.1", f"Host: {host}:{port}"]
    if authorization:
        lines.append(f"Proxy-Authorization: {authorization}")
    return ("\r\n".join(lines) + "\r\n\r\n").encode("ascii")


def read_connect_response(sock: socket.socket) -> tuple[int, str]:
    """Read the proxy's answer headers; return (status code, status line)."""
    buf = b""
    while b"\r\n\r\n" not in buf:
        chunk = sock.recv(1024)
        if not chunk:
            raise TunnelError("proxy closed the connection during CONNECT")
        buf += chunk
        if len(buf) > MAX_CONNECT_RESPONSE:
            raise TunnelError("proxy CONNECT response headers too large")

    status_line = buf.split(b"\r\n", 1)[0].decode("latin-1").strip()
    parts = status_line.split(" ", 2)
    if len(parts) < 2 or not parts[0].startswith("HTTP/") or not parts[1].isdigit():
        raise TunnelError(f"unexpected proxy answer: {status_line!r}")
    return int(parts[1]), status_line


# ── Certificates ─────────────────────────────────────────────────────────────


def _load_certificate(item: object) -> x509.Certificate:
    if isinstance(item, bytes):
        return x509.load_der_x509_certificate(item)
    pem = item if isinstance(item, str) else item.public_bytes()  # type: ignore[attr-defined]
    return x509.load_pem_x509_certificate(pem.encode("ascii"))


def peer_chain(conn: ssl.SSLSocket) -> list[x509.Certificate]:
    """Leaf-first chain; just the leaf when the interpreter cannot expose more."""
    getter = getattr(conn, "get_verified_chain", None)
    if getter is not None:
        chain = [_load_certificate(item) for item in getter()]
        if chain:
            return chain
    der = conn.getpeercert(binary_form=True)
    return [x509.load_der_x509_certificate(der)] if der else []


def _access_location(cert: x509.Certificate, method: x509.ObjectIdentifier) -> str | None:
    try:
        aia = cert.extensions.get_extension_for_oid(ExtensionOID.AUTHORITY_INFORMATION_ACCESS)
    except x509.ExtensionNotFound:
        return None
    for desc in aia.value:
        if desc.access_method == method:
            return desc.access_location.value
    return None


def ocsp_url(cert: x509.Certificate) -> str | None:
    return _access_location(cert, AuthorityInformationAccessOID.OCSP)


def ca_issuers_url(cert: x509.Certificate) -> str | None:
    return _access_location(cert, AuthorityInformationAccessOID.CA_ISSUERS)


def describe_ocsp_answer(answer: ocsp.OCSPResponse, name: str) -> str | None:
    """None for a good certificate, otherwise what is wrong with it."""
    if answer.response_status != ocsp.OCSPResponseStatus.SUCCESSFUL:
        return f"OCSP request for {name} unsuccessful ({answer.response_status.name})"
    status = answer.certificate_status
    if status == ocsp.OCSPCertStatus.REVOKED:
        when = getattr(answer, "revocation_time_utc", None) or answer.revocation_time
        return f"certificate {name} revoked at {when}"
    if status == ocsp.OCSPCertStatus.UNKNOWN:
        return f"OCSP responder does not know certificate {name}"
    return None


class CertificateProbe:
    """Probe for ``CONNECT`` steps whose target is ``host[:port]``."""

    def __init__(
        self,
        verify: bool = False,
        proxy: ProxyConfig | None = None,
        connect_timeout: float | None = None,
        ocsp_timeout: float | None = None,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self.verify = verify
        self.proxy = proxy
        self.connect_timeout = connect_timeout or settings.tls_connect_timeout
        self.ocsp_timeout = ocsp_timeout or settings.ocsp_timeout
        self._transport = transport

    def __call__(
        self,
        method: Method,
        target: str,
        payload: Payload | None,
        deadline: Deadline | None = None,
    ) -> ProbeOutcome:
        if method != Method.CONNECT:
            return ProbeOutcome(False, f"method {method.value} not supported for certificate checks")

        host, port = split_target(target)
        timeout = self.connect_timeout
        if deadline is not None:
            timeout = min(timeout, deadline.remaining())

        conn = self.connect(host, port, timeout)
        try:
            errors = self.resolve_revocation_status(conn)
        finally:
            conn.close()

        if errors:
            logger.warning("OCSP verification failed for %s:%d: %s", host, port, errors)
            return ProbeOutcome(False, f"OCSP verification failed: {errors}")
        return ProbeOutcome(True, f"{host}:{port} certificate accepted")

    # ── connection ──

    def _context(self) -> ssl.SSLContext:
        ctx = ssl.create_default_context()
        if not self.verify:
            ctx.check_hostname = False
            ctx.verify_mode = ssl.CERT_NONE
        return ctx

    def _open_tunnel(self, proxy: ProxyConfig, host: str, port: int, timeout: float) -> socket.socket:
        logger.debug("Tunnelling to %s:%d via proxy %s:%d", host, port, proxy.host, proxy.port)
        sock = socket.create_connection((proxy.host, proxy.port), timeout=timeout)
        try:
            sock.sendall(build_connect_request(host, port, proxy.authorization()))
            code, status_line = read_connect_response(sock)
            if not 200 <= code < 300:
                raise TunnelError(f"CONNECT failed through proxy for target {host}:{port} ({status_line})")
        except BaseException:
            sock.close()
            raise
        return sock

    def connect(self, host: str, port: int, timeout: float) -> ssl.SSLSocket:
        if self.proxy is not None:
            sock = self._open_tunnel(self.proxy, host, port, timeout)
        else:
            sock = socket.create_connection((host, port), timeout=timeout)
        try:
            return self._context().wrap_socket(sock, server_hostname=host)
        except BaseException:
            sock.close()
            raise

    # ── revocation ──

    def resolve_revocation_status(self, conn: ssl.SSLSocket) -> str | None:
        """OCSP-check the peer chain; None when nothing is wrong."""
        if not self.verify:
            return None

        chain = peer_chain(conn)
        errors: list[str] = []
        for index, cert in enumerate(chain):
            if index + 1 < len(chain):
                issuer: x509.Certificate | None = chain[index + 1]
            elif cert.issuer == cert.subject:
                break  # trust anchor
            else:
                issuer = self._fetch_issuer(cert)
            if issuer is None:
                logger.debug("No issuer available for %s, skipping OCSP", cert.subject.rfc4514_string())
                continue
            error = self._check_ocsp(cert, issuer)
            if error:
                errors.append(error)
        return "; ".join(errors) or None

    def _fetch_issuer(self, cert: x509.Certificate) -> x509.Certificate | None:
        url = ca_issuers_url(cert)
        if not url:
            return None
        with httpx.Client(timeout=self.ocsp_timeout, transport=self._transport) as client:
            resp = client.get(url, follow_redirects=True)
        resp.raise_for_status()
        try:
            return x509.load_der_x509_certificate(resp.content)
        except ValueError:
            return x509.load_pem_x509_certificate(resp.content)

    def _check_ocsp(self, cert: x509.Certificate, issuer: x509.Certificate) -> str | None:
        name = cert.subject.rfc4514_string()
        url = ocsp_url(cert)
        if not url:
            logger.debug("No OCSP responder for %s", name)
            return None

        request = ocsp.OCSPRequestBuilder().add_certificate(cert, issuer, hashes.SHA1()).build()
        with httpx.Client(timeout=self.ocsp_timeout, transport=self._transport) as client:
            resp = client.post(
                url,
                content=request.public_bytes(serialization.Encoding.DER),
                headers={"Content-Type": "application/ocsp-request"},
            )
        if not resp.is_success:
            return f"OCSP responder {url} answered {resp.status_code}"
        return describe_ocsp_answer(ocsp.load_der_ocsp_response(resp.content), name)
