"""Network probes handed to the engine's executor."""

from .http import HttpProbe
from .tls import CertificateProbe, ProxyConfig, TunnelError
