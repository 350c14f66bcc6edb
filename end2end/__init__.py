"""check-end2end: configurable end-to-end probes for monitoring hosts."""

__version__ = "1.2.0"
