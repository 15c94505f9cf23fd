"""sysdiag - resilient workstation diagnostics for IT support."""

__version__ = "1.0.0"
