"""Building blocks for services: atomic files, HTTP and WSGI helpers, MIME types, systemd units and privileges."""

__version__ = "0.1.0"