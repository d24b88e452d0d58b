"""Follow recorded breadcrumb routes with live pose alignment."""

__version__ = "0.1.0"
