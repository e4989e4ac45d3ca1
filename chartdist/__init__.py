"""Prepare Helm charts for distribution: image annotations, chart loading and Carvel metadata."""

__version__ = "0.1.0"
__all__ = ["__version__"]