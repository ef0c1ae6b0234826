"""HTTP layer for kubechronicle.

Exposes:
    create_app -- FastAPI application factory.
"""

from kubechronicle.api.app import create_app

__all__ = ["create_app"]
