"""HTTP surface of the bullion ledger (FastAPI)."""

from bullion_api.app import create_app

__all__ = ["create_app"]
