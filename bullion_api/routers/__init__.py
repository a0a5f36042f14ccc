from bullion_api.routers import accounts, obligations, refinery, settlements

__all__ = ["accounts", "obligations", "refinery", "settlements"]
