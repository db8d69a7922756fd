from .whitelist import WhitelistCPOService

__all__ = ["WhitelistCPOService"]
