from tokenlist.provider.client import BlockberryClient
from tokenlist.provider.errors import FatalHttpError, ProviderHttpError, RateLimitedError, TransientHttpError

__all__ = ["BlockberryClient", "FatalHttpError", "ProviderHttpError", "RateLimitedError", "TransientHttpError"]
