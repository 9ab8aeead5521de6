"""Remote account store access.

The contract lives in ``client``; ``http_client`` implements it over HTTP.
"""

from .client import RemoteClient
from .http_client import HttpRemoteClient

__all__ = ["RemoteClient", "HttpRemoteClient"]
