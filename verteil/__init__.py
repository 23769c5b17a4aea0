"""
Async client for the Verteil NDC aggregator API.
"""

from verteil.services.client import VerteilClient, close_verteil_client, get_verteil_client
from verteil.settings import Settings, load_settings

__all__ = [
    "VerteilClient",
    "get_verteil_client",
    "close_verteil_client",
    "Settings",
    "load_settings",
]
