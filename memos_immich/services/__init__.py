"""
Initializes the services package and provides easy access to the singleton
service instances.

This pattern allows other parts of the application to import services with a
clean syntax, like so:
from memos_immich.services import config, immich_service
"""
# config_service must come first: it sets up logging and reads the settings
# the other services are built from.
from .config_service import config
from .immich_service import immich_service

__all__ = [
    "config",
    "immich_service",
]
