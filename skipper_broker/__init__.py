"""Service broker exposing Skipper packages as a catalog of provisionable services."""

from .api import create_app
from .catalog import CatalogService
from .instances import InstanceService
from .models import BrokerConfig

__all__ = ["CatalogService", "InstanceService", "BrokerConfig", "create_app"]
