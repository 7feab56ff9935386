"""Batch log shipper for OpenObserve's ``_multi`` ingestion endpoint."""

from batch_shipper.config import AuthConfig, ConfigError, ShipperConfig, load_config
from batch_shipper.dispatcher import DispatchState, LogDispatcher
from batch_shipper.handler import DispatchHandler

__all__ = [
    "AuthConfig",
    "ConfigError",
    "DispatchHandler",
    "DispatchState",
    "LogDispatcher",
    "ShipperConfig",
    "load_config",
]
