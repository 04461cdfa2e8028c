"""Provider adapters behind a single generation contract."""

from .adapters_apiframe import ApiframeAdapter
from .adapters_base import AdapterJob, AdapterStatus, ConfigValidation, GenerationAdapter
from .adapters_dalle import DalleAdapter
from .adapters_registry import AdapterRegistry

__all__ = [
    "AdapterJob",
    "AdapterRegistry",
    "AdapterStatus",
    "ApiframeAdapter",
    "ConfigValidation",
    "DalleAdapter",
    "GenerationAdapter",
]
