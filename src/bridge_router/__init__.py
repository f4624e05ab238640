"""Bridge Router package following Clean Architecture layering."""

from .core.router import BridgeRouter
from .core.container import DIContainer

__all__ = [
    "BridgeRouter",
    "DIContainer",
    "domain",
    "routing",
    "reliability",
    "core",
    "providers",
    "utils",
]
