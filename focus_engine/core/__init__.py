"""
Core module for engine configuration and utilities.

Note: the adaptive subpackage is not imported at package level so that
importing settings never pulls in the session machinery.
Import it directly: from focus_engine.core.adaptive import ...
"""
from .config import settings

__all__ = ["settings"]
