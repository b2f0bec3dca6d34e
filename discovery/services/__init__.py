"""Discovery services"""

from .discovery_service import DiscoveryService
from .suggestion_engine import SuggestionEngine

__all__ = ["DiscoveryService", "SuggestionEngine"]
