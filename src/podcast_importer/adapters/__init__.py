"""Host adapters that normalize feed dialects into show and episode records."""

from .base import HostAdapter
from .factory import default_adapters, select_adapter
from .transistor import TransistorAdapter

__all__ = ["HostAdapter", "TransistorAdapter", "default_adapters", "select_adapter"]
