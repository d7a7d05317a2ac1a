from .manager import ConfigManager
from .models import TrafficConfig

__all__ = ["ConfigManager", "TrafficConfig"]
