from .repositories import SQLTrafficRepository
from .persistence_gateway import PersistenceGateway
from .live_provider import TomTomLiveDataProvider
