"""
Persistence Package

Store gateways and the debounced autosave scheduler.
"""

from .gateway import PersistenceGateway, InMemoryGateway
from .json_store import JsonFileGateway
from .autosave import AutosaveScheduler

__all__ = [
    "PersistenceGateway",
    "InMemoryGateway",
    "JsonFileGateway",
    "AutosaveScheduler",
]
