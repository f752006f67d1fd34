"""Service modules"""
from .factory import EngineSystem, build_system
from .keeper import Keeper

__all__ = ["EngineSystem", "Keeper", "build_system"]
