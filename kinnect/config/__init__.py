"""
Configuration Package

Exposes the environment-driven Config class used by the app factory.
"""

from .config import Config, current_environment

__all__ = ['Config', 'current_environment']
