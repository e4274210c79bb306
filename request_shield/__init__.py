"""
Request Shield - in-process request protection for FastAPI applications
"""
from .core.config import ProtectionSettings, load_settings
from .middleware.protection import install_protection
from .security.state import ProtectionState

__all__ = ["ProtectionSettings", "ProtectionState", "install_protection", "load_settings"]
