"""
windowsdomain - Join and remove Windows guests from an Active Directory domain
"""

__version__ = "0.1.0"

from .core import WindowsDomainProvisioner, WindowsDomainError

__all__ = ["WindowsDomainProvisioner", "WindowsDomainError"]
