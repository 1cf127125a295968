"""
paymentermgr - Install, update, back up and remove Paymenter on Debian/Ubuntu
"""

__version__ = "1.2.0"

from .core import PaymenterManager
from .errors import ManagerError

__all__ = ["PaymenterManager", "ManagerError"]
