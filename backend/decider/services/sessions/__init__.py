"""Session domain services: registry, ranking, phase transitions and expiry.

Session logic shared by the HTTP routes and the socket handlers. Transport
concerns stay in those callers.
"""

from .registry import SessionRegistry
from .ranking import rank

__all__ = ['SessionRegistry', 'rank']
