"""
API v1 endpoints.
"""

from . import search
from . import limits

__all__ = [
    'search',
    'limits',
]
