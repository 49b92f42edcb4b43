# controller-ui/api/v1/__init__.py
"""
API v1 modules
"""

from . import networks, members

__all__ = ["networks", "members"]
