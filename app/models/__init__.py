"""
SQLAlchemy Models for UrbanSetu price-drop alerts

Usage:
    from app.models import User, Listing, PropertyWatchlist, Notification
    # または
    from app.models import Base
"""

from .base import Base
from .user import User
from .listing import Listing
from .watchlist import PropertyWatchlist
from .notification import Notification

__all__ = [
    "Base",
    "User",
    "Listing",
    "PropertyWatchlist",
    "Notification",
]
