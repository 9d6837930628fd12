"""
Business logic services.
Contains service layer implementations for the restaurant site.
"""

from .analytics_service import AnalyticsService
from .announcement_service import AnnouncementService
from .auth_service import AuthService
from .closure_service import ClosureService
from .gallery_service import GalleryService
from .hours_service import HoursService
from .media_service import MediaService

__all__ = [
    "AnalyticsService",
    "AnnouncementService",
    "AuthService",
    "ClosureService",
    "GalleryService",
    "HoursService",
    "MediaService",
]
