"""
Repository layer for database operations.
Provides higher-level abstractions for complex queries.
"""
from wallvault.repositories.wallpaper_repository import WallpaperRepository

__all__ = ["WallpaperRepository"]
