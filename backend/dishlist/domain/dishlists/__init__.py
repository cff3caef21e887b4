"""DishList library exports."""

from .service import DishListLibraryService

__all__ = ["DishListLibraryService"]
