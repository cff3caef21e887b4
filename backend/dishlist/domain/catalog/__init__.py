"""Read model over users, recipes and dishlists."""

from .store import CatalogStore, MemoryCatalogStore, PostgresCatalogStore

__all__ = [
	"CatalogStore",
	"MemoryCatalogStore",
	"PostgresCatalogStore",
]
