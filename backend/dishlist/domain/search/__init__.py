"""Search domain exports."""

from .service import SearchService, memory_store, reset_memory_state, seed_memory_store

__all__ = [
	"SearchService",
	"memory_store",
	"seed_memory_store",
	"reset_memory_state",
]
