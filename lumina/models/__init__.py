"""ORM models package — import all models so Base.metadata sees them."""

from lumina.models.kv_entry import KVEntry

__all__ = ["KVEntry"]
