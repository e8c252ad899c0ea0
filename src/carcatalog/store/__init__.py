"""Catalog store -- ORM model, engine factory, preview blobs, and CRUD."""

from .engine import get_engine, get_session_factory, init_db
from .keys import decode_key, encode_key
from .models import Base, CatalogRow
from .previews import PreviewStore
from .repository import CatalogStore

__all__ = [
    "Base",
    "CatalogRow",
    "CatalogStore",
    "PreviewStore",
    "decode_key",
    "encode_key",
    "get_engine",
    "get_session_factory",
    "init_db",
]
