"""Cache module - volatile and durable tiers composed into a tiered cache."""

from .durable import DiskDocumentStore, DocumentStore, DurableCache, sanitize_doc_id
from .memory import MemoryCache
from .tiered import ResourceClass, TieredCache

__all__ = [
    "DiskDocumentStore",
    "DocumentStore",
    "DurableCache",
    "MemoryCache",
    "ResourceClass",
    "TieredCache",
    "sanitize_doc_id",
]
