"""Read-only web listing of vault documents."""

from .server import ListingServer, ListingHandler, describe_documents

__all__ = ["ListingServer", "ListingHandler", "describe_documents"]
