"""Object client abstraction and implementations."""

from itemstore_core.store.boto3_client import Boto3ObjectClient
from itemstore_core.store.local_client import LocalObjectClient
from itemstore_core.store.object_client import (
    ListingPage,
    ObjectClient,
    ObjectSummary,
    iter_pages,
)

__all__ = [
    "Boto3ObjectClient",
    "ListingPage",
    "LocalObjectClient",
    "ObjectClient",
    "ObjectSummary",
    "iter_pages",
]
