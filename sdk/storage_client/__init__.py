"""Python client and CLI for the media storage API."""
from .client import StorageClient, StorageClientError

__all__ = ["StorageClient", "StorageClientError"]
