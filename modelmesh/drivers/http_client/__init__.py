"""httpx-based HTTP driver."""

from modelmesh.drivers.http_client.http_client import HttpClientDriver

__all__ = ["HttpClientDriver"]
