# Upstream module
from draftorders.upstream.client import UpstreamClient

__all__ = ["UpstreamClient"]
