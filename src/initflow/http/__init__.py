"""HTTP client for initflow.

This module provides HTTP clients for the initflow API:
- ApiClient: Auth and workspace key operations
- BaseApiClient: Common HTTP operations with retry logic
"""

from .api_client import ApiClient
from .base_client import BaseApiClient, encode_path_segment

__all__ = [
    "ApiClient",
    "BaseApiClient",
    "encode_path_segment",
]
