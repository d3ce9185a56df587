"""Centralized AI chat client for the application"""

import logging

from yurushiri.backends.dify_client import DifyClient
from yurushiri.config import config

logger = logging.getLogger(__name__)

# Global Dify client instance
_dify_client = None


def get_dify_client() -> DifyClient:
    """Get or create the global Dify client instance"""
    global _dify_client
    if _dify_client is None:
        _dify_client = DifyClient(config)
        if not _dify_client.is_configured:
            logger.warning("DIFY_API_KEY is not set; AI features will be unavailable")
        else:
            logger.info("Initialized global Dify client")
    return _dify_client
