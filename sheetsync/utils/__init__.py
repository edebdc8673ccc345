"""Shared utilities for configuration, logging, and retries"""

from sheetsync.utils.retry import RetryPolicy, retry_call

__all__ = ["RetryPolicy", "retry_call"]
