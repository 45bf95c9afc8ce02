from .logging import configure_logging, filter_sensitive_data, get_logger
from .retry import retry_async

__all__ = ["configure_logging", "filter_sensitive_data", "get_logger", "retry_async"]
