from .logging import JSONFormatter, configure_logging

__all__ = ["JSONFormatter", "configure_logging"]
