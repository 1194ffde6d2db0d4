"""Background jobs."""
from .scanner import EasypayScanner

__all__ = ["EasypayScanner"]
