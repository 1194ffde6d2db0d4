"""Order-side Easypay flow: split calculation and orchestration."""
from .orchestrator import EasypayOrchestrator
from .splits import SplitCalculator

__all__ = ["EasypayOrchestrator", "SplitCalculator"]
