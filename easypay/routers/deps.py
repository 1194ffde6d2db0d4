"""
Shared Dependencies for Routers

The platform wires the orchestrator (with its repositories) at startup
through configure(); routes resolve it lazily.
"""

import os
from typing import Optional, TYPE_CHECKING

from fastapi import Header, HTTPException

if TYPE_CHECKING:
    from easypay.jobs.scanner import EasypayScanner
    from easypay.orders.orchestrator import EasypayOrchestrator


# ==================== LAZY SINGLETONS ====================

_orchestrator: Optional["EasypayOrchestrator"] = None
_scanner: Optional["EasypayScanner"] = None


def configure(orchestrator: "EasypayOrchestrator") -> None:
    """Register the orchestrator used by the routes (call at startup)."""
    global _orchestrator, _scanner
    _orchestrator = orchestrator
    _scanner = None


def get_orchestrator() -> "EasypayOrchestrator":
    """Get the configured orchestrator."""
    if _orchestrator is None:
        raise RuntimeError("Easypay orchestrator not configured. Call configure() at startup.")
    return _orchestrator


def get_scanner() -> "EasypayScanner":
    """Get or create the scanner bound to the configured orchestrator."""
    global _scanner
    if _scanner is None:
        from easypay.jobs.scanner import EasypayScanner
        _scanner = EasypayScanner(get_orchestrator())
    return _scanner


# ==================== CRON VERIFICATION ====================

def verify_cron_secret(authorization: Optional[str] = Header(None)) -> None:
    """Verify cron job authentication."""
    cron_secret = os.environ.get("CRON_SECRET", "")
    if not cron_secret or authorization != f"Bearer {cron_secret}":
        raise HTTPException(status_code=401, detail="Invalid cron secret")
