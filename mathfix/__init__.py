from .document import Document, DocumentSession
from .orchestrator import FixOrchestrator, FixOutcome, RepairInFlightError
from .runner import main

__all__ = ["Document", "DocumentSession", "FixOrchestrator", "FixOutcome", "RepairInFlightError", "main"]
