"""Upload pipeline shared by the batch sweep and the webhook."""

from .batch import run_batch
from .collector import BatchCollector
from .orchestrator import UploadOrchestrator

__all__ = ["BatchCollector", "UploadOrchestrator", "run_batch"]
