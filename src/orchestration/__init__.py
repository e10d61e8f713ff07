"""Orchestration of parallel research across providers."""

from src.orchestration.batch_processor import BatchItemResult, BatchProcessor
from src.orchestration.parallel_orchestrator import ParallelOrchestrator
from src.orchestration.research_pipeline import ResearchPipeline

__all__ = [
    "BatchItemResult",
    "BatchProcessor",
    "ParallelOrchestrator",
    "ResearchPipeline",
]
