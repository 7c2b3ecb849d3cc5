"""Ingestion pipeline: configuration, orchestration and the CLI."""

from hndigest.pipeline.config import AppConfig
from hndigest.pipeline.orchestrator import IngestOrchestrator

__all__ = ["AppConfig", "IngestOrchestrator"]
