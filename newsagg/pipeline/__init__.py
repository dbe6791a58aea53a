"""Fetch pipeline: orchestration and run coordination."""

from .gate import RunGate, RunLock
from .orchestrator import FetchOrchestrator, last_fetch_run, matches_source

__all__ = ["FetchOrchestrator", "RunGate", "RunLock", "last_fetch_run", "matches_source"]
