# modules/job_tracker/lib/__init__.py
from __future__ import annotations

# Re-export commonly-used types for convenience
from .config import ConfigError, Settings
from .engine import PipelineTimeoutError, build_store, execute, run_cycle, run_once, sweep_stale
from .models import (
    CycleResult,
    Employer,
    EmploymentType,
    ExtractionResult,
    Posting,
    PostingStatus,
    RawPosting,
    Seniority,
    SourceRun,
    SyncStats,
)
from .normalize import identity_key, normalize
from .orchestrator import Orchestrator, UnknownSourceError
from .retry import RetryExecutor
from .sweeper import StalenessSweeper
from .sync import SyncEngine

__all__ = [
    "ConfigError",
    "CycleResult",
    "Employer",
    "EmploymentType",
    "ExtractionResult",
    "Orchestrator",
    "PipelineTimeoutError",
    "Posting",
    "PostingStatus",
    "RawPosting",
    "RetryExecutor",
    "Seniority",
    "SourceRun",
    "StalenessSweeper",
    "SyncEngine",
    "SyncStats",
    "UnknownSourceError",
    "build_store",
    "execute",
    "identity_key",
    "normalize",
    "run_cycle",
    "run_once",
    "sweep_stale",
]
