from .model import TestSpec, InstallRequest, ExecutionResult
from .runner import TestRunner, JobQueue, run_specs
from .config import load_config

__all__ = ["TestSpec", "InstallRequest", "ExecutionResult", "TestRunner", "JobQueue", "run_specs", "load_config"]
