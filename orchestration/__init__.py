"""Pipeline orchestration shared by the CLI, the API and the scheduler."""

from orchestration.runner import HarvestPipeline, run_harvest, run_harvest_async

__all__ = ["HarvestPipeline", "run_harvest", "run_harvest_async"]
