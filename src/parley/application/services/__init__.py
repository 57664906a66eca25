"""Application services."""

from parley.application.services.periodic_task import PeriodicTask

__all__ = ["PeriodicTask"]
