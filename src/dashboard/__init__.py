"""App dashboard data update: merge, persist, and run entry points."""

from .merger import merge_app_data
from .runner import main, process_repositories
from .writer import write_apps_json

__all__ = ["main", "merge_app_data", "process_repositories", "write_apps_json"]
