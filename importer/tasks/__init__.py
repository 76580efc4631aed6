"""
See the module-level docstring for implementation details
"""

from .housekeeping import sweep_stale_import_jobs  # NOQA: F401
from .library import run_exercise_library_import_task  # NOQA: F401
