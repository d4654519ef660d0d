"""
CourseBot Classroom - Runtime components for course content and progress.

This module provides:
- load_catalog: Load the course catalog from YAML/JSON
- SessionStore: In-memory per-user sessions and locks
- ProgressEngine: Navigation, scoring and statistics
- UserRecordStore: Persisted user records (SQLite)
"""

from .loader import (
    load_catalog,
    read_catalog_file,
    flatten_sections,
    derive_final_test,
    DEFAULT_FINAL_TEST_LENGTH,
)

from .sessions import SessionStore

from .engine import (
    ProgressEngine,
    Terminal,
)

from .records import (
    UserRecordStore,
    DEFAULT_RECORDS_DB,
)

__all__ = [
    # Loader
    "load_catalog",
    "read_catalog_file",
    "flatten_sections",
    "derive_final_test",
    "DEFAULT_FINAL_TEST_LENGTH",
    # Sessions
    "SessionStore",
    # Engine
    "ProgressEngine",
    "Terminal",
    # Records
    "UserRecordStore",
    "DEFAULT_RECORDS_DB",
]
