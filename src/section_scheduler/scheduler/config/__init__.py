"""Reference-data loaders for the scheduler."""

from .cohorts import CohortConfig
from .courses import CourseConfig, CurriculumConfig
from .faculty import FacultyConfig
from .loader import ConfigLoader
from .rooms import RoomConfig

__all__ = [
    "ConfigLoader",
    "CohortConfig",
    "CourseConfig",
    "CurriculumConfig",
    "FacultyConfig",
    "RoomConfig",
]
