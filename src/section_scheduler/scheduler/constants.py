"""Constants for schedule generation."""

from .models import Day

# Working week (Sunday through Thursday)
WORKING_DAYS = [Day.SUNDAY, Day.MONDAY, Day.TUESDAY, Day.WEDNESDAY, Day.THURSDAY]

# Teaching window used for generated slots, minutes since midnight
DAY_START = 8 * 60
DAY_END = 18 * 60

# Standard meeting length; generated slots are back-to-back blocks of this size
SLOT_GRANULARITY = 90

# Default seats per generated section
SECTION_CAPACITY = 30

# Electives offered per elective slot of a level, capped by MAX_ELECTIVES_OFFERED
ELECTIVE_OFFER_FACTOR = 2
MAX_ELECTIVES_OFFERED = 5

# Elective slots per level when the curriculum does not state them
ELECTIVE_SLOTS_BY_LEVEL = {
    3: 1,
    4: 2,
    5: 2,
    6: 2,
    7: 1,
    8: 0,
}

# Exam window
EXAM_START_TIMES = ["08:00", "11:00", "14:00", "16:00"]
EXAM_DURATION = 120

# Search limits
MAX_CANDIDATE_CHECKS = 2000
MAX_REPAIR_ROUNDS = 3

# Suggestion limits
DEFAULT_SUGGESTION_LIMIT = 5
