# ------------------------
# Grading scale
# ------------------------
GRADE_MIN = 0.0
GRADE_MAX = 20.0
PASS_MARK = 10.0

# Highest first, each bound inclusive
MENTION_BANDS = [
    (16.0, "Excellent"),
    (14.0, "Very Good"),
    (12.0, "Good"),
    (10.0, "Pass"),
]
FAIL_MENTION = "Fail"

MENTION_ORDER = {
    "Excellent": 1,
    "Very Good": 2,
    "Good": 3,
    "Pass": 4,
    "Fail": 5,
}

# ------------------------
# Status labels
# ------------------------
STATUS_PASSED = "Passed"
STATUS_FAILED = "Failed"
STATUS_NO_GRADES = "No Grades"

# ------------------------
# Performance insights
# ------------------------
STRONG_SUBJECT_MARK = 16.0
WEAK_SUBJECT_MARK = 10.0

# ------------------------
# Results table
# ------------------------
RESULT_FILTERS = ("all", "passed", "failed")
RESULT_SORTS = ("name", "average-desc", "average-asc")
