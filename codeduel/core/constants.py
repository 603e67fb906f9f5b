"""Global constants for the codeduel application."""

# Collection names
USERS_COLLECTION = "users"
ROOMS_COLLECTION = "rooms"

# Player fields written by the tournament core
PLAYER_PROBLEM_ID = "problemId"
PLAYER_TESTS_PASSED = "testsPassed"
PLAYER_SUBMISSION_TIME = "submissionTime"

# Problems handed out each round. Both members of a pair share one.
DEFAULT_PROBLEM_POOL = ("0000", "0001")

# Judging limits
FAILED_SAMPLE_LIMIT = 3
SAMPLE_TEXT_LIMIT = 100

# Remote services
DEFAULT_EXECUTOR_URL = "https://api.jdoodle.com/v1/execute"
DEFAULT_TESTCASE_API_URL = "https://judgedat.u-aizu.ac.jp"
DEFAULT_REMOTE_TIMEOUT = 15

# Lines carrying any of these markers are compiler or executor chatter.
DIAGNOSTIC_MARKERS = ("warning:", "note:", "jdoodle")
