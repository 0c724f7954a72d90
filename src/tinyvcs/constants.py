"""Constants used throughout TinyVCS."""

# Version
VERSION = "0.1.0"

# Directory names
TINYVCS_DIR = ".tinyvcs"
BLOBS_DIR = "blobs"
COMMITS_DIR = "commits"
STAGED_DIR = "staged"
LOCK_DIR = "lock.d"

# File names
HEAD_FILE = "HEAD"
STAGED_ADD_FILE = "STAGED_ADD"
CONFIG_FILE = "config.json"
LOCK_OWNER_FILE = "owner.json"
IGNORE_FILE = ".tinyvcsignore"

# Branches (single-branch history)
DEFAULT_BRANCH = "main"

# Hash algorithm
HASH_ALGORITHM = "sha1"
HASH_LENGTH = 40  # SHA-1 produces 40 hex characters

# Config schema
CONFIG_VERSION = 1
DEFAULT_LOCK_TIMEOUT = 10.0  # seconds

# Locks older than this are reclaimed even if the owner pid looks alive
LOCK_STALE_AGE = 4 * 3600

# Exit codes
EXIT_SUCCESS = 0
EXIT_USER_ERROR = 1
EXIT_SYSTEM_ERROR = 2
EXIT_DATA_ERROR = 3
EXIT_INTERRUPTED = 130
