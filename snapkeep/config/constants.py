"""Hard-coded configuration constants not meant to be user-configurable."""

# Always excluded from snapshots, whatever the ignore files say
HARD_EXCLUDES = [".git", "node_modules"]

IGNORE_FILE_NAME = ".gitignore"
SNAPSHOTS_DIR_NAME = "snapshots"
RECORDS_DB_NAME = "snapkeep.sqlite"
DEFAULT_DATA_DIR = "~/.snapkeep"

DEFAULT_BEFORE_TOOLS = [
    "write_file",
    "apply_diff",
    "delete_file",
    "create_directory",
    "execute_command",
]
DEFAULT_MAX_SNAPSHOTS = 50
