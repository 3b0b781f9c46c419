"""Shared constants for the git-measure application.

For environment-based configuration (scratch directory, timeouts, etc.),
use the env module:
    from common.env import env
    timeout = env.subprocess_timeout()
"""

# Scratch layout below the scratch root
ARCHIVES_DIRNAME = "archives"
SNAPSHOTS_DIRNAME = "snapshots"

# Archive formats understood by `git archive` that we know how to extract
ARCHIVE_FORMATS: set[str] = {"tar", "zip"}

# Record and field separators for `git log --format`
LOG_RECORD_SEPARATOR = "\x1e"
LOG_FIELD_SEPARATOR = "\x1f"

# Fields requested from the commit log, in order
LOG_FIELDS: tuple[str, ...] = ("%H", "%s", "%an", "%aI", "%ae")

# Bare git dir borrowing the measured repository's objects; only `git archive` uses it
GIT_DIRNAME = "gitdir"

# Highest-precedence attributes of that git dir: archives carry the blobs exactly
# as stored, whatever the archived tree's own .gitattributes say
EXACT_TREE_ATTRIBUTES = (
    "* -text -eol -ident -filter -working-tree-encoding -export-ignore -export-subst\n"
)
