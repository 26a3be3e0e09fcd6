"""Internal pygit2 constants - keeps trivia out of public modules."""

from __future__ import annotations

import pygit2

# Commit walking
SORT_TIME = pygit2.GIT_SORT_TIME
SORT_TOPOLOGICAL = pygit2.GIT_SORT_TOPOLOGICAL
SORT_REVERSE = pygit2.GIT_SORT_REVERSE

# Working tree status flags that do not make a tree dirty
STATUS_WT_NEW = pygit2.GIT_STATUS_WT_NEW
STATUS_IGNORED = pygit2.GIT_STATUS_IGNORED

# Reset modes
RESET_HARD = pygit2.GIT_RESET_HARD

# Merge analysis flags
MERGE_UP_TO_DATE = pygit2.GIT_MERGE_ANALYSIS_UP_TO_DATE

# Tree entry modes
FILEMODE_BLOB = pygit2.GIT_FILEMODE_BLOB

# Repository state written by merge until the commit lands
MERGE_HEAD_FILE = "MERGE_HEAD"
