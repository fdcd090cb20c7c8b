from __future__ import annotations

TEAM_SIZE = 2
MAX_TEAMS = 2
DEFAULT_TEAM_NAMES = ("Team Sol", "Team Luna")

# Lobby status
WAITING = "waiting"
IN_PROGRESS = "in-progress"
ENDED = "ended"

# Round status
ROUND_IN_PROGRESS = "in-progress"
ROUND_COMPLETED = "completed"

# Prompt types
HIDDEN_WORD = "hidden-word"
WORD_PAIR = "word-pair"

# Failure reasons
MISMATCH = "mismatch"
TIMEOUT = "timeout"
ADMIN = "admin"

FALLBACK_WORD = "Mystery"
