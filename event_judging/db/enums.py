# db/enums.py
import enum

class IdentityKind(enum.StrEnum):
    UNAUTHENTICATED = "unauthenticated"
    EVENT_ADMIN = "event_admin"
    GOD_ADMIN = "god_admin"

class DenialReason(enum.StrEnum):
    LOCKED = "locked"
    UNAUTHORIZED = "unauthorized"

class TieBreak(enum.StrEnum):
    SHARE_RANK = "share_rank"
    DENSE_INDEX = "dense_index"

class LevelRank(enum.IntEnum):
    JUNIOR = 1
    INTERMEDIATE = 2
    SENIOR = 3
    UNSPECIFIED = 4
