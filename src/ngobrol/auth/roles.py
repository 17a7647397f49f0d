"""Room roles as an ordered hierarchy.

owner > admin > moderator > member. Every permission check is a single
call to role_at_least(); a caller with no membership (None) never passes.
"""

import enum
from typing import Optional


class Role(str, enum.Enum):
    MEMBER = "member"
    MODERATOR = "moderator"
    ADMIN = "admin"
    OWNER = "owner"

    @property
    def rank(self) -> int:
        return _RANK[self]


_RANK = {
    Role.MEMBER: 0,
    Role.MODERATOR: 1,
    Role.ADMIN: 2,
    Role.OWNER: 3,
}


def role_at_least(role: Optional[Role], minimum: Role) -> bool:
    """True if `role` sits at or above `minimum` in the hierarchy."""
    if role is None:
        return False
    return Role(role).rank >= minimum.rank
