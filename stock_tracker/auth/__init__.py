"""Authentication / authorization helpers.

Auth is intentionally lightweight:

- Users table (email/password hash + role)
- JWT access tokens, sent as `Authorization: Bearer <token>`

Reading stocks needs any active user; writing them (single edits and bulk
import) needs the admin role.
"""

from .deps import get_current_user, require_admin
from .crud import bootstrap_admin_if_needed, create_user

__all__ = [
    "get_current_user",
    "require_admin",
    "bootstrap_admin_if_needed",
    "create_user",
]
