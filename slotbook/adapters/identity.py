"""
Identity provider for trusted callers such as the admin CLI.
"""

from ..domain.exceptions import InvalidBookingRequest
from ..domain.models import Identity, UserRole


class StaticIdentityProvider:
    """
    Reports a fixed identity.

    The CLI runs on the owner's machine, so the caller states who they are
    instead of signing in.
    """

    def __init__(self, user_id: str, role: UserRole | str):
        if not user_id.strip():
            raise InvalidBookingRequest("User ID cannot be blank.")
        if not isinstance(role, UserRole):
            role = UserRole.parse(role)
        self._identity = Identity(id=user_id.strip(), role=role)

    def current_identity(self) -> Identity:
        return self._identity
