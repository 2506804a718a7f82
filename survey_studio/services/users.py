"""User provisioning and role management.

Users are created the first time the identity provider vouches for them.
Emails listed in ADMIN_BOOTSTRAP_EMAILS start as admins, everyone else as
creators; admins may change roles afterwards.
"""

from dataclasses import dataclass
from typing import List

from sqlalchemy import select
from sqlalchemy.orm import Session

from survey_studio.config import get_settings
from survey_studio.models.user import User
from survey_studio.services.access import require_role
from survey_studio.services.audit import record_audit
from survey_studio.services.errors import NotFoundError
from survey_studio.logging_config import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class Identity:
    """Identity asserted by the identity provider.

    Attributes:
        subject: Stable user identifier (oid or sub claim)
        email: Lowercase email address
        full_name: Display name (may be empty)
    """
    subject: str
    email: str
    full_name: str


class UserService:
    """Service for resolving and managing internal users."""

    def __init__(self, db: Session):
        """Initialize user service.

        Args:
            db: SQLAlchemy database session
        """
        self.db = db

    def resolve(self, identity: Identity) -> User:
        """Return the user for an identity, provisioning it on first sight.

        Existing users have their email and name refreshed from the token.

        Args:
            identity: Verified identity

        Returns:
            Persisted User
        """
        user = self.db.get(User, identity.subject)
        display_name = identity.full_name or identity.email

        if user is None:
            settings = get_settings()
            role = "admin" if identity.email in settings.get_admin_bootstrap_emails() else "creator"
            user = User(
                id=identity.subject,
                email=identity.email,
                full_name=display_name,
                role=role,
            )
            self.db.add(user)
            self.db.commit()
            logger.info(f"Provisioned user with role {role}", extra={"actor_id": user.id})
            return user

        if user.email != identity.email or user.full_name != display_name:
            user.email = identity.email
            user.full_name = display_name
            self.db.commit()

        return user

    def list_users(self, actor: User) -> List[User]:
        """List all users ordered by email (admin only)."""
        require_role(actor, ["admin"])
        return list(self.db.execute(select(User).order_by(User.email)).scalars())

    def set_role(self, actor: User, user_id: str, role: str) -> User:
        """Change a user's role (admin only).

        Raises:
            AuthorizationError: If the actor is not an admin
            NotFoundError: If the user does not exist
        """
        require_role(actor, ["admin"])
        user = self.db.get(User, user_id)
        if user is None:
            raise NotFoundError("User not found")

        user.role = role
        record_audit(self.db, actor, "set_role", "user", user_id, {"role": role})
        self.db.commit()
        return user
