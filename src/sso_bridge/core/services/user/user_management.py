"""User store operations backing SSO provisioning."""

from dataclasses import dataclass
from enum import Enum

from loguru import logger
from sqlalchemy.exc import IntegrityError

from src.sso_bridge.core.security import hash_password, verify_password
from src.sso_bridge.core.services.database.db_session import DbSessionService
from src.sso_bridge.entities.core.account import (
    CREDENTIAL_PROVIDER,
    Account,
    AccountRepository,
)
from src.sso_bridge.entities.core.user import User, UserRepository


class UserConflictError(Exception):
    """A user with the same id or email already exists."""


class CredentialStatus(str, Enum):
    VALID = "valid"
    USER_NOT_FOUND = "user_not_found"
    NO_CREDENTIAL = "no_credential"
    MISMATCH = "mismatch"


@dataclass(frozen=True)
class CredentialCheck:
    status: CredentialStatus
    user: User | None = None


class RepairOutcome(str, Enum):
    NOTHING_FOUND = "nothing_found"
    ACCOUNT_COMPLETE = "account_complete"
    REMOVED_PARTIAL = "removed_partial"


class UserManagementService:
    """Synchronous user store over the SQLModel tables.

    Every public method runs in its own transaction.
    """

    def __init__(self, db_service: DbSessionService):
        self._db = db_service

    def check_credential(self, email: str, password: str) -> CredentialCheck:
        """Check an email and password pair against the credential account."""
        with self._db.session_scope() as db:
            user = UserRepository(db).get_by_email(email)
            if user is None:
                return CredentialCheck(CredentialStatus.USER_NOT_FOUND)

            account = AccountRepository(db).get_for_user(user.id, CREDENTIAL_PROVIDER)
            if account is None or not account.password_hash:
                return CredentialCheck(CredentialStatus.NO_CREDENTIAL, user)

            if not verify_password(password, account.password_hash):
                return CredentialCheck(CredentialStatus.MISMATCH, user)

            return CredentialCheck(CredentialStatus.VALID, user)

    def create_user_with_credential(
        self,
        user_id: str,
        email: str,
        name: str,
        password: str,
        email_verified: bool = True,
        phone: str | None = None,
    ) -> User:
        """Create a user and its credential account in a single transaction.

        Raises:
            UserConflictError: If the id or email is already taken
        """
        db = self._db.get_session()
        try:
            user = UserRepository(db).create(
                User(
                    id=user_id,
                    name=name,
                    email=email,
                    email_verified=email_verified,
                    phone=phone,
                )
            )
            AccountRepository(db).create(
                Account(
                    user_id=user.id,
                    provider_id=CREDENTIAL_PROVIDER,
                    account_id=user.id,
                    password_hash=hash_password(password),
                )
            )
            db.commit()
            return user
        except IntegrityError as e:
            db.rollback()
            raise UserConflictError(f"User {user_id} or its email already exists") from e
        except Exception:
            db.rollback()
            raise
        finally:
            db.close()

    def repair_partial_account(
        self, user_id: str, email: str, password: str
    ) -> RepairOutcome:
        """Remove leftovers of an interrupted account creation for ``user_id``.

        A user row without a credential account, or whose credential no
        longer verifies, is deleted together with its accounts. A complete
        account is kept; if the partner now reports a different email that
        no other user holds, the stored email is updated. Records of other
        users are never touched.
        """
        with self._db.session_scope() as db:
            users = UserRepository(db)
            accounts = AccountRepository(db)

            user = users.get(user_id)
            account = accounts.get_for_user(user_id, CREDENTIAL_PROVIDER)

            if user is None and account is None:
                return RepairOutcome.NOTHING_FOUND

            if (
                user is not None
                and account is not None
                and verify_password(password, account.password_hash)
            ):
                email = email.lower()
                if user.email != email and users.get_by_email(email) is None:
                    logger.bind(subject=user_id).info("Updating email of SSO user")
                    users.update(user.model_copy(update={"email": email}))
                return RepairOutcome.ACCOUNT_COMPLETE

            removed_accounts = accounts.delete_for_user(user_id)
            removed_user = users.delete(user_id)
            logger.bind(subject=user_id).warning(
                "Removed partial account records (user={}, accounts={})",
                removed_user,
                removed_accounts,
            )
            return RepairOutcome.REMOVED_PARTIAL
