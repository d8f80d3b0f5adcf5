from sqlmodel import Session, select

from src.sso_bridge.entities.core.account.entity import Account
from src.sso_bridge.entities.core.account.table import AccountTable


class AccountRepository:
    """Data-access layer for accounts."""

    def __init__(self, session: Session) -> None:
        self._session = session

    def get_for_user(self, user_id: str, provider_id: str) -> Account | None:
        statement = select(AccountTable).where(
            (AccountTable.user_id == user_id)
            & (AccountTable.provider_id == provider_id)
        )
        row = self._session.exec(statement).first()
        if row is None:
            return None
        return Account.model_validate(row, from_attributes=True)

    def create(self, account: Account) -> Account:
        row = AccountTable.model_validate(account.model_dump())
        self._session.add(row)
        self._session.flush()
        return Account.model_validate(row, from_attributes=True)

    def delete_for_user(self, user_id: str) -> int:
        rows = self._session.exec(
            select(AccountTable).where(AccountTable.user_id == user_id)
        ).all()
        for row in rows:
            self._session.delete(row)
        self._session.flush()
        return len(rows)
