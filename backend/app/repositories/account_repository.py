from typing import List, Optional, Protocol
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session
from app.core.exceptions import AccountStorageError, DuplicateEmailError
from app.models.account import Account


class AccountRepository(Protocol):
    """Data access the account service needs; nothing is durable until save_changes()"""

    def get_all(self) -> List[Account]:
        ...

    def get_by_id(self, account_id: int) -> Optional[Account]:
        ...

    def create(self, account: Account) -> None:
        ...

    def update(self, account: Account) -> None:
        ...

    def delete(self, account: Account) -> None:
        ...

    def save_changes(self) -> None:
        ...


class SqlAccountRepository:
    """AccountRepository backed by a SQLAlchemy session (one per request)"""

    def __init__(self, db: Session):
        self.db = db

    def get_all(self) -> List[Account]:
        return self.db.query(Account).order_by(Account.id).all()

    def get_by_id(self, account_id: int) -> Optional[Account]:
        return self.db.query(Account).filter(Account.id == account_id).first()

    def create(self, account: Account) -> None:
        self.db.add(account)

    def update(self, account: Account) -> None:
        # Loaded instances are already tracked; add() covers detached ones
        self.db.add(account)

    def delete(self, account: Account) -> None:
        self.db.delete(account)

    def save_changes(self) -> None:
        """Commit pending changes, rolling back on any database error"""
        try:
            self.db.commit()
        except IntegrityError as e:
            self.db.rollback()
            # SQLite names the column (accounts.email), other backends the index (ix_accounts_email)
            reason = str(e.orig).lower()
            if "email" in reason and ("unique" in reason or "duplicate" in reason):
                raise DuplicateEmailError() from e
            raise AccountStorageError() from e
        except SQLAlchemyError as e:
            # Rollback prevents partial state if the transaction was partially applied
            self.db.rollback()
            raise AccountStorageError() from e
