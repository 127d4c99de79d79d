import base64
import logging
from datetime import datetime
from typing import Any, Callable, Dict, Iterable, List
from pydantic import ValidationError
from pydantic.alias_generators import to_camel
from app.core.config import settings
from app.core.exceptions import (
    AccountNotFoundError,
    AccountValidationError,
    DuplicateEmailError,
)
from app.core.security import get_password_hash
from app.models.account import Account
from app.repositories.account_repository import AccountRepository
from app.schemas.account import (
    AccountCreate,
    AccountImageUpdate,
    AccountPasswordUpdate,
    AccountUpdate,
    AuthorRead,
    PatchOperation,
)
from app.services.json_patch import JsonPatchError, apply_patch
from app.storage.local_storage import PhotoStorage

logger = logging.getLogger(__name__)

# Update-view fields that may only be written, never read back through a patch
SECRET_FIELDS = ("password", "resetToken")


def generate_reset_token(now: datetime | None = None) -> str:
    """URL-safe base64 (unpadded) of the millisecond creation timestamp"""
    now = now or datetime.now()
    stamp = now.strftime("%Y%m%d%H%M%S%f")[:-3]
    return base64.urlsafe_b64encode(stamp.encode("utf-8")).rstrip(b"=").decode("ascii")


def _validation_errors(error: ValidationError) -> List[Dict[str, str]]:
    return [
        {
            "field": ".".join(str(part) for part in err["loc"]) or "body",
            "message": err["msg"],
        }
        for err in error.errors()
    ]


class AccountService:
    """
    Account lifecycle: create, read, patch, replace image, rotate password, delete.

    Every mutation starts from the stored row and only overwrites the fields
    the operation owns. Names are stored upper-cased, emails lower-cased and
    passwords only as hashes.
    """

    def __init__(
        self,
        repository: AccountRepository,
        storage: PhotoStorage,
        hash_password: Callable[[str], str] = get_password_hash,
    ):
        self.repository = repository
        self.storage = storage
        self.hash_password = hash_password

    def get_accounts(self) -> List[Account]:
        return self.repository.get_all()

    def get_account(self, account_id: int) -> Account:
        account = self.repository.get_by_id(account_id)
        if account is None:
            raise AccountNotFoundError(account_id)
        return account

    def get_author(self, account_id: int) -> AuthorRead:
        return AuthorRead.model_validate(self.get_account(account_id))

    def create_account(self, data: AccountCreate) -> Account:
        """Create an account with server-derived role, password and reset token"""
        email = data.email.lower()
        if self._email_in_use(email):
            raise DuplicateEmailError()

        account = Account(
            auth_id=settings.DEFAULT_AUTH_ID,
            email=email,
            first_name=data.first_name.upper(),
            last_name=data.last_name.upper(),
            middle_name=data.middle_name.upper(),
            password=self.hash_password(settings.BOOTSTRAP_PASSWORD),
            photo_file_name=data.photo_file_name,
            reset_token=generate_reset_token(),
        )
        self._require_photo(account.photo_file_name)

        self.repository.create(account)
        self.repository.save_changes()
        logger.info(f"Created account {account.id}")
        return account

    def patch_account(self, account_id: int, operations: Iterable[PatchOperation]) -> None:
        """
        Apply JSON Patch operations to the account's update view.

        The patched view must validate before anything is written back; on
        failure the stored row is left untouched.
        """
        account = self.get_account(account_id)

        try:
            patched = apply_patch(
                self._to_update_view(account), operations, protected=SECRET_FIELDS)
        except JsonPatchError as e:
            raise AccountValidationError([{"field": e.path, "message": e.message}])

        try:
            view = AccountUpdate.model_validate(patched)
        except ValidationError as e:
            raise AccountValidationError(_validation_errors(e))

        email = view.email.lower()
        if email != account.email and self._email_in_use(email, exclude_id=account.id):
            raise DuplicateEmailError()

        if view.photo_file_name != account.photo_file_name:
            self._require_photo(view.photo_file_name)

        # The view carries the stored hash; anything else is a new plaintext
        password = account.password
        if view.password != account.password:
            password = self.hash_password(view.password)

        account.email = email
        account.first_name = view.first_name.upper()
        account.last_name = view.last_name.upper()
        account.middle_name = view.middle_name.upper()
        account.password = password
        account.photo_file_name = view.photo_file_name
        account.reset_token = view.reset_token

        self.repository.update(account)
        self.repository.save_changes()
        logger.info(f"Patched account {account_id}")

    def update_image(self, account_id: int, data: AccountImageUpdate) -> None:
        """Replace only the photo filename; every other field keeps its stored value"""
        account = self.get_account(account_id)
        self._require_photo(data.photo_file_name)
        self._save_merged(account, {"photo_file_name": data.photo_file_name})
        logger.info(f"Updated photo for account {account_id}")

    def update_password(self, account_id: int, data: AccountPasswordUpdate) -> None:
        """Store the hash of a new password; every other field keeps its stored value"""
        account = self.get_account(account_id)
        self._save_merged(account, {"password": self.hash_password(data.password)})
        logger.info(f"Rotated password for account {account_id}")

    def delete_account(self, account_id: int) -> None:
        """
        Delete the account row, then its photo.

        The row is committed first so a failed commit never leaves the row
        pointing at a deleted photo. A missing photo is ignored and other
        filesystem errors are logged without failing the delete.
        """
        account = self.get_account(account_id)
        photo_file_name = account.photo_file_name

        self.repository.delete(account)
        self.repository.save_changes()

        try:
            self.storage.delete_photo(photo_file_name)
        except OSError as e:
            logger.error(
                f"Account {account_id} deleted but photo {photo_file_name} could not be removed: {e}")
        logger.info(f"Deleted account {account_id}")

    def _save_merged(self, account: Account, owned: Dict[str, Any]) -> None:
        # Start from the stored state and overlay only the fields this operation owns
        merged = AccountUpdate.model_construct(**self._to_update_view(account, by_alias=False))
        for name, value in owned.items():
            setattr(merged, name, value)

        for name in AccountUpdate.model_fields:
            setattr(account, name, getattr(merged, name))

        self.repository.update(account)
        self.repository.save_changes()

    def _to_update_view(self, account: Account, by_alias: bool = True) -> Dict[str, Any]:
        return {
            (to_camel(name) if by_alias else name): getattr(account, name)
            for name in AccountUpdate.model_fields
        }

    def _email_in_use(self, email: str, exclude_id: int | None = None) -> bool:
        return any(
            existing.email.lower() == email
            for existing in self.repository.get_all()
            if existing.id != exclude_id
        )

    def _require_photo(self, photo_file_name: str) -> None:
        """Reject names that are neither the default photo nor an uploaded file"""
        if self.storage.is_default_photo(photo_file_name) or self.storage.photo_exists(photo_file_name):
            return
        raise AccountValidationError(
            [{"field": "photoFileName", "message": f"Photo {photo_file_name} has not been uploaded"}])
