import logging
from typing import List, Optional
from fastapi import APIRouter, Depends, Request, Response, status
from starlette.datastructures import UploadFile
from app.core.config import settings
from app.core.exceptions import PhotoStorageError
from app.api.dependencies import get_account_service, get_current_user, get_photo_storage
from app.models.account import Account
from app.schemas.account import (
    AccountCreate,
    AccountImageUpdate,
    AccountPasswordUpdate,
    AccountRead,
    AuthorRead,
    PatchOperation,
)
from app.services.account_service import AccountService
from app.storage.local_storage import PhotoStorage

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/accounts", tags=["accounts"])


@router.get("", response_model=List[AccountRead])
async def list_accounts(
    current_user: Optional[Account] = Depends(get_current_user),
    service: AccountService = Depends(get_account_service)
):
    """List all accounts"""
    return service.get_accounts()


@router.get("/author/{account_id}", response_model=AuthorRead)
async def get_author(
    account_id: int,
    service: AccountService = Depends(get_account_service)
):
    """Public author card for an account - no authentication required"""
    return service.get_author(account_id)


@router.get("/{account_id}", response_model=AccountRead)
async def get_account(
    account_id: int,
    current_user: Optional[Account] = Depends(get_current_user),
    service: AccountService = Depends(get_account_service)
):
    """Get a single account by ID"""
    return service.get_account(account_id)


@router.post("", response_model=AccountRead, status_code=status.HTTP_201_CREATED)
async def create_account(
    account_data: AccountCreate,
    request: Request,
    response: Response,
    current_user: Optional[Account] = Depends(get_current_user),
    service: AccountService = Depends(get_account_service)
):
    """Create an account; role, password and reset token are set by the server"""
    account = service.create_account(account_data)
    response.headers["Location"] = str(request.url_for("get_account", account_id=account.id))
    return account


@router.patch("/{account_id}", status_code=status.HTTP_204_NO_CONTENT, response_class=Response)
async def patch_account(
    account_id: int,
    operations: List[PatchOperation],
    current_user: Optional[Account] = Depends(get_current_user),
    service: AccountService = Depends(get_account_service)
):
    """Apply a JSON Patch document to an account"""
    service.patch_account(account_id, operations)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.put("/{account_id}/image", status_code=status.HTTP_204_NO_CONTENT, response_class=Response)
async def update_account_image(
    account_id: int,
    image_update: AccountImageUpdate,
    current_user: Optional[Account] = Depends(get_current_user),
    service: AccountService = Depends(get_account_service)
):
    """Replace the account photo; other fields in the body are ignored"""
    service.update_image(account_id, image_update)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.put("/{account_id}/pass", status_code=status.HTTP_204_NO_CONTENT, response_class=Response)
async def update_account_password(
    account_id: int,
    password_update: AccountPasswordUpdate,
    current_user: Optional[Account] = Depends(get_current_user),
    service: AccountService = Depends(get_account_service)
):
    """Set a new password; other fields in the body are ignored"""
    service.update_password(account_id, password_update)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.delete("/{account_id}", status_code=status.HTTP_204_NO_CONTENT, response_class=Response)
async def delete_account(
    account_id: int,
    current_user: Optional[Account] = Depends(get_current_user),
    service: AccountService = Depends(get_account_service)
):
    """Delete an account and its photo"""
    service.delete_account(account_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/SaveFile")
async def save_file(
    request: Request,
    current_user: Optional[Account] = Depends(get_current_user),
    photo_storage: PhotoStorage = Depends(get_photo_storage)
):
    """
    Save the first file of a multipart form as an account photo.

    Returns the generated filename. Clients expect a usable name even when the
    upload fails, so failures are logged and the default photo name returned.
    """
    form = await request.form()
    upload = next(
        (value for _, value in form.multi_items() if isinstance(value, UploadFile)),
        None
    )
    if upload is None:
        logger.warning("SaveFile called without a file; returning default photo")
        return settings.DEFAULT_PHOTO_FILENAME

    try:
        return await photo_storage.save_photo(upload)
    except PhotoStorageError as e:
        logger.warning(f"Photo upload failed, returning default photo: {e}")
        return settings.DEFAULT_PHOTO_FILENAME
