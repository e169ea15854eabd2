from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel
from typing import Optional

from taskboard.core.context import AppContext, get_context
from taskboard.core.dependencies import get_account_info
from taskboard.modules.identity.schemas import UserInfo

router = APIRouter(prefix="/files", tags=["files"])


class FileUrlResponse(BaseModel):
    path: str
    url: Optional[str] = None


@router.get("/url", response_model=FileUrlResponse)
async def get_file_url(
    path: str = Query(..., min_length=1),
    info: UserInfo = Depends(get_account_info),
    context: AppContext = Depends(get_context)
):
    """Public URL of a file in the current account's storage folder"""
    if not path.startswith(f"{info.account.id}/"):
        raise HTTPException(status_code=403, detail="File not accessible")
    return FileUrlResponse(path=path, url=await context.file_store.get_url(path))
