from typing import List

from fastapi import APIRouter  # type: ignore[import-not-found]

from ..models import ExtensionSummary
from ..services.extension_registry import extension_registry, summarize

router = APIRouter(prefix="/extensions", tags=["extensions"])


@router.get("", response_model=List[ExtensionSummary])
async def list_extensions():
    return [summarize(extension) for extension in extension_registry.list_extensions()]
