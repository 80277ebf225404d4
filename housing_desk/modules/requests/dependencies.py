"""
Requests Module - FastAPI Dependencies
"""
from typing import Annotated

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from housing_desk.core.database import get_db
from housing_desk.modules.requests.service import RequestService


async def get_request_service(db: Annotated[AsyncSession, Depends(get_db)]) -> RequestService:
    """Get RequestService instance with injected database session."""
    return RequestService(db)


RequestServiceDep = Annotated[RequestService, Depends(get_request_service)]
