"""Client overview endpoints for supervisors."""

from typing import List, Optional
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from components.core.init_db import get_db
from components.core.permissions import Capability, Principal, authorize
from components.user.repository import UserRepository
from components.user import schemas
from restapi.endpoints.auth import get_current_principal

router = APIRouter(
    prefix="/clients",
    tags=["clients"],
    responses={404: {"description": "Not found"}},
)


@router.get("/", response_model=List[schemas.ClientOverview])
async def read_clients(
    db: AsyncSession = Depends(get_db),
    principal: Optional[Principal] = Depends(get_current_principal)
):
    """Get all clients with their number of credits and borrowing totals."""
    authorize(principal, Capability.VIEW_CLIENTS)
    repo = UserRepository(db)
    return await repo.get_clients_overview()


@router.get("/{client_id}", response_model=schemas.ClientProfile)
async def read_client(
    client_id: int,
    db: AsyncSession = Depends(get_db),
    principal: Optional[Principal] = Depends(get_current_principal)
):
    """
    Get a client profile.

    Includes every credit of the client with its payments and repayment
    progress. Clients may read their own profile.
    """
    authorize(principal, Capability.VIEW_CLIENTS, owner_id=client_id)
    repo = UserRepository(db)
    return await repo.get_client_profile(client_id)
