from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session
from typing import List
from app.core.database import get_db
from app.models.user import User
from app.models.client import Client
from app.models.project import Project
from app.schemas.client import ClientCreate, ClientUpdate, ClientResponse
from app.api.deps import get_current_user, get_manager_user
import logging

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/clients", tags=["Clients"])


def _get_client_or_404(db: Session, client_id: int) -> Client:
    client = db.query(Client).filter(Client.id == client_id).first()
    if not client:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Client not found"
        )
    return client


@router.post("/", response_model=ClientResponse, status_code=status.HTTP_201_CREATED)
async def create_client(
    client_data: ClientCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_manager_user)
):
    """Create a new client."""
    client = Client(
        name=client_data.name,
        description=client_data.description,
        created_by=current_user.id
    )

    db.add(client)
    db.commit()
    db.refresh(client)

    return client


@router.get("/", response_model=List[ClientResponse])
async def list_clients(
    skip: int = 0,
    limit: int = 100,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """List clients."""
    return db.query(Client).order_by(Client.name).offset(skip).limit(limit).all()


@router.get("/{client_id}", response_model=ClientResponse)
async def get_client(
    client_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """Get client by ID."""
    return _get_client_or_404(db, client_id)


@router.put("/{client_id}", response_model=ClientResponse)
async def update_client(
    client_id: int,
    client_data: ClientUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_manager_user)
):
    """Update client."""
    client = _get_client_or_404(db, client_id)

    update_data = client_data.model_dump(exclude_unset=True)
    for field, value in update_data.items():
        setattr(client, field, value)

    db.commit()
    db.refresh(client)

    return client


@router.delete("/{client_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_client(
    client_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_manager_user)
):
    """Delete a client that has no projects left."""
    client = _get_client_or_404(db, client_id)

    project_count = db.query(Project).filter(Project.client_id == client_id).count()
    if project_count:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Client still has {project_count} project(s); delete or move them first"
        )

    db.delete(client)
    db.commit()
    logger.info(f"Client {client_id} deleted by {current_user.username}")

    return None
