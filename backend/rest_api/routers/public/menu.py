"""
Public menu endpoint.
"""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from shared.infrastructure.db import get_db
from shared.utils.schemas import MenuItemOutput
from rest_api.services.domain import MenuService


router = APIRouter(prefix="/api", tags=["menu"])


@router.get("/menu", response_model=list[MenuItemOutput])
def get_menu(db: Session = Depends(get_db)) -> list[MenuItemOutput]:
    """Menu items currently available to order, by name."""
    return [MenuItemOutput.model_validate(item) for item in MenuService(db).list_available()]
