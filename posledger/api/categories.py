from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from posledger.api.auth import get_current_user
from posledger.database import get_db
from posledger.models.user import User
from posledger.schemas.product import CategoryCreate, CategoryOut
from posledger.services import product_service

router = APIRouter(prefix="/categorias", tags=["Categories"])


@router.get("", response_model=list[CategoryOut])
def list_categories(user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    return [CategoryOut(id=c.id, nombre=c.name) for c in product_service.list_categories(db)]


@router.post("", response_model=CategoryOut, status_code=201)
def create_category(data: CategoryCreate, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    category = product_service.create_category(db, data)
    return CategoryOut(id=category.id, nombre=category.name)
