from fastapi import APIRouter, Cookie, Depends, HTTPException, Request, Response
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from pydantic import BaseModel
from sqlalchemy.orm import Session

from posledger.database import get_db
from posledger.models.user import User
from posledger.services import auth_service

router = APIRouter(prefix="/auth", tags=["Auth"])

bearer_scheme = HTTPBearer(auto_error=False)


class LoginRequest(BaseModel):
    username: str
    password: str


class UserOut(BaseModel):
    id: str
    username: str
    display_name: str
    role: str
    active: bool = True

    model_config = {"from_attributes": True}


class ActivityLogOut(BaseModel):
    id: str
    user_id: str
    username: str
    action: str
    reference: str
    detail: str
    ip_address: str
    created_at: str


def get_current_user(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
    token: str | None = Cookie(default=None, alias="token"),
    db: Session = Depends(get_db),
) -> User:
    """Dependency: resolve the user from the bearer token (or the token cookie)."""
    raw = credentials.credentials if credentials else token
    if not raw:
        raise HTTPException(401, "No autenticado")
    payload = auth_service.decode_token(raw)
    if not payload:
        raise HTTPException(401, "Token inválido o expirado")
    user = auth_service.get_user_by_id(db, payload["sub"])
    if not user or not user.active:
        raise HTTPException(401, "Usuario inexistente o deshabilitado")
    return user


@router.post("/login")
def login(data: LoginRequest, request: Request, response: Response, db: Session = Depends(get_db)):
    user = auth_service.authenticate(db, data.username, data.password)
    if not user:
        raise HTTPException(401, "Usuario o contraseña incorrectos")
    token = auth_service.create_access_token(user.id, user.username)
    response.set_cookie("token", token, httponly=True, samesite="lax", max_age=3600 * 72)
    auth_service.log_activity(db, user, "login", ip=request.client.host if request.client else "")
    return {"token": token, "user": UserOut.model_validate(user)}


@router.post("/logout")
def logout(response: Response):
    response.delete_cookie("token")
    return {"ok": True}


@router.get("/me", response_model=UserOut)
def me(user: User = Depends(get_current_user)):
    return user


@router.get("/activity", response_model=list[ActivityLogOut])
def activity_logs(
    limit: int = 100,
    action: str | None = None,
    reference: str | None = None,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    logs = auth_service.get_activity_logs(db, limit=limit, action=action, reference=reference)
    return [
        ActivityLogOut(
            id=l.id,
            user_id=l.user_id,
            username=l.username,
            action=l.action,
            reference=l.reference or "",
            detail=l.detail,
            ip_address=l.ip_address,
            created_at=l.created_at.isoformat() if l.created_at else "",
        )
        for l in logs
    ]
