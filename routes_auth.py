from fastapi import APIRouter, Depends, Request, Response

from schemas import DetailsUpdate, LoginRequest, PasswordUpdate
from security import COOKIE_NAME, CurrentIdentity
from services import AuthService

router = APIRouter(prefix="/auth", tags=["auth"])


def get_auth_service(request: Request) -> AuthService:
    return request.app.state.auth_service


def set_token_cookie(request: Request, response: Response, token: str) -> None:
    settings = request.app.state.settings
    max_age = settings.jwt_expire_minutes * 60
    response.set_cookie(
        COOKIE_NAME,
        token,
        max_age=max_age,
        expires=max_age,
        httponly=True,
        secure=settings.is_production,
    )


@router.post("/login")
def login(body: LoginRequest, request: Request, response: Response,
          service: AuthService = Depends(get_auth_service)):
    token = service.login(body.email, body.password)
    set_token_cookie(request, response, token)
    return {"success": True, "token": token}


@router.get("/me")
def me(identity: CurrentIdentity, service: AuthService = Depends(get_auth_service)):
    return {"success": True, "data": service.get_current_admin(identity)}


@router.get("/logout")
def logout(identity: CurrentIdentity, response: Response):
    # The token itself stays valid until it expires; only the cookie is cleared
    response.set_cookie(COOKIE_NAME, "none", max_age=10, expires=10, httponly=True)
    return {"success": True, "data": {}}


@router.put("/updatedetails")
def update_details(body: DetailsUpdate, identity: CurrentIdentity,
                   service: AuthService = Depends(get_auth_service)):
    return {"success": True, "data": service.update_details(identity, body)}


@router.put("/updatepassword")
def update_password(body: PasswordUpdate, identity: CurrentIdentity, request: Request, response: Response,
                    service: AuthService = Depends(get_auth_service)):
    token = service.update_password(identity, body)
    set_token_cookie(request, response, token)
    return {"success": True, "token": token}
