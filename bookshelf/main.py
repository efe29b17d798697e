# bookshelf/main.py
import logging
from pathlib import Path
from typing import Optional

from fastapi import APIRouter, Depends, FastAPI, HTTPException, Request, Response

from . import config
from .auth import AuthService
from .catalog import catalog_router
from .catalog.store import CatalogRegistry
from .errors import AuthenticationError, RegistrationError, SlotError
from .models import LoginRequest, LoginResponse, MessageResponse, PublicUser, RegisterRequest
from .session import SessionManager, get_sessions, require_user, token_from_request
from .storage import SlotStorage


logging.basicConfig(
    level=config.LOG_LEVEL,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


def get_auth(request: Request) -> AuthService:
    return request.app.state.auth


auth_router = APIRouter(prefix="/auth", tags=["auth"])


@auth_router.post("/register", response_model=MessageResponse)
def register(req: RegisterRequest, auth: AuthService = Depends(get_auth)):
    try:
        auth.register(req.username, req.email, req.password, req.confirm_password)
    except RegistrationError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except SlotError:
        logger.exception("Registration error")
        raise HTTPException(status_code=500, detail="An error occurred during registration")
    return MessageResponse(message="Registration successful")


@auth_router.post("/login", response_model=LoginResponse)
def login(
    req: LoginRequest,
    response: Response,
    auth: AuthService = Depends(get_auth),
    sessions: SessionManager = Depends(get_sessions),
):
    try:
        user = auth.login(req.email, req.password)
    except AuthenticationError as e:
        raise HTTPException(status_code=401, detail=str(e))

    session = sessions.create(user)
    response.set_cookie(
        config.SESSION_COOKIE,
        session.token,
        max_age=config.SESSION_TTL,
        httponly=True,
        secure=config.COOKIE_SECURE,
        samesite="lax",
    )
    return LoginResponse(token=session.token, **user.model_dump())


@auth_router.post("/logout", response_model=MessageResponse)
def logout(
    request: Request,
    response: Response,
    sessions: SessionManager = Depends(get_sessions),
):
    sessions.revoke(token_from_request(request))
    response.delete_cookie(config.SESSION_COOKIE)
    return MessageResponse(message="Logged out")


@auth_router.get("/me", response_model=PublicUser)
def me(user: PublicUser = Depends(require_user)):
    return user


# 🔹 Quick check that the users slot is readable
@auth_router.get("/check")
def check(auth: AuthService = Depends(get_auth)):
    return {"status": "ok", "user_count": auth.user_count()}


def create_app(data_dir: Optional[Path] = None, seed_books: Optional[bool] = None) -> FastAPI:
    app = FastAPI(
        title="Bookshelf",
        description=(
            "Personal book tracker: register, log in and manage your own "
            "catalogue with search, filters, pagination, covers and "
            "reading status."
        ),
        version="1.0.0",
    )

    storage = SlotStorage(data_dir or config.DATA_DIR)
    app.state.auth = AuthService(storage)
    app.state.sessions = SessionManager()
    app.state.catalogs = CatalogRegistry(
        storage, seed=config.SEED_BOOKS if seed_books is None else seed_books
    )
    logger.info("Bookshelf data directory: %s", storage.root)

    @app.get("/")
    def health_check():
        return {"status": "ok", "message": "Bookshelf is running"}

    app.include_router(auth_router)
    app.include_router(catalog_router)
    return app


app = create_app()
