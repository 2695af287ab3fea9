"""FastAPI application exposing user accounts, the dashboard and cleanup endpoints."""

from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import List, Optional

import logging
from fastapi import APIRouter, Depends, FastAPI, Header, HTTPException, Request, status
from fastapi.responses import HTMLResponse, JSONResponse, RedirectResponse
from prometheus_client import Counter
from slowapi import Limiter, _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from slowapi.util import get_remote_address
from sqlalchemy.orm import sessionmaker

from .auth import (
    REFRESH_TOKEN,
    create_access_token,
    create_refresh_token,
    decode_token,
    get_current_user,
    get_repository,
    is_cron_request,
    require_admin,
)
from .cleanup import DELETION_GRACE_DAYS, days_until_deletion, run_cleanup
from .config import settings
from .dashboard import StatusCard, build_status_cards, render_status_card, templates
from .database import create_session_factory, create_store_engine, init_db
from .mailer import Mailer, MailError
from .models.user import ADMIN_ROLE, User
from .passwords import compare_password
from .repository import StorageError, UserRepository
from .schemas import (
    AdminUserCreate,
    AdminUserResponse,
    CleanupStatusResponse,
    HealthResponse,
    MessageResponse,
    PasswordChange,
    RefreshRequest,
    ScheduledUser,
    TokenResponse,
    UserCreate,
    UserLogin,
    UserResponse,
)


logger = logging.getLogger(__name__)

SENSITIVE_RATE_LIMIT = "5/minute"

limiter = Limiter(key_func=get_remote_address, enabled=settings.rate_limit_enabled)

# Prometheus counter to track API requests by method, endpoint and status code
REQUEST_COUNTER = Counter(
    "api_requests_total",
    "Total API requests",
    ["method", "endpoint", "status"],
)

router = APIRouter()


def get_mailer(request: Request) -> Mailer:
    return request.app.state.mailer


def _token_pair(user: User) -> TokenResponse:
    return TokenResponse(
        access_token=create_access_token(user),
        refresh_token=create_refresh_token(user),
    )


@router.get("/health", response_model=HealthResponse)
def health(repository: UserRepository = Depends(get_repository)):
    """Report whether the store answers queries."""
    connected = repository.ping()
    payload = HealthResponse(
        status="ok" if connected else "degraded",
        timestamp=datetime.now(timezone.utc),
        database="connected" if connected else "disconnected",
        version=settings.app_version,
    )
    return JSONResponse(
        status_code=status.HTTP_200_OK if connected else status.HTTP_503_SERVICE_UNAVAILABLE,
        content=payload.model_dump(mode="json"),
    )


@router.get("/api/health", include_in_schema=False)
def health_redirect():
    return RedirectResponse(url="/health")


@router.post("/api/register", response_model=UserResponse, status_code=201)
@limiter.limit(SENSITIVE_RATE_LIMIT)
def register(
    request: Request,
    user: UserCreate,
    repository: UserRepository = Depends(get_repository),
):
    if repository.get_user_by_username(user.username):
        raise HTTPException(status_code=409, detail="Username already exists")
    return repository.create_user(user)


@router.post("/api/login", response_model=TokenResponse)
@limiter.limit(SENSITIVE_RATE_LIMIT)
def login(
    request: Request,
    user: UserLogin,
    repository: UserRepository = Depends(get_repository),
):
    db_user = repository.get_user_by_username(user.username)
    if not db_user or not compare_password(user.password, db_user.password_hash):
        logger.info("login failed username=%s", user.username)
        raise HTTPException(status_code=401, detail="Invalid username or password")
    logger.info("login succeeded username=%s id=%s", db_user.username, db_user.id)
    return _token_pair(db_user)


@router.post("/api/token/refresh", response_model=TokenResponse)
def refresh(payload: RefreshRequest, repository: UserRepository = Depends(get_repository)):
    username = decode_token(payload.refresh_token, REFRESH_TOKEN)
    db_user = repository.get_user_by_username(username)
    if db_user is None:
        raise HTTPException(status_code=401, detail="User not found")
    return _token_pair(db_user)


@router.get("/api/user", response_model=UserResponse)
def current_user(user: User = Depends(get_current_user)):
    return user


@router.put("/api/user/password", response_model=MessageResponse)
@limiter.limit(SENSITIVE_RATE_LIMIT)
def change_password(
    request: Request,
    payload: PasswordChange,
    user: User = Depends(get_current_user),
    repository: UserRepository = Depends(get_repository),
):
    if not compare_password(payload.current_password, user.password_hash):
        logger.info("password change rejected username=%s", user.username)
        raise HTTPException(status_code=400, detail="Current password is incorrect")
    if not repository.update_password(user.id, payload.new_password):
        raise HTTPException(status_code=404, detail="User not found")
    logger.info("password changed username=%s", user.username)
    return MessageResponse(message="Password updated")


@router.get(
    "/api/stats",
    response_model=List[StatusCard],
    dependencies=[Depends(get_current_user)],
)
def stats(repository: UserRepository = Depends(get_repository)):
    """Return the dashboard status cards."""
    return build_status_cards(repository.count_users())


@router.get(
    "/dashboard",
    response_class=HTMLResponse,
    dependencies=[Depends(get_current_user)],
)
def dashboard(repository: UserRepository = Depends(get_repository)):
    cards = build_status_cards(repository.count_users())
    html = templates.get_template("dashboard.html").render(
        title=settings.api_title,
        cards=[render_status_card(card) for card in cards],
    )
    return HTMLResponse(html)


def _admin_view(user: User, now: datetime) -> AdminUserResponse:
    view = AdminUserResponse.model_validate(user)
    if user.deletion_scheduled_at is not None:
        view.is_scheduled_for_deletion = True
        view.days_to_deletion = max(days_until_deletion(user.deletion_scheduled_at, now), 0)
    return view


@router.get("/api/admin/users", response_model=List[AdminUserResponse])
def admin_list_users(
    admin: User = Depends(require_admin),
    repository: UserRepository = Depends(get_repository),
):
    now = datetime.now(timezone.utc)
    return [_admin_view(user, now) for user in repository.list_users()]


@router.post("/api/admin/users", response_model=UserResponse, status_code=201)
def admin_create_user(
    payload: AdminUserCreate,
    admin: User = Depends(require_admin),
    repository: UserRepository = Depends(get_repository),
):
    if repository.get_user_by_username(payload.username):
        raise HTTPException(status_code=409, detail="Username already exists")
    user = repository.create_user(payload)
    if payload.role == ADMIN_ROLE:
        user = repository.set_role(user.id, ADMIN_ROLE)
    logger.info("admin %s created user %s role=%s", admin.username, user.username, user.role)
    return user


@router.delete("/api/admin/users/{user_id}", response_model=MessageResponse)
def admin_schedule_deletion(
    user_id: int,
    admin: User = Depends(require_admin),
    repository: UserRepository = Depends(get_repository),
    mailer: Mailer = Depends(get_mailer),
):
    """Start the grace period after which cleanup removes the account."""
    if user_id == admin.id:
        raise HTTPException(status_code=400, detail="You cannot delete your own account")
    scheduled_at = datetime.now(timezone.utc)
    user = repository.schedule_deletion(user_id, scheduled_at)
    if user is None:
        raise HTTPException(status_code=404, detail="User not found")
    try:
        mailer.send_deletion_warning(user.email, user.full_name, scheduled_at, DELETION_GRACE_DAYS)
    except MailError:
        logger.warning("deletion warning not delivered to %s", user.email)
    return MessageResponse(
        message=f"User {user.username} scheduled for deletion in {DELETION_GRACE_DAYS} days"
    )


@router.put("/api/admin/users/{user_id}/restore", response_model=MessageResponse)
def admin_restore_user(
    user_id: int,
    admin: User = Depends(require_admin),
    repository: UserRepository = Depends(get_repository),
    mailer: Mailer = Depends(get_mailer),
):
    user = repository.cancel_deletion(user_id)
    if user is None:
        raise HTTPException(status_code=404, detail="User not found")
    try:
        mailer.send_account_restored(user.email, user.full_name)
    except MailError:
        logger.warning("restore notice not delivered to %s", user.email)
    return MessageResponse(message=f"User {user.username} restored")


@router.get("/api/admin/cleanup/status", response_model=CleanupStatusResponse)
def admin_cleanup_status(
    admin: User = Depends(require_admin),
    repository: UserRepository = Depends(get_repository),
):
    now = datetime.now(timezone.utc)
    scheduled = [
        ScheduledUser(
            id=user.id,
            username=user.username,
            email=user.email,
            deletion_scheduled_at=user.deletion_scheduled_at,
            days_remaining=max(days_until_deletion(user.deletion_scheduled_at, now), 0),
        )
        for user in repository.get_users_scheduled_for_deletion()
    ]
    return CleanupStatusResponse(
        schedule_frequency=settings.cleanup_frequency, scheduled_users=scheduled
    )


@router.post("/api/admin/cleanup/run")
def admin_run_cleanup(
    admin: User = Depends(require_admin),
    repository: UserRepository = Depends(get_repository),
    mailer: Mailer = Depends(get_mailer),
):
    logger.info("manual cleanup requested by %s", admin.username)
    return run_cleanup(repository, mailer)


@router.api_route("/api/cron/cleanup", methods=["GET", "POST"])
def cron_cleanup(
    authorization: Optional[str] = Header(None),
    repository: UserRepository = Depends(get_repository),
    mailer: Mailer = Depends(get_mailer),
):
    """Entry point for the hosting platform's cron trigger."""
    if not is_cron_request(authorization):
        return JSONResponse(status_code=401, content={"message": "Unauthorized"})

    try:
        logger.info("running scheduled user cleanup")
        result = run_cleanup(repository, mailer)
    except Exception as exc:
        logger.exception("cleanup cron job failed")
        return JSONResponse(
            status_code=500,
            content={"success": False, "message": "Cleanup failed", "error": str(exc)},
        )
    logger.info("cleanup completed: %s", result)
    return JSONResponse(
        status_code=200,
        content={"success": True, "message": "Cleanup completed successfully", **result},
    )


async def storage_error_handler(request: Request, exc: StorageError):
    return JSONResponse(status_code=500, content={"detail": str(exc)})


def create_app(
    session_factory: Optional[sessionmaker] = None,
    mailer: Optional[Mailer] = None,
) -> FastAPI:
    """Build the application around an explicitly constructed store client."""
    if session_factory is None:
        engine = create_store_engine(settings.store_url, settings.store_key)
        session_factory = create_session_factory(engine)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        init_db(session_factory.kw["bind"])
        yield

    app = FastAPI(title=settings.api_title, lifespan=lifespan)
    app.state.limiter = limiter
    app.state.repository = UserRepository(session_factory)
    app.state.mailer = mailer or Mailer.from_settings(settings)
    app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)
    app.add_exception_handler(StorageError, storage_error_handler)

    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        """Log incoming requests and their outcomes while updating metrics."""
        logger.info("request %s %s", request.method, request.url.path)
        try:
            response = await call_next(request)
            REQUEST_COUNTER.labels(
                method=request.method,
                endpoint=request.url.path,
                status=str(response.status_code),
            ).inc()
            logger.info(
                "response %s %s status %s",
                request.method,
                request.url.path,
                response.status_code,
            )
            return response
        except Exception:
            REQUEST_COUNTER.labels(
                method=request.method,
                endpoint=request.url.path,
                status="500",
            ).inc()
            logger.exception(
                "error handling %s %s", request.method, request.url.path
            )
            raise

    app.include_router(router)
    return app


app = create_app()
