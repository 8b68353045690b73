"""Main FastAPI application."""

import logging

from contextlib import asynccontextmanager
from datetime import timedelta
from typing import Annotated

from fastapi import Depends, FastAPI, HTTPException, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.security import OAuth2PasswordRequestForm

from opscadence import __version__
from opscadence.api.v1.api import api_router
from opscadence.auth import authenticate_user, create_access_token, get_current_active_user
from opscadence.config import settings
from opscadence.scheduler import shutdown_scheduler, start_scheduler
from opscadence.schemas.auth import Token, User

# Configure root logger early
log_level_str = settings.log_level.upper()
log_level = logging.TRACE if log_level_str == "TRACE" else getattr(logging, log_level_str, logging.INFO)
if not logging.getLogger().hasHandlers():
    logging.basicConfig(
        level=log_level,
        format='%(asctime)s - %(name)s - %(levelname)-8s - %(message)s'
    )

    root = logging.getLogger()

    # VERBOSE: engine internals at TRACE, everything else at DEBUG
    if log_level_str == "VERBOSE":
        root_level = logging.DEBUG
        engine_level = logging.TRACE
        sqlalchemy_level = logging.INFO
        root.info("VERBOSE mode enabled: occurrence and sweep traces active for debugging.")
    elif log_level_str == "TRACE":
        root_level = logging.TRACE
        engine_level = logging.TRACE
        sqlalchemy_level = logging.INFO
    else:
        root_level = log_level
        engine_level = root_level
        sqlalchemy_level = logging.WARNING

    root.setLevel(root_level)
    logging.getLogger("opscadence.services").setLevel(engine_level)
    logging.getLogger("sqlalchemy.engine").setLevel(sqlalchemy_level)
    logging.getLogger("apscheduler").setLevel(logging.WARNING if root_level > logging.DEBUG else logging.DEBUG)

    root.trace("Trace logging enabled at startup (verbose details).") if log_level_str == "TRACE" else root.debug("Debug logging enabled at startup.")

log = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    if settings.scheduler_enabled:
        start_scheduler()
        log.info(
            f"In-process scheduler enabled: generation='{settings.generation_cron}', "
            f"status sweep='{settings.status_sweep_cron}'"
        )
    else:
        log.info("In-process scheduler disabled; expecting an external cron provider")
    yield
    shutdown_scheduler()


app = FastAPI(
    title="OpsCadence",
    description="Recurring task instance generation and lifecycle engine",
    version=__version__,
    lifespan=lifespan
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.post("/token", response_model=Token)
async def login_for_access_token(form_data: Annotated[OAuth2PasswordRequestForm, Depends()]):
    user = authenticate_user(form_data.username, form_data.password)
    if not user:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Incorrect username or password",
            headers={"WWW-Authenticate": "Bearer"},
        )
    access_token_expires = timedelta(minutes=settings.access_token_expire_minutes)
    access_token = create_access_token(
        data={"sub": user.username}, expires_delta=access_token_expires
    )
    return {"access_token": access_token, "token_type": "bearer"}


@app.get("/users/me/", response_model=User)
async def read_users_me(current_user: Annotated[User, Depends(get_current_active_user)]):
    return current_user


@app.get("/api/health")
async def health_check():
    """Health check endpoint."""
    return {
        "status": "healthy",
        "version": __version__
    }


@app.get("/")
async def root():
    """Root endpoint - points to docs."""
    return {
        "message": "OpsCadence API",
        "version": __version__,
        "docs": "/docs"
    }


app.include_router(api_router, prefix=settings.api_v1_str)


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    log.error(f"Unhandled exception: {exc}", exc_info=True)
    return JSONResponse(
        status_code=500,
        content={"detail": "Internal server error"}
    )


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=8000, log_level="info")
