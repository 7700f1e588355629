from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from dispatchlink.core.config import settings
from dispatchlink.core.errors import DispatchError
from dispatchlink.core.logging import get_logger
from dispatchlink.db import session as db_session
from dispatchlink.db.init_db import create_initial_data, init_db
from dispatchlink.routers import auth, chat, er_beds, hospitals, incidents, patients, personnel, realtime, users
from dispatchlink.services import redis
from dispatchlink.services.connection_registry import ConnectionRegistry
from dispatchlink.services.logout import LogoutCoordinator

logger = get_logger("dispatchlink")


@asynccontextmanager
async def lifespan(app: FastAPI):
    await init_db(db_session.engine)
    async with db_session.SessionLocal() as session:
        await create_initial_data(session)

    registry = ConnectionRegistry()
    registry.initialize_transport(redis.publish_message)
    app.state.registry = registry
    app.state.logout_coordinator = LogoutCoordinator(registry)
    logger.info(f"{settings.PROJECT_NAME} started")

    yield

    await redis.close()
    await db_session.engine.dispose()
    logger.info(f"{settings.PROJECT_NAME} stopped")


app = FastAPI(
    title=settings.PROJECT_NAME,
    description="API for DispatchLink - emergency dispatch, responders and ER beds",
    version="0.1.0",
    docs_url="/api/docs",
    redoc_url="/api/redoc",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(DispatchError)
async def dispatch_error_handler(request: Request, exc: DispatchError):
    return JSONResponse(status_code=exc.status_code, content={"message": exc.message})


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    message = "; ".join(
        f"{'.'.join(str(part) for part in error['loc'] if part != 'body')}: {error['msg']}" for error in errors
    )
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"message": message or "Invalid request"},
    )


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException):
    return JSONResponse(
        status_code=exc.status_code,
        content={"message": exc.detail},
        headers=getattr(exc, "headers", None),
    )


@app.exception_handler(Exception)
async def unexpected_error_handler(request: Request, exc: Exception):
    logger.exception(f"Unhandled error on {request.method} {request.url.path}: {exc}")
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"message": "Internal server error"},
    )


app.include_router(auth.router, prefix=settings.API_PREFIX, tags=["Authentication"])
app.include_router(users.router, prefix=settings.API_PREFIX, tags=["Users"])
app.include_router(personnel.router, prefix=settings.API_PREFIX, tags=["Personnel"])
app.include_router(incidents.router, prefix=settings.API_PREFIX, tags=["Incidents"])
app.include_router(hospitals.router, prefix=settings.API_PREFIX, tags=["Hospitals"])
app.include_router(er_beds.router, prefix=settings.API_PREFIX, tags=["ER Beds"])
app.include_router(patients.router, prefix=settings.API_PREFIX, tags=["Patients"])
app.include_router(chat.router, prefix=settings.API_PREFIX, tags=["Chat"])
app.include_router(realtime.router, prefix=settings.API_PREFIX, tags=["Realtime"])


@app.get("/api/health", tags=["Health"])
async def health_check():
    return {"status": "ok"}


if __name__ == "__main__":
    uvicorn.run("main:app", host="0.0.0.0", port=8000, reload=True)
