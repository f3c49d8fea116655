import logging
from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse
from sqlalchemy.engine import make_url
from sqlalchemy.exc import SQLAlchemyError

from pilgrim_housing.config import settings
from pilgrim_housing.database import engine
from pilgrim_housing.errors import BackingStoreError, HousingError
from pilgrim_housing.models import Base
from pilgrim_housing.routers import allocations, buildings, occupancy, reservations, rooms
from pilgrim_housing.viewmodels.allocation_vm import SessionRegistry

logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


def _ensure_sqlite_dir(url: str) -> None:
    parsed = make_url(url)
    database = parsed.database
    if parsed.get_backend_name() == "sqlite" and database and database != ":memory:":
        Path(database).parent.mkdir(parents=True, exist_ok=True)


@asynccontextmanager
async def lifespan(app: FastAPI):
    _ensure_sqlite_dir(settings.database_url)

    # create tables on startup
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    logger.info("%s started on %s", settings.app_name, engine.url.render_as_string(hide_password=True))
    yield

    await engine.dispose()


app = FastAPI(title=settings.app_name, lifespan=lifespan)

# open allocation sessions live with the application instance
app.state.allocations = SessionRegistry(settings.max_open_sessions)


@app.exception_handler(HousingError)
async def housing_error_handler(request: Request, exc: HousingError):
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
    return JSONResponse(
        status_code=exc.status_code,
        content=jsonable_encoder({"error": exc.error_code, "message": exc.message, "details": exc.details}),
    )


@app.exception_handler(SQLAlchemyError)
async def store_error_handler(request: Request, exc: SQLAlchemyError):
    # reads run outside transaction(), so their store failures land here
    logger.error("%s %s hit a store failure", request.method, request.url.path, exc_info=exc)
    cause = getattr(exc, "orig", None) or exc
    return await housing_error_handler(request, BackingStoreError(f"Backing store failure: {cause}"))


# routers
app.include_router(buildings.router)
app.include_router(rooms.router)
app.include_router(occupancy.router)
app.include_router(allocations.router)
app.include_router(reservations.router)
