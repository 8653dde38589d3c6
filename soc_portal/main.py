from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
import logging
from .config import settings
from .database import Database
from .exceptions import SocPortalError, soc_portal_error_handler
from .middleware import logging_middleware
from .routers import downtime_chart, downtime_log

# Setup basic logging
logging.basicConfig(
    level=settings.LOG_LEVEL,
    format='%(asctime)s %(levelname)s %(name)s %(message)s',
)

logger = logging.getLogger(__name__)


def create_app(database: Database = None) -> FastAPI:
    """
    Build the API around an explicitly owned database.

    Tests pass their own ``Database``; otherwise one is created from settings.
    """
    app = FastAPI(title=settings.PROJECT_NAME)
    app.state.database = database or Database(settings.DB_URL)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.middleware("http")(logging_middleware)

    app.add_exception_handler(SocPortalError, soc_portal_error_handler)

    app.include_router(downtime_chart.router, prefix="/downtime_chart", tags=["Downtime Chart"])
    app.include_router(downtime_log.router, prefix="/downtime_log", tags=["Downtime Log"])

    @app.get("/")
    def root():
        return {"message": f"{settings.PROJECT_NAME} running"}

    @app.on_event("startup")
    def prepare_database():
        # Local sqlite runs have no migrations applied
        if app.state.database.url.startswith("sqlite"):
            app.state.database.create_all()

    @app.on_event("shutdown")
    def close_database():
        app.state.database.dispose()

    return app


app = create_app()
