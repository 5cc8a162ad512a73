import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from tournament_engine.config import CORS_ORIGINS, LOG_LEVEL
from tournament_engine.database import init_db
from tournament_engine.routes import comments, fixtures, history, knockout, schedule, tournaments
from tournament_engine.services.errors import EngineError

logging.basicConfig(
    level=getattr(logging, LOG_LEVEL, logging.INFO),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

app = FastAPI(title="Tournament Engine API")

app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(EngineError)
async def engine_error_handler(request: Request, exc: EngineError):
    logger.warning("%s %s rejected: %s (%s)", request.method, request.url.path, exc.message, exc.code)
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.message, "code": exc.code})


@app.exception_handler(ValueError)
async def value_error_handler(request: Request, exc: ValueError):
    logger.warning("%s %s rejected: %s", request.method, request.url.path, exc)
    return JSONResponse(status_code=400, content={"detail": str(exc), "code": "INVALID_INPUT"})


# Include routers
app.include_router(tournaments.router, prefix="/api", tags=["tournaments"])
app.include_router(fixtures.router, prefix="/api", tags=["fixtures"])
app.include_router(knockout.router, prefix="/api", tags=["knockout"])
app.include_router(schedule.router, prefix="/api", tags=["schedule"])
app.include_router(comments.router, prefix="/api", tags=["comments"])
app.include_router(history.router, prefix="/api", tags=["history"])


@app.on_event("startup")
def on_startup():
    init_db()  # Use centralized init_db() which imports models and creates tables
    logger.info("Tournament Engine API ready (%d routes)", len(app.routes))


@app.get("/api/health")
def health_check():
    return {"app_name": "Tournament Engine API", "status": "healthy"}
