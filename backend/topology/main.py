import logging
import time

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy.exc import OperationalError

from topology import __version__
from topology.api.routes import router
from topology.config import CORS_ORIGINS, LOG_FORMAT, LOG_LEVEL
from topology.db.models import Base
from topology.db.session import engine

logging.basicConfig(level=LOG_LEVEL, format=LOG_FORMAT)
logger = logging.getLogger(__name__)

app = FastAPI(
    title="Topology Builder",
    version=__version__,
)

# Middleware first
app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Routes after middleware
app.include_router(router)


@app.on_event("startup")
def startup():
    retries = 5
    delay = 2

    for attempt in range(retries):
        try:
            Base.metadata.create_all(bind=engine)
            logger.info("Database connected")
            return
        except OperationalError:
            logger.info("Waiting for database... (%d/%d)", attempt + 1, retries)
            time.sleep(delay)

    # run without persistence rather than refuse to serve builds
    logger.warning("Database not ready - running without persistence")
