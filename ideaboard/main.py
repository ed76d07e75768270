# ideaboard/main.py

from contextlib import asynccontextmanager
import logging
from fastapi import FastAPI
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from ideaboard.database import engine
from ideaboard.lock_janitor import StaleLockJanitor
from ideaboard.routers import ideas, profiles
from ideaboard.services.auth_provider import SupabaseAuthProvider
from ideaboard.services.fetch_service import ProfileService
from ideaboard.services.lock_service import IdeaLockService
from ideaboard.services.remote import HttpRemoteEndpoint
from ideaboard.services.store import SqlAlchemyStore
from ideaboard.config import LOCK_JANITOR_INTERVAL_SECONDS, PROFILE_CACHE_TTL_SECONDS

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup: one service instance of each kind, shared by every request
    store = SqlAlchemyStore(engine)
    remote = HttpRemoteEndpoint()
    app.state.profile_service = ProfileService(SupabaseAuthProvider(), remote, store, PROFILE_CACHE_TTL_SECONDS)
    app.state.lock_service = IdeaLockService(store)
    janitor = StaleLockJanitor(app.state.lock_service, LOCK_JANITOR_INTERVAL_SECONDS)
    await janitor.start()
    try:
        yield
    finally:
        # Shutdown: stop the janitor, reject pending profile reads, close the HTTP client
        await janitor.stop()
        app.state.profile_service.destroy()
        await remote.aclose()

app = FastAPI(lifespan=lifespan)
app.include_router(profiles.router)
app.include_router(ideas.router)

@app.get("/health")
def health_check():
    try:
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
        return {"status": "ok", "db": "connected"}
    except SQLAlchemyError as e:
        return {"status": "error", "db": str(e)}
