from contextlib import asynccontextmanager
import logging

from fastapi import BackgroundTasks, Depends, FastAPI, Request
from fastapi.responses import RedirectResponse
from sqlalchemy.orm import Session

from shortlinkapi.api.analytics import router as analytics_router
from shortlinkapi.api.deps import get_click_recorder, redirect_rate_limiter
from shortlinkapi.api.routes import router as links_router
from shortlinkapi.core.config import settings
from shortlinkapi.core.errors import register_exception_handlers
from shortlinkapi.core.logging_config import configure_logging
from shortlinkapi.db.base import Base
from shortlinkapi.db.session import engine, get_db
from shortlinkapi.services.recorder import ClickRecorder, client_context
from shortlinkapi.services.resolver import find_resolvable_link, resolve_link

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    configure_logging(settings.log_level)
    Base.metadata.create_all(bind=engine)
    logger.info("shortlink-api started (env=%s)", settings.app_env)
    yield


app = FastAPI(title="Shortlink API", lifespan=lifespan)
register_exception_handlers(app)
app.include_router(links_router)
app.include_router(analytics_router)


@app.get("/health")
def health():
    return {"status": "ok"}


@app.head("/{short_code}")
def check_link(short_code: str, db: Session = Depends(get_db)):
    link = find_resolvable_link(db, short_code)
    return RedirectResponse(url=link.original_url, status_code=307)


# Catch-all; must stay below every other GET route.
@app.get("/{short_code}", dependencies=[Depends(redirect_rate_limiter)])
def redirect(
    short_code: str,
    request: Request,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    recorder: ClickRecorder = Depends(get_click_recorder),
):
    link = resolve_link(db, short_code)

    # Runs after the response is sent; errors stay inside the recorder.
    background_tasks.add_task(recorder.record, link.id, client_context(request))

    return RedirectResponse(url=link.original_url, status_code=307)
