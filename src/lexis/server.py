import logging
import time
from contextlib import asynccontextmanager
from datetime import date

from fastapi import FastAPI, HTTPException
from pydantic import BaseModel, Field

from lexis.application.config import resolve_config
from lexis.application.factory import build_services, get_store
from lexis.application.scheduler import preview
from lexis.consts import VERSION
from lexis.domain.constants import DEFAULT_EASINESS, MIN_EASINESS
from lexis.domain.errors import NotFound, StoreUnavailable
from lexis.domain.models import CardMemoryState, Grade, Scope

# Setup logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger("lexis.server")


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup
    logger.info(f"Lexis Server v{VERSION} starting up...")
    config = resolve_config()
    store = get_store(config)
    selector, recorder = build_services(config, store)
    app.state.config = config
    app.state.store = store
    app.state.selector = selector
    app.state.recorder = recorder
    yield
    # Shutdown
    await store.aclose()
    logger.info("Lexis Server shutting down...")


app = FastAPI(
    title="Lexis Server",
    description="Spaced-repetition scheduling for vocabulary courses.",
    version=VERSION,
    lifespan=lifespan,
)


class HealthResponse(BaseModel):
    status: str
    version: str
    uptime_seconds: float
    store_responsive: bool


start_time = time.time()


@app.get("/health", response_model=HealthResponse)
async def health_check():
    """
    Health check: the server is reachable and reports whether its store answers.
    """
    responsive = await app.state.store.is_responsive()
    return HealthResponse(
        status="ok" if responsive else "degraded",
        version=VERSION,
        uptime_seconds=time.time() - start_time,
        store_responsive=responsive,
    )


@app.get("/version")
async def get_version():
    return {"version": VERSION}


class CardResponse(BaseModel):
    id: str
    front: str
    back: str
    level_id: str
    audio_url: str | None = None


class MemoryStateResponse(BaseModel):
    learner_id: str
    card_id: str
    repetition: int
    easiness: float
    interval_days: int
    due_date: date
    last_result: Grade
    updated_at: str


class ReviewRequest(BaseModel):
    learner_id: str
    card_id: str
    grade: Grade
    today: date | None = None  # Defaults to the server's canonical today


class PreviewRequest(BaseModel):
    repetition: int = Field(default=0, ge=0)
    easiness: float = Field(default=DEFAULT_EASINESS, ge=MIN_EASINESS)
    interval_days: int = Field(default=0, ge=0)


def _today(override: date | None) -> date:
    return override or app.state.config.today()


@app.get("/levels/{level_id}/due", response_model=list[CardResponse])
async def due_cards(level_id: str, learner_id: str | None = None, today: date | None = None):
    """
    Cards due today in a level, shuffled. Without ``learner_id`` every card
    in the level is returned.
    """
    cards = await app.state.selector.due_cards(learner_id, Scope.level(level_id), _today(today))
    return [
        CardResponse(
            id=c.id, front=c.front, back=c.back, level_id=c.level_id, audio_url=c.audio_url
        )
        for c in cards
    ]


@app.get("/courses/{course_id}/due-counts")
async def due_counts(course_id: str, learner_id: str | None = None, today: date | None = None):
    return await app.state.selector.due_counts(
        learner_id, Scope.course(course_id), _today(today)
    )


@app.post("/reviews", response_model=MemoryStateResponse)
async def record_review(req: ReviewRequest):
    """
    Grade one card for one learner and persist the new memory state.
    """
    try:
        state = await app.state.recorder.record(
            req.learner_id, req.card_id, req.grade, _today(req.today)
        )
    except StoreUnavailable as e:
        logger.error(f"Review not saved: {e}")
        raise HTTPException(status_code=503, detail=str(e)) from e
    except NotFound as e:
        raise HTTPException(status_code=404, detail=str(e)) from e

    return MemoryStateResponse(
        learner_id=state.learner_id,
        card_id=state.card_id,
        repetition=state.repetition,
        easiness=state.easiness,
        interval_days=state.interval_days,
        due_date=state.due_date,
        last_result=state.last_result,
        updated_at=state.updated_at.isoformat(),
    )


@app.post("/schedule/preview")
async def schedule_preview(req: PreviewRequest):
    """Interval in days that each grade would produce."""
    state = CardMemoryState(
        learner_id=None,
        card_id=None,
        repetition=req.repetition,
        easiness=req.easiness,
        interval_days=req.interval_days,
    )
    intervals = preview(state, app.state.config.today())
    return {grade.value: days for grade, days in intervals.items()}
