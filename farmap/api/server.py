"""
Farmap: Read-Only API Server
============================

Serves spam label aggregates computed from the stored user collection.

Endpoints:
- GET /                                        -> banner text
- GET /spam_score_distribution                 -> current distribution
- GET /weekly_spam_scores                      -> [[date, [spam, maybe, nonspam]], ...]
- GET /weekly_spam_scores_counts               -> [{date, spam, maybe, nonspam}, ...]
- GET /monthly_spam_scores                     -> [[date, [spam, maybe, nonspam]], ...]
- GET /spam_score_distributions/{year}/{month} -> monthly series for a cohort
- GET /latest_moves                            -> score shift matrix
- GET /casts_for_moved/{from}/{to}/{timespan}  -> [set_size, average_total_casts]
- GET /{fid}                                   -> latest score of one fid

Routes without any spam data answer 204. When ALLOW_TOKEN is configured
every route requires "Authorization: Bearer <token>".

Usage:
    FARMAP_DB_PATH=./data/user-db.json uvicorn farmap.api.server:app
"""
import hmac
import logging
from contextlib import asynccontextmanager
from typing import List, Optional

from fastapi import Depends, FastAPI, HTTPException, Query, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import PlainTextResponse
from pydantic import BaseModel

from ..contracts.base import Fid, InvalidInputError, SpamScore
from ..contracts.results import dated_to_dict
from ..engine import FarmapConfig, FarmapEngine
from ..observability import configure_logging


logger = logging.getLogger(__name__)

ROOT_TEXT = "This is a server for farmap data."


# =============================================================================
# RESPONSE MODELS
# =============================================================================

class DistributionDTO(BaseModel):
    spam: float
    maybe: float
    nonspam: float


class DatedCountDTO(BaseModel):
    date: str
    spam: int
    maybe: int
    nonspam: int


class ScoreShiftDTO(BaseModel):
    source: str
    target: str
    count: int


# =============================================================================
# APP FACTORY
# =============================================================================

def _engine(request: Request) -> FarmapEngine:
    engine = getattr(request.app.state, "engine", None)
    if engine is None:
        raise HTTPException(status_code=503, detail="Engine not initialized")
    return engine


def _require_token(request: Request) -> None:
    expected = _engine(request).config.allow_token
    if not expected:
        return
    header = request.headers.get("authorization", "")
    scheme, _, token = header.partition(" ")
    if scheme.lower() != "bearer" or not hmac.compare_digest(token, expected):
        raise HTTPException(status_code=401, detail="Unauthorized")


def _series(dated_distributions) -> List[list]:
    return [[d.date.isoformat(), d.inner.as_list()] for d in dated_distributions]


def create_app(engine: Optional[FarmapEngine] = None) -> FastAPI:
    """
    Build the API. Without an engine one is created from the environment
    and its snapshot is loaded on startup.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if getattr(app.state, "engine", None) is None:
            config = FarmapConfig.from_env()
            configure_logging(config.log_level)
            logger.info("initializing engine with %s storage", config.storage.backend_type)
            app.state.engine = FarmapEngine(config)
            app.state.engine.load()
        yield
        logger.info("shutting down")

    app = FastAPI(
        title="Farmap API",
        version="0.1.0",
        description="Spam label aggregates for Farcaster users",
        lifespan=lifespan,
        dependencies=[Depends(_require_token)],
    )
    app.state.engine = engine

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["GET"],
        allow_headers=["*"],
    )

    # =========================================================================
    # ENDPOINTS
    # =========================================================================

    @app.get("/", response_class=PlainTextResponse)
    def root():
        return ROOT_TEXT

    @app.get("/spam_score_distribution", response_model=DistributionDTO)
    def spam_score_distribution(engine: FarmapEngine = Depends(_engine)):
        distribution = engine.current_distribution()
        if distribution is None:
            return Response(status_code=204)
        return distribution.to_dict()

    @app.get("/weekly_spam_scores")
    def weekly_spam_scores(
        from_fid: Optional[int] = Query(None, ge=0),
        to_fid: Optional[int] = Query(None, ge=0),
        engine: FarmapEngine = Depends(_engine),
    ):
        series = engine.weekly_distributions(from_fid, to_fid)
        if series is None:
            return Response(status_code=204)
        return _series(series)

    @app.get("/weekly_spam_scores_counts", response_model=List[DatedCountDTO])
    def weekly_spam_scores_counts(
        from_fid: Optional[int] = Query(None, ge=0),
        to_fid: Optional[int] = Query(None, ge=0),
        engine: FarmapEngine = Depends(_engine),
    ):
        series = engine.weekly_series(from_fid, to_fid)
        if series is None:
            return Response(status_code=204)
        return [dated_to_dict(d) for d in series]

    @app.get("/monthly_spam_scores")
    def monthly_spam_scores(engine: FarmapEngine = Depends(_engine)):
        series = engine.monthly_distributions()
        if series is None:
            return Response(status_code=204)
        return _series(series)

    @app.get("/spam_score_distributions/{year}/{month}")
    def spam_score_distributions_for_cohort(
        year: int, month: int, engine: FarmapEngine = Depends(_engine)
    ):
        try:
            series = engine.cohort_distributions(year, month)
        except InvalidInputError as exc:
            raise HTTPException(status_code=400, detail=str(exc))
        if series is None:
            return Response(status_code=204)
        return _series(series)

    @app.get("/latest_moves", response_model=List[ScoreShiftDTO])
    def latest_moves(
        days: Optional[int] = Query(None, ge=0),
        from_fid: Optional[int] = Query(None, ge=0),
        to_fid: Optional[int] = Query(None, ge=0),
        engine: FarmapEngine = Depends(_engine),
    ):
        shifts = engine.latest_moves(days, from_fid, to_fid)
        if shifts is None:
            return Response(status_code=204)
        return [s.to_dict() for s in shifts]

    @app.get("/casts_for_moved/{from_score}/{to_score}/{timespan}")
    def casts_for_moved(
        from_score: int, to_score: int, timespan: int,
        engine: FarmapEngine = Depends(_engine),
    ):
        if not (0 <= from_score <= 2 and 0 <= to_score <= 2 and 0 <= timespan <= 100):
            raise HTTPException(status_code=400, detail="scores must be 0..2 and timespan 0..100")
        if engine.spam_set() is None:
            return Response(status_code=204)
        size, average = engine.casts_for_moved(
            SpamScore.from_int(from_score), SpamScore.from_int(to_score), timespan
        )
        return [size, average]

    @app.get("/{fid}")
    def fid_score(fid: int, engine: FarmapEngine = Depends(_engine)):
        if fid < 0:
            raise HTTPException(status_code=404, detail="fid not found")
        score = engine.score_for_fid(Fid(fid))
        if score is None:
            raise HTTPException(status_code=404, detail="fid not found")
        return score.value

    return app


app = create_app()
