# main.py
import logging
from contextlib import asynccontextmanager
from typing import Any

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from skillgap.config import Settings, settings
from skillgap.database import DATABASE_URL, Base, engine
from skillgap.models import AffiliateEvent, OccupationCacheEntry, Resume, SkillGapAnalysis, TrackedSkill  # noqa: F401  # register tables
from skillgap.routers import health, occupations, recommendations, resumes, skill_gap
from skillgap.services.analysis_cache import KeyedLocks
from skillgap.services.course_catalog import CourseCatalogClient
from skillgap.services.llm_client import OpenAITransferClient
from skillgap.services.occupation_provider import OnetOccupationProvider
from skillgap.services.performance_monitor import PerformanceMonitor
from skillgap.services.revenue_validation import RevenueValidator
from skillgap.services.transferable_matcher import MatcherCache, TransferableSkillsMatcher


logger = logging.getLogger(__name__)


def build_collaborators(config: Settings) -> dict[str, Any]:
    monitor = PerformanceMonitor(buffer_size=config.metrics_buffer_size)
    ai_client = None
    if config.openai_api_key:
        ai_client = OpenAITransferClient(api_key=config.openai_api_key, model=config.ai_model)
    else:
        logger.warning("OPENAI_API_KEY not set; transferable skills use baseline matching only")
    return {
        "monitor": monitor,
        "matcher": TransferableSkillsMatcher(
            ai_client=ai_client,
            cache=MatcherCache(maxsize=config.matcher_cache_size, ttl_seconds=config.matcher_cache_ttl_seconds),
            timeout_seconds=config.ai_timeout_seconds,
            model_name=config.ai_model,
            monitor=monitor,
        ),
        "occupation_provider": OnetOccupationProvider(
            base_url=config.onet_api_base,
            username=config.onet_api_username,
            password=config.onet_api_password,
            data_version=config.onet_data_version,
            cache_ttl_days=config.onet_cache_ttl_days,
            timeout=config.onet_request_timeout_seconds,
            monitor=monitor,
        ),
        "course_catalog": CourseCatalogClient(
            coursera_api_key=config.coursera_api_key,
            udemy_client_id=config.udemy_client_id,
            udemy_client_secret=config.udemy_client_secret,
            timeout=config.course_request_timeout_seconds,
        ),
        "revenue_validator": RevenueValidator(),
        "analysis_locks": KeyedLocks(),
    }


def create_app() -> FastAPI:
    @asynccontextmanager
    async def lifespan(app: FastAPI):
        # External clients are created once per process and shared by all requests.
        for name, value in build_collaborators(settings).items():
            setattr(app.state, name, value)
        yield

    application = FastAPI(
        title=settings.app_name,
        version=settings.version,
        debug=settings.debug,
        lifespan=lifespan,
    )
    application.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origin_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Health endpoints (do not depend on API_PREFIX)
    application.include_router(health.router)

    application.include_router(resumes.router, prefix=settings.api_prefix)
    application.include_router(skill_gap.router, prefix=settings.api_prefix)
    application.include_router(occupations.router, prefix=settings.api_prefix)
    application.include_router(recommendations.router, prefix=settings.api_prefix)

    # Avoid accidental schema changes in shared MySQL databases.
    if DATABASE_URL.startswith("sqlite"):
        Base.metadata.create_all(bind=engine)
    return application


app = create_app()
