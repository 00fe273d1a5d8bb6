"""HTTP surface for the roadmap resource pipeline."""

from __future__ import annotations

from contextlib import asynccontextmanager
import logging
from typing import Any, Dict, Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, Field, field_validator

from core import PipelineResult
from orchestrator.roadmap_service import RoadmapResourceService, build_service, validate_request
from utils.exceptions import InvalidRoadmapInputError


logger = logging.getLogger(__name__)

_SERVICE: Optional[RoadmapResourceService] = None


def get_service() -> RoadmapResourceService:
    global _SERVICE
    if _SERVICE is None:
        _SERVICE = build_service()
    return _SERVICE


class ResourceRunPayload(BaseModel):
    roadmap: Dict[str, Any]
    fast_mode: bool = Field(default=False, alias="fastMode")

    model_config = ConfigDict(populate_by_name=True)


class AdaptPayload(ResourceRunPayload):
    new_hours_per_day: Optional[float] = Field(default=None, alias="newHoursPerDay")
    total_days: Optional[int] = Field(default=None, alias="totalDays")

    @field_validator("new_hours_per_day")
    @classmethod
    def _positive_hours(cls, value: Optional[float]) -> Optional[float]:
        if value is not None and value <= 0:
            raise ValueError("newHoursPerDay must be positive")
        return value

    @field_validator("total_days")
    @classmethod
    def _positive_days(cls, value: Optional[int]) -> Optional[int]:
        if value is not None and value < 1:
            raise ValueError("totalDays must be at least 1")
        return value


def _response(result: PipelineResult) -> Dict[str, Any]:
    return result.model_dump(mode="json")


@asynccontextmanager
async def _lifespan(app: FastAPI):
    yield
    if _SERVICE is not None:
        await _SERVICE.aclose()


app = FastAPI(title="Roadmap Resource Pipeline", version="1.0", lifespan=_lifespan)
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(InvalidRoadmapInputError)
async def _invalid_input_handler(request: Request, exc: InvalidRoadmapInputError) -> JSONResponse:
    logger.info("invalid_roadmap_input path=%s details=%s", request.url.path, exc.details)
    return JSONResponse(status_code=422, content={"detail": exc.message, **exc.details})


@app.get("/healthz")
async def health() -> Dict[str, str]:
    return {"status": "ok"}


@app.post("/api/v1/resources/generate")
async def generate_resources(payload: ResourceRunPayload) -> Dict[str, Any]:
    request = validate_request(payload.roadmap)
    result = await get_service().generate(request, fast_mode=payload.fast_mode)
    return _response(result)


@app.post("/api/v1/resources/adapt")
async def adapt_resources(payload: AdaptPayload) -> Dict[str, Any]:
    request = validate_request(payload.roadmap)
    result = await get_service().adapt(
        request,
        new_hours_per_day=payload.new_hours_per_day,
        total_days=payload.total_days,
        fast_mode=payload.fast_mode,
    )
    return _response(result)


@app.post("/api/v1/resources/backfill")
async def backfill_resources(payload: ResourceRunPayload) -> Dict[str, Any]:
    request = validate_request(payload.roadmap)
    result = await get_service().backfill(request, fast_mode=payload.fast_mode)
    return _response(result)
