"""
Request and response models for FastAPI endpoints.
"""

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from regulation_search.models import Regulation


class RegulationModel(BaseModel):
    """A regulation record, with relevance on search results."""
    id: int
    prefecture: str
    city: str
    category: str
    title: str
    content: str
    relevance: Optional[float] = Field(default=None, ge=0.0, le=1.0)

    @classmethod
    def from_regulation(cls, regulation: Regulation) -> 'RegulationModel':
        return cls(**regulation.to_dict())


class SearchRequest(BaseModel):
    """Request model for /search endpoint. A blank query returns every record."""
    query: str = Field(default="", max_length=1000)


class SearchResponse(BaseModel):
    """Response model for /search endpoint."""
    query: str
    results: List[RegulationModel]
    count: int
    message: Optional[str] = None
    request_id: Optional[str] = None
    metrics: Optional[Dict[str, Any]] = None


class RegulationListResponse(BaseModel):
    """Response model for /regulations endpoint."""
    regulations: List[RegulationModel]
    count: int


class HealthResponse(BaseModel):
    """Response model for /health endpoint."""
    status: str
    records_loaded: bool
    record_count: int = 0
    error: Optional[str] = None
