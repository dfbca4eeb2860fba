# models/schemas.py
from typing import List, Optional

from pydantic import BaseModel, Field, model_validator

from match_engine.models.results import MatchResult, MatchSummary


class EmbeddingRequest(BaseModel):
    text: str = Field(..., min_length=1)


class EmbeddingResponse(BaseModel):
    embedding: List[float]
    dimensions: int
    model: str


class ResumeJobMatchRequest(BaseModel):
    resume_id: str
    job_id: str


class JobRecommendationsRequest(BaseModel):
    resume_id: str
    limit: Optional[int] = Field(default=None, ge=1, le=50)
    min_score: Optional[int] = Field(default=None, ge=0, le=100)


class CandidateRecommendationsRequest(BaseModel):
    job_id: str
    resume_ids: List[str] = Field(..., min_length=1)
    limit: Optional[int] = Field(default=None, ge=1, le=50)
    min_score: Optional[int] = Field(default=None, ge=0, le=100)


class RecommendationsResponse(BaseModel):
    matches: List[MatchResult]
    summary: MatchSummary
    total: int


class AnalyzeRequest(BaseModel):
    resume_id: str


class OptimizeJobDescriptionRequest(BaseModel):
    description: str = Field(..., min_length=1)


class ExtractSkillsRequest(BaseModel):
    """Either a stored resume or ad-hoc resume text"""
    resume_id: Optional[str] = None
    content: Optional[str] = None

    @model_validator(mode="after")
    def validate_source(self):
        if not self.resume_id and not (self.content and self.content.strip()):
            raise ValueError("resume_id or content is required")
        return self


class BulkEmbeddingRequest(BaseModel):
    limit: int = Field(default=50, ge=1, le=100)
