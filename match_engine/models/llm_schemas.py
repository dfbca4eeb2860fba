"""
Response contracts for structured model output.

Every generation prompt asks for one of these JSON shapes. Output that does not
validate against its schema is treated as malformed as a whole.
"""
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from match_engine.models.profiles import SkillCategory
from match_engine.models.results import Impact, Priority, SuggestionType


class Payload(BaseModel):
    model_config = ConfigDict(extra="ignore")


class ScoredFeedback(Payload):
    score: float = Field(ge=0, le=100)
    feedback: str = ""


class AchievementsPayload(Payload):
    quantified: int = Field(default=0, ge=0)
    total: int = Field(default=0, ge=0)
    score: float = Field(default=0, ge=0, le=100)
    feedback: str = ""


class ContentAnalysisPayload(Payload):
    strengths: List[str] = Field(default_factory=list)
    weaknesses: List[str] = Field(default_factory=list)
    contentQuality: ScoredFeedback
    structure: Optional[ScoredFeedback] = None
    language: Optional[ScoredFeedback] = None
    achievements: Optional[AchievementsPayload] = None


class ATSFactorPayload(Payload):
    score: float = Field(ge=0, le=100)
    issues: List[str] = Field(default_factory=list)
    suggestions: List[str] = Field(default_factory=list)
    found: List[str] = Field(default_factory=list)
    missing: List[str] = Field(default_factory=list)


class ATSAnalysisPayload(Payload):
    score: float = Field(ge=0, le=100)
    factors: Dict[str, ATSFactorPayload] = Field(default_factory=dict)
    overallFeedback: str = ""


class SuggestionPayload(Payload):
    type: SuggestionType
    priority: Priority
    title: str
    description: str = ""
    section: Optional[str] = None
    current: Optional[str] = None
    suggested: Optional[str] = None
    impact: Impact = Impact.MEDIUM
    category: Optional[str] = None


class SuggestionsPayload(Payload):
    suggestions: List[SuggestionPayload]
    missingSkills: List[str] = Field(default_factory=list)
    keywordGaps: List[str] = Field(default_factory=list)
    atsScore: float = Field(default=0, ge=0, le=100)
    overallFeedback: str = ""


class SkillPayload(Payload):
    skill: str
    category: SkillCategory
    confidence: float = Field(ge=0.0, le=1.0)
    context: Optional[str] = None


class SkillsPayload(Payload):
    skills: List[SkillPayload]
    categories: Dict[str, List[str]] = Field(default_factory=dict)


class JobSuggestionPayload(Payload):
    type: str
    priority: str = "medium"
    current: str = ""
    suggested: str = ""
    reason: str = ""


class JobOptimizationPayload(Payload):
    optimizedDescription: str
    suggestions: List[JobSuggestionPayload] = Field(default_factory=list)
    keywordSuggestions: List[str] = Field(default_factory=list)
    improvementScore: float = Field(default=0, ge=0, le=100)
    feedback: str = ""


class KeywordOptimizationPayload(Payload):
    missing: List[str] = Field(default_factory=list)
    suggestions: List[str] = Field(default_factory=list)


class ContentOptimizationPayload(Payload):
    summary: str = ""
    experienceHighlights: List[str] = Field(default_factory=list)
    skillsToEmphasize: List[str] = Field(default_factory=list)


class MatchImprovementsPayload(Payload):
    before: float = Field(default=0, ge=0, le=100)
    after: float = Field(default=0, ge=0, le=100)
    improvements: List[str] = Field(default_factory=list)


class SectionRewritePayload(Payload):
    section: str
    current: str = ""
    suggested: str = ""
    reason: str = ""


class ResumeOptimizationPayload(Payload):
    keywordOptimization: KeywordOptimizationPayload
    contentOptimization: ContentOptimizationPayload = Field(default_factory=ContentOptimizationPayload)
    matchImprovements: MatchImprovementsPayload = Field(default_factory=MatchImprovementsPayload)
    specificSuggestions: List[SectionRewritePayload] = Field(default_factory=list)
