# models/results.py
from datetime import datetime
from enum import Enum
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from match_engine.models.profiles import ExtractedSkill
from match_engine.models.settings import MatchWeights


class Frozen(BaseModel):
    model_config = ConfigDict(frozen=True)


# -------- Matching --------

class ScoreBreakdown(Frozen):
    semantic: float = Field(default=0.0, ge=0.0, le=100.0)
    skills: float = Field(default=0.0, ge=0.0, le=100.0)
    experience: float = Field(default=0.0, ge=0.0, le=100.0)
    keywords: float = Field(default=0.0, ge=0.0, le=100.0)


class ExperienceGap(Frozen):
    resume_years: Optional[int] = None
    required_years: int = 0
    gap: int = 0
    meets_requirement: bool = False


class MatchResult(Frozen):
    resume_id: str
    job_id: str
    breakdown: ScoreBreakdown
    overall_score: int = Field(ge=0, le=100)
    matched_skills: List[str] = Field(default_factory=list)
    missing_skills: List[str] = Field(default_factory=list)
    explanations: List[str] = Field(default_factory=list)
    experience_gap: ExperienceGap = Field(default_factory=ExperienceGap)
    weights: MatchWeights = Field(default_factory=MatchWeights)


class ScoreDistribution(Frozen):
    excellent: int = 0
    good: int = 0
    fair: int = 0


class MatchSummary(Frozen):
    average_score: int = 0
    top_score: int = 0
    distribution: ScoreDistribution = Field(default_factory=ScoreDistribution)


# -------- Suggestions --------

class SuggestionType(str, Enum):
    CONTENT = "content"
    FORMATTING = "formatting"
    KEYWORDS = "keywords"
    STRUCTURE = "structure"
    GRAMMAR = "grammar"


class Priority(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class Impact(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class Suggestion(Frozen):
    type: SuggestionType
    priority: Priority = Priority.MEDIUM
    title: str = ""
    description: str = ""
    section: Optional[str] = None
    current_text: Optional[str] = None
    suggested_text: Optional[str] = None
    impact: Impact = Impact.MEDIUM
    category: Optional[str] = None
    difficulty: str = "medium"
    time_to_implement: str = "15-30 minutes"
    applied: bool = False
    applied_at: Optional[datetime] = None


class Recommendation(Frozen):
    priority: Priority
    category: str
    title: str
    description: str = ""
    action: str


# -------- Analysis sub-reports --------

class SubReport(Frozen):
    degraded: bool = False
    note: Optional[str] = None


class ContentQualityReport(SubReport):
    score: int = Field(default=0, ge=0, le=100)
    feedback: str = ""
    strengths: List[str] = Field(default_factory=list)
    weaknesses: List[str] = Field(default_factory=list)
    structure_feedback: str = ""
    language_score: int = Field(default=0, ge=0, le=100)
    quantified_achievements: int = 0
    word_count: int = 0
    readability_score: int = 0
    structure_score: int = 0
    completeness_score: int = 0


class ATSFactor(Frozen):
    score: int = Field(default=0, ge=0, le=100)
    issues: List[str] = Field(default_factory=list)
    suggestions: List[str] = Field(default_factory=list)
    found: List[str] = Field(default_factory=list)
    missing: List[str] = Field(default_factory=list)


class FileFormatCheck(Frozen):
    format: Optional[str] = None
    score: int = 0
    recommendation: Optional[str] = None


class CheckResult(Frozen):
    score: int = 0
    issues: List[str] = Field(default_factory=list)


class SectionCheck(Frozen):
    sections: Dict[str, bool] = Field(default_factory=dict)
    completeness: int = 0
    missing: List[str] = Field(default_factory=list)


class ATSReport(SubReport):
    score: int = Field(default=0, ge=0, le=100)
    factors: Dict[str, ATSFactor] = Field(default_factory=dict)
    feedback: str = ""
    file_format: FileFormatCheck = Field(default_factory=FileFormatCheck)
    parsing: CheckResult = Field(default_factory=CheckResult)
    formatting: CheckResult = Field(default_factory=CheckResult)
    sections: SectionCheck = Field(default_factory=SectionCheck)


class SuggestionsReport(SubReport):
    suggestions: List[Suggestion] = Field(default_factory=list)
    missing_skills: List[str] = Field(default_factory=list)
    keyword_gaps: List[str] = Field(default_factory=list)
    ats_score: int = Field(default=0, ge=0, le=100)
    feedback: str = ""

    def prioritized(self) -> List[Suggestion]:
        """Suggestions ordered by priority + impact, stable for ties."""
        priority_order = {Priority.CRITICAL: 4, Priority.HIGH: 3, Priority.MEDIUM: 2, Priority.LOW: 1}
        impact_order = {Impact.HIGH: 3, Impact.MEDIUM: 2, Impact.LOW: 1}
        return sorted(
            self.suggestions,
            key=lambda s: -(priority_order[s.priority] + impact_order[s.impact]),
        )


class SkillsReport(SubReport):
    skills: List[ExtractedSkill] = Field(default_factory=list)
    categories: Dict[str, List[str]] = Field(default_factory=dict)
    distribution: Dict[str, int] = Field(default_factory=dict)
    gaps: List[str] = Field(default_factory=list)
    recommendations: List[str] = Field(default_factory=list)


class KeywordReport(SubReport):
    total: int = 0
    density: float = 0.0
    seo_score: int = 0
    suggestions: List[str] = Field(default_factory=list)


class AnalysisReport(Frozen):
    resume_id: str
    version: int
    analyzed_at: datetime = Field(default_factory=datetime.utcnow)
    content: ContentQualityReport
    ats: ATSReport
    suggestions: SuggestionsReport
    skills: SkillsReport
    keywords: KeywordReport
    overall_score: int = Field(ge=0, le=100)
    recommendations: List[Recommendation] = Field(default_factory=list, max_length=5)
    embedding_ready: bool = False

    @property
    def degraded(self) -> bool:
        return any(
            part.degraded
            for part in (self.content, self.ats, self.suggestions, self.skills, self.keywords)
        )


class JobOptimizationReport(SubReport):
    optimized_description: str = ""
    suggestions: List[Dict[str, str]] = Field(default_factory=list)
    keyword_suggestions: List[str] = Field(default_factory=list)
    improvement_score: int = Field(default=0, ge=0, le=100)
    feedback: str = ""


class SectionRewrite(Frozen):
    section: str
    current: str = ""
    suggested: str = ""
    reason: str = ""


class ResumeOptimizationReport(SubReport):
    """How to tailor one resume to one job, with the measured match score."""
    resume_id: str
    job_id: str
    job_title: str = ""
    company: str = ""
    missing_keywords: List[str] = Field(default_factory=list)
    keyword_suggestions: List[str] = Field(default_factory=list)
    optimized_summary: str = ""
    experience_highlights: List[str] = Field(default_factory=list)
    skills_to_emphasize: List[str] = Field(default_factory=list)
    estimated_score_before: int = Field(default=0, ge=0, le=100)
    estimated_score_after: int = Field(default=0, ge=0, le=100)
    improvements: List[str] = Field(default_factory=list)
    section_rewrites: List[SectionRewrite] = Field(default_factory=list)
    match_score: Optional[int] = Field(default=None, ge=0, le=100)
    optimized_at: datetime = Field(default_factory=datetime.utcnow)


# -------- Bulk embedding --------

class EmbeddingFailure(Frozen):
    profile_id: str
    error_code: str
    message: str


class BulkEmbeddingReport(Frozen):
    total: int = 0
    processed: int = 0
    skipped: int = 0
    errors: List[EmbeddingFailure] = Field(default_factory=list)
