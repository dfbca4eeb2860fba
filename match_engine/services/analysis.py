"""
Resume sub-analyses.

Each analysis returns a complete sub-report. When the provider fails or its
output does not validate, a fixed fallback is returned instead, marked
``degraded`` with a note saying why.
"""
import re
from collections import Counter
from typing import Dict, List, Optional

from match_engine.helpers.prompts import (
    ATS_ANALYSIS_PROMPT,
    CONTENT_ANALYSIS_PROMPT,
    JOB_OPTIMIZATION_PROMPT,
    RESUME_FOR_JOB_PROMPT,
    SKILL_EXTRACTION_PROMPT,
    SUGGESTIONS_PROMPT,
)
from match_engine.models.llm_schemas import (
    ATSAnalysisPayload,
    ContentAnalysisPayload,
    JobOptimizationPayload,
    ResumeOptimizationPayload,
    SkillsPayload,
    SuggestionsPayload,
)
from match_engine.models.profiles import ExtractedSkill, JobProfile, ResumeProfile
from match_engine.models.results import (
    ATSFactor,
    ATSReport,
    CheckResult,
    ContentQualityReport,
    FileFormatCheck,
    JobOptimizationReport,
    KeywordReport,
    ResumeOptimizationReport,
    SectionCheck,
    SectionRewrite,
    SkillsReport,
    Suggestion,
    SuggestionsReport,
)
from match_engine.services import normalizer
from match_engine.services.provider import EmbeddingProvider
from match_engine.utils.exceptions import InvalidInputError, MalformedResponseError, MatchEngineError
from match_engine.utils.logging_config import get_logger
from match_engine.utils.utils import clamp, round_half_up

logger = get_logger(__name__)

DEFAULT_CONTENT_SCORE = 50
DEFAULT_ATS_SCORE = 50
UNPARSEABLE_NOTE = "Unable to parse AI response"

FILE_FORMAT_SCORES = {
    "application/pdf": 100,
    "application/vnd.openxmlformats-officedocument.wordprocessingml.document": 85,
    "application/msword": 70,
    "text/plain": 50,
}
UNKNOWN_FORMAT_SCORE = 30

DIFFICULTY = {"formatting": "easy", "keywords": "easy", "grammar": "easy", "content": "medium", "structure": "hard"}
TIME_TO_IMPLEMENT = {
    "formatting": "5-10 minutes",
    "keywords": "10-15 minutes",
    "grammar": "5-10 minutes",
    "content": "30-60 minutes",
    "structure": "1-2 hours",
}

COMMON_SOFT_SKILLS = ["communication", "leadership", "problem-solving", "teamwork"]

KEYWORD_TIPS = [
    "Add more industry-specific keywords",
    "Include action verbs in experience descriptions",
    "Add technical skills relevant to your field",
]

_SPECIAL_CHARS = re.compile(r"[^\w\s.,;:()\-]")
_SECTION_HEADINGS = re.compile(r"experience|education|skills|summary", re.IGNORECASE)


def _score(value: float) -> int:
    return int(clamp(round_half_up(value)))


# ----------------------------------------------------------------------
# local heuristics
# ----------------------------------------------------------------------

def structure_score(resume: ResumeProfile) -> int:
    score = 0
    if resume.name:
        score += 20
    if resume.email:
        score += 20
    if resume.experience:
        score += 30
    if resume.education:
        score += 15
    if resume.technical_skills:
        score += 15
    return score


def completeness_score(resume: ResumeProfile) -> int:
    required = [resume.name, resume.email, resume.phone, resume.experience, resume.education, resume.technical_skills]
    completed = sum(1 for section in required if section)
    return round_half_up(completed / len(required) * 100)


def file_format_check(resume: ResumeProfile) -> FileFormatCheck:
    return FileFormatCheck(
        format=resume.mime_type,
        score=FILE_FORMAT_SCORES.get(resume.mime_type or "", UNKNOWN_FORMAT_SCORE),
        recommendation=None if resume.mime_type == "application/pdf"
        else "Consider using PDF format for better compatibility",
    )


def parsing_check(resume: ResumeProfile) -> CheckResult:
    if not resume.has_content():
        return CheckResult(score=0, issues=["Content not parsed"])
    score, issues = 100, []
    if not resume.name:
        score -= 20
        issues.append("Name not detected")
    if not resume.email:
        score -= 15
        issues.append("Email not detected")
    if not resume.experience:
        score -= 25
        issues.append("Work experience not detected")
    return CheckResult(score=max(0, score), issues=issues)


def formatting_check(resume: ResumeProfile) -> CheckResult:
    text = resume.raw_text or ""
    score, issues = 100, []
    if text and len(_SPECIAL_CHARS.findall(text)) / len(text) > 0.1:
        score -= 20
        issues.append("Too many special characters detected")
    if not _SECTION_HEADINGS.search(text):
        score -= 30
        issues.append("Resume sections not clearly defined")
    return CheckResult(score=max(0, score), issues=issues)


def section_check(resume: ResumeProfile) -> SectionCheck:
    sections = {
        "personal_info": bool(resume.name),
        "summary": bool(resume.summary),
        "experience": bool(resume.experience),
        "education": bool(resume.education),
        "skills": bool(resume.technical_skills),
        "projects": bool(resume.projects),
    }
    present = sum(1 for v in sections.values() if v)
    return SectionCheck(
        sections=sections,
        completeness=round_half_up(present / len(sections) * 100),
        missing=[k for k, v in sections.items() if not v],
    )


def keyword_density(keywords: List[str], content: str) -> float:
    total_words = normalizer.word_count(content)
    if not total_words or not keywords:
        return 0.0
    text = content.lower()
    occurrences = sum(
        len(re.findall(rf"(?<!\w){re.escape(k.lower())}(?!\w)", text)) for k in keywords if k.strip()
    )
    return round(occurrences / total_words * 100, 2)


def seo_score(keywords: List[str], content: str) -> int:
    score = 0
    if len(keywords) >= 10:
        score += 30
    if len(keywords) >= 20:
        score += 20
    density = keyword_density(keywords, content)
    if 2 <= density <= 5:
        score += 30
    if len(content) >= 500:
        score += 20
    return min(100, score)


def skills_distribution(skills: List[ExtractedSkill]) -> Dict[str, int]:
    counts = Counter(s.category.value for s in skills)
    return dict(counts)


def soft_skill_gaps(skills: List[ExtractedSkill]) -> List[str]:
    current = [s.skill.lower() for s in skills]
    return [g for g in COMMON_SOFT_SKILLS if not any(g in c for c in current)]


def skill_recommendations(skills: List[ExtractedSkill]) -> List[str]:
    distribution = skills_distribution(skills)
    recommendations = []
    if distribution.get("soft", 0) < 3:
        recommendations.append("Add more soft skills to your resume")
    if distribution.get("technical", 0) < 5:
        recommendations.append("Include more technical skills relevant to your field")
    return recommendations


# ----------------------------------------------------------------------
# fallbacks
# ----------------------------------------------------------------------

def default_content_report(resume: ResumeProfile, note: str) -> ContentQualityReport:
    return ContentQualityReport(
        score=DEFAULT_CONTENT_SCORE,
        feedback="Unable to analyze content",
        language_score=DEFAULT_CONTENT_SCORE,
        word_count=normalizer.word_count(resume.raw_text),
        readability_score=normalizer.readability_score(resume.raw_text),
        structure_score=structure_score(resume),
        completeness_score=completeness_score(resume),
        degraded=True,
        note=note,
    )


def default_ats_report(resume: ResumeProfile, note: str) -> ATSReport:
    return ATSReport(
        score=DEFAULT_ATS_SCORE,
        feedback="Unable to perform ATS analysis",
        file_format=file_format_check(resume),
        parsing=parsing_check(resume),
        formatting=formatting_check(resume),
        sections=section_check(resume),
        degraded=True,
        note=note,
    )


def default_suggestions_report(note: str) -> SuggestionsReport:
    return SuggestionsReport(feedback="Unable to generate suggestions", degraded=True, note=note)


def default_skills_report(note: str) -> SkillsReport:
    return SkillsReport(degraded=True, note=note)


def default_keyword_report(note: str) -> KeywordReport:
    return KeywordReport(degraded=True, note=note)


def _failure_note(error: Exception, what: str) -> str:
    if isinstance(error, MalformedResponseError):
        return UNPARSEABLE_NOTE
    return f"Unable to {what}"


def _log_failure(what: str, resume_id: str, error: Exception) -> None:
    if isinstance(error, MatchEngineError):
        logger.error(f"{what} failed for resume {resume_id}: {error.message}")
    else:
        logger.exception(f"Unexpected error in {what} for resume {resume_id}")


class ResumeAnalyzer:
    """Runs the individual sub-analyses against the provider"""

    def __init__(self, provider: EmbeddingProvider, max_prompt_chars: int = normalizer.MAX_INPUT_CHARS):
        self.provider = provider
        self.max_prompt_chars = max_prompt_chars

    def _resume_text(self, resume: ResumeProfile) -> str:
        return normalizer.build_resume_analysis_text(resume)[: self.max_prompt_chars]

    async def analyze_content(self, resume: ResumeProfile) -> ContentQualityReport:
        try:
            if not resume.raw_text.strip():
                raise InvalidInputError("Resume content not available for analysis", field="raw_text")
            prompt = CONTENT_ANALYSIS_PROMPT.format(resume=self._resume_text(resume))
            payload = await self.provider.generate_json(prompt, ContentAnalysisPayload, "content analysis")
        except Exception as e:
            _log_failure("Content analysis", resume.id, e)
            return default_content_report(resume, _failure_note(e, "analyze content"))

        return ContentQualityReport(
            score=_score(payload.contentQuality.score),
            feedback=payload.contentQuality.feedback,
            strengths=payload.strengths,
            weaknesses=payload.weaknesses,
            structure_feedback=payload.structure.feedback if payload.structure else "",
            language_score=_score(payload.language.score) if payload.language else 0,
            quantified_achievements=payload.achievements.quantified if payload.achievements else 0,
            word_count=normalizer.word_count(resume.raw_text),
            readability_score=normalizer.readability_score(resume.raw_text),
            structure_score=structure_score(resume),
            completeness_score=completeness_score(resume),
        )

    async def analyze_ats(self, resume: ResumeProfile) -> ATSReport:
        try:
            prompt = ATS_ANALYSIS_PROMPT.format(resume=(resume.raw_text or self._resume_text(resume))[: self.max_prompt_chars])
            payload = await self.provider.generate_json(prompt, ATSAnalysisPayload, "ATS analysis")
        except Exception as e:
            _log_failure("ATS analysis", resume.id, e)
            return default_ats_report(resume, _failure_note(e, "perform ATS analysis"))

        logger.debug(f"ATS analysis completed with score: {payload.score}")
        return ATSReport(
            score=_score(payload.score),
            factors={
                name: ATSFactor(
                    score=_score(f.score),
                    issues=f.issues,
                    suggestions=f.suggestions,
                    found=f.found,
                    missing=f.missing,
                )
                for name, f in payload.factors.items()
            },
            feedback=payload.overallFeedback,
            file_format=file_format_check(resume),
            parsing=parsing_check(resume),
            formatting=formatting_check(resume),
            sections=section_check(resume),
        )

    async def generate_suggestions(self, resume: ResumeProfile) -> SuggestionsReport:
        try:
            prompt = SUGGESTIONS_PROMPT.format(resume=self._resume_text(resume))
            payload = await self.provider.generate_json(prompt, SuggestionsPayload, "resume suggestions")
        except Exception as e:
            _log_failure("Suggestions generation", resume.id, e)
            return default_suggestions_report(_failure_note(e, "generate suggestions"))

        suggestions = [
            Suggestion(
                type=s.type,
                priority=s.priority,
                title=s.title,
                description=s.description,
                section=s.section,
                current_text=s.current,
                suggested_text=s.suggested,
                impact=s.impact,
                category=s.category,
                difficulty=DIFFICULTY.get(s.type.value, "medium"),
                time_to_implement=TIME_TO_IMPLEMENT.get(s.type.value, "15-30 minutes"),
            )
            for s in payload.suggestions
        ]
        logger.debug(f"Generated {len(suggestions)} resume suggestions")
        return SuggestionsReport(
            suggestions=suggestions,
            missing_skills=payload.missingSkills,
            keyword_gaps=payload.keywordGaps,
            ats_score=_score(payload.atsScore),
            feedback=payload.overallFeedback,
        )

    async def extract_skills(self, resume: ResumeProfile) -> SkillsReport:
        try:
            prompt = SKILL_EXTRACTION_PROMPT.format(resume=(resume.raw_text or self._resume_text(resume))[: self.max_prompt_chars])
            payload = await self.provider.generate_json(prompt, SkillsPayload, "skill extraction")
        except Exception as e:
            _log_failure("Skills extraction", resume.id, e)
            return default_skills_report(_failure_note(e, "extract skills"))

        skills = [
            ExtractedSkill(skill=s.skill, category=s.category, confidence=s.confidence, context=s.context)
            for s in payload.skills
        ]
        logger.debug(f"Extracted {len(skills)} skills")
        return SkillsReport(
            skills=skills,
            categories=payload.categories,
            distribution=skills_distribution(skills),
            gaps=soft_skill_gaps(skills),
            recommendations=skill_recommendations(skills),
        )

    async def analyze_keywords(self, resume: ResumeProfile) -> KeywordReport:
        try:
            keywords = resume.keywords
            content = resume.raw_text or ""
            return KeywordReport(
                total=len(keywords),
                density=keyword_density(keywords, content),
                seo_score=seo_score(keywords, content),
                suggestions=list(KEYWORD_TIPS),
            )
        except Exception as e:
            _log_failure("Keyword analysis", resume.id, e)
            return default_keyword_report(_failure_note(e, "analyze keywords"))

    async def optimize_job_description(self, description: str) -> JobOptimizationReport:
        """Raises InvalidInputError for an empty description; other failures degrade."""
        if not description or not description.strip():
            raise InvalidInputError("Job description is required", field="description")
        try:
            prompt = JOB_OPTIMIZATION_PROMPT.format(description=description[: self.max_prompt_chars])
            payload = await self.provider.generate_json(prompt, JobOptimizationPayload, "job description optimization")
        except Exception as e:
            if isinstance(e, MatchEngineError):
                logger.error(f"Job description optimization failed: {e.message}")
            else:
                logger.exception("Unexpected error in job description optimization")
            return JobOptimizationReport(
                feedback="Unable to optimize job description",
                degraded=True,
                note=_failure_note(e, "optimize job description"),
            )

        return JobOptimizationReport(
            optimized_description=payload.optimizedDescription,
            suggestions=[s.model_dump() for s in payload.suggestions],
            keyword_suggestions=payload.keywordSuggestions,
            improvement_score=_score(payload.improvementScore),
            feedback=payload.feedback,
        )

    async def optimize_for_job(
        self, resume: ResumeProfile, job: JobProfile, match_score: Optional[int] = None
    ) -> ResumeOptimizationReport:
        """Tailoring advice for one resume against one job.

        ``match_score`` is the engine's measured score and is reported as-is.
        An empty resume raises InvalidInputError; provider failures degrade.
        """
        if not resume.has_content():
            raise InvalidInputError("Resume has no content to optimize", field="resume", value=resume.id)
        base = {
            "resume_id": resume.id,
            "job_id": job.id,
            "job_title": job.title,
            "company": job.company,
            "match_score": match_score,
        }
        try:
            prompt = RESUME_FOR_JOB_PROMPT.format(
                resume=self._resume_text(resume),
                job=normalizer.build_job_embedding_text(job)[: self.max_prompt_chars],
            )
            payload = await self.provider.generate_json(prompt, ResumeOptimizationPayload, "resume optimization")
        except Exception as e:
            _log_failure(f"Optimization for job {job.id}", resume.id, e)
            return ResumeOptimizationReport(
                **base, degraded=True, note=_failure_note(e, "optimize resume for job")
            )

        logger.info(f"Resume {resume.id} optimized for job {job.id}")
        return ResumeOptimizationReport(
            **base,
            missing_keywords=payload.keywordOptimization.missing,
            keyword_suggestions=payload.keywordOptimization.suggestions,
            optimized_summary=payload.contentOptimization.summary,
            experience_highlights=payload.contentOptimization.experienceHighlights,
            skills_to_emphasize=payload.contentOptimization.skillsToEmphasize,
            estimated_score_before=_score(payload.matchImprovements.before),
            estimated_score_after=_score(payload.matchImprovements.after),
            improvements=payload.matchImprovements.improvements,
            section_rewrites=[SectionRewrite(**s.model_dump()) for s in payload.specificSuggestions],
        )
