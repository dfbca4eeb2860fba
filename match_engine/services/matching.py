from datetime import datetime
from typing import List, Optional, Sequence, Tuple

import numpy as np

from match_engine.models.profiles import JobProfile, ResumeProfile
from match_engine.models.results import (
    ExperienceGap,
    MatchResult,
    MatchSummary,
    ScoreBreakdown,
    ScoreDistribution,
)
from match_engine.models.settings import MatchWeights
from match_engine.services import normalizer
from match_engine.utils.logging_config import get_logger
from match_engine.utils.utils import clamp, dedupe_casefold, round_half_up

logger = get_logger(__name__)

DEFAULT_MATCH_WEIGHTS = MatchWeights()

# Dated experience is often missing even when the candidate clearly has some.
MISSING_EXPERIENCE_BASELINE = 30
NO_REQUIREMENT_SCORE = 100
ENTRY_LEVEL_SCORE = 80
UNDER_QUALIFIED_ENTRY_SCORE = 20
EXPERIENCE_RATIO_BANDS = [(1.0, 100), (0.8, 90), (0.6, 75), (0.4, 50)]
EXPERIENCE_FLOOR_SCORE = 25

SKILLS_ADVISORY_BELOW = 70
EXPERIENCE_ADVISORY_BELOW = 60
KEYWORDS_ADVISORY_BELOW = 50


def cosine_similarity(a: Optional[Sequence[float]], b: Optional[Sequence[float]]) -> float:
    """Cosine of the angle between a and b; 0.0 for absent, mismatched or zero vectors."""
    if a is None or b is None or len(a) == 0 or len(a) != len(b):
        return 0.0
    va = np.asarray(a, dtype=np.float64)
    vb = np.asarray(b, dtype=np.float64)
    den = float(np.linalg.norm(va) * np.linalg.norm(vb))
    if den == 0.0:
        return 0.0
    similarity = float(np.dot(va, vb)) / den
    if not np.isfinite(similarity):
        return 0.0
    return similarity


def semantic_score(a: Optional[Sequence[float]], b: Optional[Sequence[float]]) -> float:
    return round(clamp(cosine_similarity(a, b) * 100), 2)


def skills_score(job_skills: List[str], resume_skills: List[str]) -> float:
    jd = dedupe_casefold(job_skills)
    cv = dedupe_casefold(resume_skills)
    if not jd or not cv:
        return 0.0
    present = sum(1 for s in jd if normalizer.skill_present(s, cv))
    return round(clamp(present / len(jd) * 100), 2)


def split_skills(job_skills: List[str], resume_skills: List[str]) -> Tuple[List[str], List[str]]:
    """(matched, missing) job skills, job spelling kept."""
    cv = dedupe_casefold(resume_skills)
    matched, missing = [], []
    for s in dedupe_casefold(job_skills):
        (matched if normalizer.skill_present(s, cv) else missing).append(s)
    return matched, missing


def experience_score(resume_years: Optional[int], required_years: int) -> float:
    if resume_years is None:
        return float(MISSING_EXPERIENCE_BASELINE)
    if required_years <= 0:
        return float(NO_REQUIREMENT_SCORE)
    if resume_years == 0:
        return float(ENTRY_LEVEL_SCORE if required_years <= 1 else UNDER_QUALIFIED_ENTRY_SCORE)
    ratio = resume_years / required_years
    for threshold, score in EXPERIENCE_RATIO_BANDS:
        if ratio >= threshold:
            return float(score)
    return float(EXPERIENCE_FLOOR_SCORE)


def keywords_score(job_terms: List[str], resume_text: str) -> float:
    if not job_terms or not resume_text or not resume_text.strip():
        return 0.0
    text = resume_text.lower()
    found = sum(1 for term in job_terms if normalizer.contains_term(text, term))
    return round(clamp(found / len(job_terms) * 100), 2)


def combine(breakdown: ScoreBreakdown, weights: MatchWeights = DEFAULT_MATCH_WEIGHTS) -> int:
    total = (
        weights.semantic * breakdown.semantic
        + weights.skills * breakdown.skills
        + weights.experience * breakdown.experience
        + weights.keywords * breakdown.keywords
    )
    return int(clamp(round_half_up(total)))


def explain(breakdown: ScoreBreakdown, matched: List[str], missing: List[str]) -> List[str]:
    total = len(matched) + len(missing)
    notes = [f"Matched {len(matched)} of {total} required skills"] if total else []
    if breakdown.skills < SKILLS_ADVISORY_BELOW:
        notes.append("Consider developing the missing skills for this role")
    if breakdown.experience < EXPERIENCE_ADVISORY_BELOW:
        notes.append("Highlight relevant experience and transferable skills")
    if breakdown.keywords < KEYWORDS_ADVISORY_BELOW:
        notes.append("Update resume with relevant industry keywords")
    return notes


def summarize_matches(matches: List[MatchResult]) -> MatchSummary:
    if not matches:
        return MatchSummary()
    scores = [m.overall_score for m in matches]
    return MatchSummary(
        average_score=round_half_up(sum(scores) / len(scores)),
        top_score=max(scores),
        distribution=ScoreDistribution(
            excellent=sum(1 for s in scores if s >= 80),
            good=sum(1 for s in scores if 60 <= s < 80),
            fair=sum(1 for s in scores if 40 <= s < 60),
        ),
    )


class ScoringEngine:
    """Four-factor resume/job compatibility score. Pure given populated embeddings."""

    def __init__(self, weights: MatchWeights = None, current_year: Optional[int] = None):
        self.weights = weights or DEFAULT_MATCH_WEIGHTS
        self._current_year = current_year

    @property
    def current_year(self) -> int:
        return self._current_year or datetime.utcnow().year

    def score(self, resume: ResumeProfile, job: JobProfile) -> MatchResult:
        resume_skills = normalizer.resume_skill_names(resume)
        resume_years = normalizer.total_experience_years(resume, self.current_year)
        required_years = normalizer.required_experience_years(job)
        resume_text = resume.raw_text or normalizer.build_resume_embedding_text(resume)

        breakdown = ScoreBreakdown(
            semantic=semantic_score(resume.embedding, job.embedding),
            skills=skills_score(job.skills, resume_skills),
            experience=experience_score(resume_years, required_years),
            keywords=keywords_score(normalizer.job_keywords(job), resume_text),
        )
        matched, missing = split_skills(job.skills, resume_skills)
        overall = combine(breakdown, self.weights)

        logger.debug(f"Match score {overall} for resume {resume.id} / job {job.id}")
        return MatchResult(
            resume_id=resume.id,
            job_id=job.id,
            breakdown=breakdown,
            overall_score=overall,
            matched_skills=matched,
            missing_skills=missing,
            explanations=explain(breakdown, matched, missing),
            experience_gap=ExperienceGap(
                resume_years=resume_years,
                required_years=required_years,
                gap=max(0, required_years - (resume_years or 0)),
                meets_requirement=resume_years is not None and resume_years >= required_years,
            ),
            weights=self.weights,
        )

    def rank_jobs_for_resume(
        self, resume: ResumeProfile, jobs: List[JobProfile], limit: Optional[int] = None, min_score: int = 0
    ) -> List[MatchResult]:
        results = [self.score(resume, job) for job in jobs]
        return self._rank(results, limit, min_score)

    def rank_resumes_for_job(
        self, job: JobProfile, resumes: List[ResumeProfile], limit: Optional[int] = None, min_score: int = 0
    ) -> List[MatchResult]:
        results = [self.score(resume, job) for resume in resumes]
        return self._rank(results, limit, min_score)

    @staticmethod
    def _rank(results: List[MatchResult], limit: Optional[int], min_score: int) -> List[MatchResult]:
        kept = [r for r in results if r.overall_score >= min_score]
        # sorted() is stable, so equal scores keep input order
        kept = sorted(kept, key=lambda r: r.overall_score, reverse=True)
        return kept[:limit] if limit is not None else kept
