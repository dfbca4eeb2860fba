"""
Matching engine facade.

Owns the provider session, the analysis cache and the scoring/analysis
services. Built once per process (see ``main.lifespan``) and closed on
shutdown.
"""
import asyncio
from datetime import datetime
from typing import Any, Dict, List, Optional, Union

from match_engine.models.profiles import EmbeddingMetadata, JobProfile, ResumeProfile
from match_engine.models.results import (
    AnalysisReport,
    BulkEmbeddingReport,
    EmbeddingFailure,
    JobOptimizationReport,
    MatchResult,
    MatchSummary,
    ResumeOptimizationReport,
    SkillsReport,
    SuggestionsReport,
)
from match_engine.models.settings import EngineSettings
from match_engine.services import normalizer
from match_engine.services.analysis import ResumeAnalyzer
from match_engine.services.cache import ResultCache
from match_engine.services.matching import ScoringEngine, summarize_matches
from match_engine.services.orchestrator import AnalysisOrchestrator, AnalysisState
from match_engine.services.provider import EmbeddingProvider
from match_engine.utils.exceptions import DatabaseError, InvalidInputError, MatchEngineError
from match_engine.utils.logging_config import get_logger

logger = get_logger(__name__)

Profile = Union[ResumeProfile, JobProfile]


def embedding_text(profile: Profile) -> str:
    if isinstance(profile, ResumeProfile):
        return normalizer.build_resume_embedding_text(profile)
    return normalizer.build_job_embedding_text(profile)


class MatchEngine:

    def __init__(
        self,
        provider: EmbeddingProvider,
        settings: Optional[EngineSettings] = None,
        cache: Optional[ResultCache] = None,
        scorer: Optional[ScoringEngine] = None,
        repository=None,
    ):
        self.settings = settings or EngineSettings()
        self.provider = provider
        self.cache = cache if cache is not None else ResultCache(
            ttl=self.settings.cache.ttl, max_entries=self.settings.cache.max_entries
        )
        self.scorer = scorer or ScoringEngine(self.settings.match_weights)
        self.analyzer = ResumeAnalyzer(provider, self.settings.provider.max_input_chars)
        self.orchestrator = AnalysisOrchestrator(
            self.analyzer,
            self.cache,
            weights=self.settings.analysis_weights,
            ensure_embedding=self.ensure_embedding,
        )
        self.repository = repository

    @classmethod
    def from_settings(cls, settings: EngineSettings, repository=None) -> "MatchEngine":
        return cls(EmbeddingProvider.from_settings(settings), settings=settings, repository=repository)

    def close(self) -> None:
        self.provider.close()
        logger.info("Match engine closed")

    # ------------------------------------------------------------------
    # embeddings
    # ------------------------------------------------------------------

    async def embed_text(self, text: str) -> List[float]:
        return await self.provider.embed(text)

    def needs_embedding(self, profile: Profile) -> bool:
        """True when the profile has no usable embedding for its current content."""
        if not profile.embedding:
            return True
        expected = self.settings.provider.dimension
        if expected and len(profile.embedding) != expected:
            return True
        if isinstance(profile, ResumeProfile):
            # an embedding with no recorded source version cannot be trusted as current
            meta = profile.embedding_metadata
            return meta is None or meta.source_version != profile.version
        return False

    def _attach(self, profile: Profile, vector: List[float]) -> None:
        profile.embedding = vector
        profile.embedding_metadata = EmbeddingMetadata(
            model=self.provider.embedding_model,
            dimensions=len(vector),
            generated_at=datetime.utcnow(),
            source_version=profile.version if isinstance(profile, ResumeProfile) else None,
        )

    async def _write_back(self, profile: Profile) -> None:
        if self.repository is None:
            return
        try:
            await self.repository.save_embedding(profile)
        except DatabaseError as e:
            logger.warning(f"Could not persist embedding for {profile.id}: {e.message}")

    async def ensure_embedding(self, profile: Profile) -> Profile:
        """Generate the profile's embedding unless a current one is already present."""
        if not self.needs_embedding(profile):
            return profile
        logger.debug(f"Generating embedding for {type(profile).__name__} {profile.id}")
        vector = await self.provider.embed(embedding_text(profile))
        self._attach(profile, vector)
        await self._write_back(profile)
        return profile

    async def ensure_embeddings(self, profiles: List[Profile]) -> List[Profile]:
        missing = [p for p in profiles if self.needs_embedding(p)]
        if missing:
            logger.info(f"Generating {len(missing)} missing embeddings")
            vectors = await self.provider.embed_batch([embedding_text(p) for p in missing])
            for profile, vector in zip(missing, vectors):
                self._attach(profile, vector)
            await asyncio.gather(*(self._write_back(p) for p in missing))
        return profiles

    async def generate_missing_embeddings(self, profiles: List[Profile]) -> BulkEmbeddingReport:
        """Embed every profile that needs it, one call each, collecting failures.

        Unlike ``ensure_embeddings`` a failing profile does not fail the run.
        """
        pending = [p for p in profiles if self.needs_embedding(p)]
        size = self.settings.batch.chunk_size
        errors: List[EmbeddingFailure] = []
        for start in range(0, len(pending), size):
            chunk = pending[start:start + size]
            results = await asyncio.gather(*(self.ensure_embedding(p) for p in chunk), return_exceptions=True)
            for profile, result in zip(chunk, results):
                if isinstance(result, MatchEngineError):
                    logger.error(f"Error generating embedding for {profile.id}: {result.message}")
                    errors.append(EmbeddingFailure(
                        profile_id=profile.id, error_code=result.error_code, message=result.message
                    ))
                elif isinstance(result, BaseException):
                    raise result
            if start + size < len(pending):
                await asyncio.sleep(self.settings.batch.chunk_delay)

        report = BulkEmbeddingReport(
            total=len(profiles),
            processed=len(pending) - len(errors),
            skipped=len(profiles) - len(pending),
            errors=errors,
        )
        logger.info(f"Bulk generated embeddings for {report.processed} of {report.total} profiles")
        return report

    # ------------------------------------------------------------------
    # matching
    # ------------------------------------------------------------------

    def score(self, resume: ResumeProfile, job: JobProfile) -> MatchResult:
        return self.scorer.score(resume, job)

    async def match(self, resume: ResumeProfile, job: JobProfile) -> MatchResult:
        await asyncio.gather(self.ensure_embedding(resume), self.ensure_embedding(job))
        return self.score(resume, job)

    async def recommend_jobs(
        self,
        resume: ResumeProfile,
        jobs: List[JobProfile],
        limit: Optional[int] = None,
        min_score: Optional[int] = None,
    ) -> List[MatchResult]:
        if not jobs:
            return []
        await self.ensure_embedding(resume)
        await self.ensure_embeddings(jobs)
        results = self.scorer.rank_jobs_for_resume(
            resume,
            jobs,
            limit=self.settings.matching.max_recommendations if limit is None else limit,
            min_score=self.settings.matching.min_match_score if min_score is None else min_score,
        )
        logger.info(f"Found {len(results)} job recommendations for resume {resume.id}")
        return results

    async def recommend_candidates(
        self,
        job: JobProfile,
        resumes: List[ResumeProfile],
        limit: Optional[int] = None,
        min_score: Optional[int] = None,
    ) -> List[MatchResult]:
        if not resumes:
            return []
        await self.ensure_embedding(job)
        await self.ensure_embeddings(resumes)
        results = self.scorer.rank_resumes_for_job(
            job,
            resumes,
            limit=self.settings.matching.max_recommendations if limit is None else limit,
            min_score=self.settings.matching.min_match_score if min_score is None else min_score,
        )
        logger.info(f"Found {len(results)} candidate recommendations for job {job.id}")
        return results

    def summarize(self, results: List[MatchResult]) -> MatchSummary:
        return summarize_matches(results)

    # ------------------------------------------------------------------
    # analysis
    # ------------------------------------------------------------------

    async def analyze(self, resume: ResumeProfile) -> AnalysisReport:
        return await self.orchestrator.analyze(resume)

    def analysis_state(self, resume_id: str, version: int) -> AnalysisState:
        return self.orchestrator.state(resume_id, version)

    def invalidate_analysis(self, resume_id: str) -> int:
        return self.cache.invalidate_resume(resume_id)

    @staticmethod
    def _require_content(resume: ResumeProfile, action: str) -> None:
        if not resume.has_content():
            raise InvalidInputError(f"Resume has no content to {action}", field="resume", value=resume.id)

    async def suggest(self, resume: ResumeProfile) -> SuggestionsReport:
        self._require_content(resume, "review")
        return await self.analyzer.generate_suggestions(resume)

    async def extract_skills(self, resume: ResumeProfile) -> SkillsReport:
        self._require_content(resume, "extract skills from")
        return await self.analyzer.extract_skills(resume)

    async def optimize_resume_for_job(self, resume: ResumeProfile, job: JobProfile) -> ResumeOptimizationReport:
        """Tailoring advice plus the measured match score.

        When the embeddings cannot be produced the advice is still returned,
        with ``match_score`` left unset.
        """
        self._require_content(resume, "optimize")
        try:
            match_score = (await self.match(resume, job)).overall_score
        except MatchEngineError as e:
            logger.warning(f"Match score unavailable for resume {resume.id} / job {job.id}: {e.message}")
            match_score = None
        return await self.analyzer.optimize_for_job(resume, job, match_score=match_score)

    async def optimize_job_description(self, description: str) -> JobOptimizationReport:
        return await self.analyzer.optimize_job_description(description)

    async def health_check(self) -> Dict[str, Any]:
        provider = await self.provider.health_check()
        return {
            "status": provider["status"],
            "provider": provider,
            "cache": {"entries": len(self.cache), "hits": self.cache.hits, "misses": self.cache.misses},
        }
