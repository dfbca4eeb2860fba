from fastapi import APIRouter, Depends, Request

from match_engine.models.profiles import ResumeProfile
from match_engine.models.results import (
    AnalysisReport,
    BulkEmbeddingReport,
    JobOptimizationReport,
    MatchResult,
    ResumeOptimizationReport,
    SkillsReport,
    SuggestionsReport,
)
from match_engine.models.schemas import (
    AnalyzeRequest,
    BulkEmbeddingRequest,
    CandidateRecommendationsRequest,
    EmbeddingRequest,
    EmbeddingResponse,
    ExtractSkillsRequest,
    JobRecommendationsRequest,
    OptimizeJobDescriptionRequest,
    RecommendationsResponse,
    ResumeJobMatchRequest,
)
from match_engine.services.db import ProfileRepository
from match_engine.services.engine import MatchEngine
from match_engine.utils.logging_config import get_logger

router = APIRouter()
logger = get_logger(__name__)

ACTIVE_JOBS_LIMIT = 100


def get_engine(request: Request) -> MatchEngine:
    return request.app.state.engine


def get_repository(request: Request) -> ProfileRepository:
    return request.app.state.repository


@router.get("/health")
async def health(engine: MatchEngine = Depends(get_engine)):
    return await engine.health_check()


@router.post("/embedding", response_model=EmbeddingResponse)
async def generate_embedding(body: EmbeddingRequest, engine: MatchEngine = Depends(get_engine)):
    vector = await engine.embed_text(body.text)
    return EmbeddingResponse(embedding=vector, dimensions=len(vector), model=engine.provider.embedding_model)


@router.post("/match/resume-to-job", response_model=MatchResult)
async def match_resume_to_job(
    body: ResumeJobMatchRequest,
    engine: MatchEngine = Depends(get_engine),
    repo: ProfileRepository = Depends(get_repository),
):
    resume = await repo.get_resume(body.resume_id)
    job = await repo.get_job(body.job_id)
    return await engine.match(resume, job)


@router.post("/match/job-recommendations", response_model=RecommendationsResponse)
async def job_recommendations(
    body: JobRecommendationsRequest,
    engine: MatchEngine = Depends(get_engine),
    repo: ProfileRepository = Depends(get_repository),
):
    resume = await repo.get_resume(body.resume_id)
    jobs = await repo.list_active_jobs(limit=ACTIVE_JOBS_LIMIT)
    matches = await engine.recommend_jobs(resume, jobs, limit=body.limit, min_score=body.min_score)
    return RecommendationsResponse(matches=matches, summary=engine.summarize(matches), total=len(matches))


@router.post("/match/candidate-recommendations", response_model=RecommendationsResponse)
async def candidate_recommendations(
    body: CandidateRecommendationsRequest,
    engine: MatchEngine = Depends(get_engine),
    repo: ProfileRepository = Depends(get_repository),
):
    job = await repo.get_job(body.job_id)
    resumes = await repo.list_resumes_for_ids(body.resume_ids)
    matches = await engine.recommend_candidates(job, resumes, limit=body.limit, min_score=body.min_score)
    return RecommendationsResponse(matches=matches, summary=engine.summarize(matches), total=len(matches))


@router.post("/analyze", response_model=AnalysisReport)
async def analyze_resume(
    body: AnalyzeRequest,
    engine: MatchEngine = Depends(get_engine),
    repo: ProfileRepository = Depends(get_repository),
):
    resume = await repo.get_resume(body.resume_id)
    report = await engine.analyze(resume)
    logger.info(f"Analysis served for resume {resume.id}, overall {report.overall_score}")
    return report


@router.post("/optimize-job-description", response_model=JobOptimizationReport)
async def optimize_job_description(
    body: OptimizeJobDescriptionRequest,
    engine: MatchEngine = Depends(get_engine),
):
    return await engine.optimize_job_description(body.description)


@router.post("/suggestions/resume", response_model=SuggestionsReport)
async def resume_suggestions(
    body: AnalyzeRequest,
    engine: MatchEngine = Depends(get_engine),
    repo: ProfileRepository = Depends(get_repository),
):
    resume = await repo.get_resume(body.resume_id)
    return await engine.suggest(resume)


@router.post("/optimize/resume-for-job", response_model=ResumeOptimizationReport)
async def optimize_resume_for_job(
    body: ResumeJobMatchRequest,
    engine: MatchEngine = Depends(get_engine),
    repo: ProfileRepository = Depends(get_repository),
):
    resume = await repo.get_resume(body.resume_id)
    job = await repo.get_job(body.job_id)
    return await engine.optimize_resume_for_job(resume, job)


@router.post("/extract/skills", response_model=SkillsReport)
async def extract_skills(
    body: ExtractSkillsRequest,
    engine: MatchEngine = Depends(get_engine),
    repo: ProfileRepository = Depends(get_repository),
):
    if body.resume_id:
        resume = await repo.get_resume(body.resume_id)
    else:
        resume = ResumeProfile(id="inline", raw_text=body.content)
    return await engine.extract_skills(resume)


@router.post("/embeddings/resumes/bulk", response_model=BulkEmbeddingReport)
async def bulk_resume_embeddings(
    body: BulkEmbeddingRequest,
    engine: MatchEngine = Depends(get_engine),
    repo: ProfileRepository = Depends(get_repository),
):
    resumes = await repo.list_resumes_missing_embedding(limit=body.limit)
    return await engine.generate_missing_embeddings(resumes)


@router.post("/embeddings/jobs/bulk", response_model=BulkEmbeddingReport)
async def bulk_job_embeddings(
    body: BulkEmbeddingRequest,
    engine: MatchEngine = Depends(get_engine),
    repo: ProfileRepository = Depends(get_repository),
):
    jobs = await repo.list_jobs_missing_embedding(limit=body.limit)
    return await engine.generate_missing_embeddings(jobs)
