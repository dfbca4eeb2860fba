import os

os.environ.setdefault("ENVIRONMENT", "testing")

import pytest
from unittest.mock import AsyncMock, MagicMock

from match_engine.models.llm_schemas import (
    ATSAnalysisPayload,
    ContentAnalysisPayload,
    JobOptimizationPayload,
    ResumeOptimizationPayload,
    SkillsPayload,
    SuggestionsPayload,
)
from match_engine.models.profiles import EducationEntry, ExperienceEntry, JobProfile, ResumeProfile
from match_engine.services.provider import EmbeddingProvider

CANNED = {
    ContentAnalysisPayload: ContentAnalysisPayload(
        strengths=["Clear impact statements"],
        weaknesses=["Summary is generic"],
        contentQuality={"score": 80, "feedback": "Solid content"},
        structure={"score": 75, "feedback": "Logical order"},
        language={"score": 85, "feedback": "Professional tone"},
        achievements={"quantified": 3, "total": 5, "score": 70, "feedback": "Add more numbers"},
    ),
    ATSAnalysisPayload: ATSAnalysisPayload(
        score=90,
        factors={"keywords": {"score": 85, "found": ["python"], "missing": ["kubernetes"]}},
        overallFeedback="ATS friendly",
    ),
    SuggestionsPayload: SuggestionsPayload(
        suggestions=[
            {"type": "content", "priority": "critical", "title": "Quantify results",
             "description": "Add metrics to achievements", "suggested": "Cut latency by 40%", "impact": "high"},
            {"type": "formatting", "priority": "low", "title": "Consistent dates",
             "description": "Use one date format", "impact": "low"},
        ],
        missingSkills=["Kubernetes"],
        keywordGaps=["microservices"],
        atsScore=72,
        overallFeedback="Good base",
    ),
    SkillsPayload: SkillsPayload(
        skills=[
            {"skill": "Python", "category": "technical", "confidence": 0.95},
            {"skill": "FastAPI", "category": "framework", "confidence": 0.9},
            {"skill": "Communication", "category": "soft", "confidence": 0.7},
        ],
        categories={"technical": ["Python"], "framework": ["FastAPI"], "soft": ["Communication"]},
    ),
    JobOptimizationPayload: JobOptimizationPayload(
        optimizedDescription="Senior Python engineer building APIs.",
        suggestions=[{"type": "clarity", "current": "ninja", "suggested": "engineer", "reason": "Inclusive wording"}],
        keywordSuggestions=["FastAPI"],
        improvementScore=65,
        feedback="Clearer and more inclusive",
    ),
    ResumeOptimizationPayload: ResumeOptimizationPayload(
        keywordOptimization={"missing": ["Kubernetes"], "suggestions": ["Mention container orchestration"]},
        contentOptimization={
            "summary": "Backend engineer shipping Python APIs at scale",
            "experienceHighlights": ["Led the FastAPI migration"],
            "skillsToEmphasize": ["Python", "FastAPI"],
        },
        matchImprovements={"before": 62, "after": 81, "improvements": ["Add Kubernetes exposure"]},
        specificSuggestions=[
            {"section": "summary", "current": "Engineer", "suggested": "Backend engineer", "reason": "Mirrors the title"},
        ],
    ),
}


@pytest.fixture
def canned():
    return CANNED


async def canned_generate(prompt, schema, operation):
    return CANNED[schema]


@pytest.fixture
def provider():
    """Provider double: unit vectors for embeddings, canned structured output"""
    mock = MagicMock(spec=EmbeddingProvider)
    mock.embedding_model = "test-embed"
    mock.embed = AsyncMock(return_value=[1.0, 0.0, 0.0])
    mock.embed_batch = AsyncMock(side_effect=lambda texts: [[1.0, 0.0, 0.0] for _ in texts])
    mock.generate_json = AsyncMock(side_effect=canned_generate)
    mock.health_check = AsyncMock(return_value={"status": "healthy", "model": "test-embed", "dimensions": 3})
    return mock


@pytest.fixture
def resume():
    return ResumeProfile(
        id="resume-1",
        version=1,
        name="Alex Doe",
        email="alex@example.com",
        phone="+1 555 0100",
        summary="Backend engineer focused on Python services",
        experience=[
            ExperienceEntry(position="Backend Engineer", company="Acme", description="Built REST APIs in Python",
                            start_date="2018-01", end_date="2021-06"),
            ExperienceEntry(position="Senior Engineer", company="Globex", description="Led FastAPI migration",
                            start_date="2021", current=True),
        ],
        education=[EducationEntry(degree="BSc", field="Computer Science", institution="State University",
                                  end_date="2017")],
        technical_skills=["Python", "FastAPI", "MongoDB", "Docker"],
        soft_skills=["Mentoring"],
        raw_text=(
            "Alex Doe. Backend engineer focused on Python services. Experience: Backend Engineer at Acme, "
            "built REST APIs in Python. Senior Engineer at Globex, led FastAPI migration. "
            "Education: BSc Computer Science. Skills: Python, FastAPI, MongoDB, Docker."
        ),
        keywords=["python", "fastapi", "mongodb"],
        mime_type="application/pdf",
    )


@pytest.fixture
def job():
    return JobProfile(
        id="job-1",
        title="Python Developer",
        company="Initech",
        description="We need a Python developer with 3+ years of experience building APIs.",
        requirements=["Python", "REST APIs"],
        skills=["Python", "FastAPI", "Kubernetes", "PostgreSQL"],
    )
