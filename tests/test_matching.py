import pytest

from match_engine.models.profiles import ExperienceEntry, JobProfile, ResumeProfile
from match_engine.models.results import MatchResult, ScoreBreakdown
from match_engine.models.settings import MatchWeights
from match_engine.services import matching
from match_engine.services.matching import ScoringEngine


class TestSemantic:
    """Cosine similarity scaled to 0..100"""

    def test_identical_vectors(self):
        assert matching.semantic_score([1, 0, 0], [1, 0, 0]) == 100.0

    def test_orthogonal(self):
        assert matching.semantic_score([1, 0], [0, 1]) == 0.0

    def test_opposite_clamped_to_zero(self):
        assert matching.semantic_score([1, 0], [-1, 0]) == 0.0

    @pytest.mark.parametrize("a,b", [
        (None, [1, 0]),
        ([1, 0], None),
        ([1, 0, 0], [1, 0]),
        ([0, 0], [1, 1]),
        ([], []),
    ])
    def test_degenerate_inputs(self, a, b):
        assert matching.semantic_score(a, b) == 0.0

    @pytest.mark.parametrize("a", [
        [float("nan"), 1.0, 0.0],
        [float("inf"), 1.0, 0.0],
    ])
    def test_non_finite_vector_scores_zero(self, a):
        assert matching.cosine_similarity(a, [1.0, 0.0, 0.0]) == 0.0
        assert matching.semantic_score(a, [1.0, 0.0, 0.0]) == 0.0

    def test_non_finite_vector_does_not_rank_first(self):
        scorer = ScoringEngine(current_year=2024)
        resume = ResumeProfile(id="r", summary="Python developer", embedding=[1.0, 0.0, 0.0])
        jobs = [
            JobProfile(id="good", title="Python Dev", embedding=[0.9, 0.1, 0.0]),
            JobProfile(id="corrupt", title="Python Dev", embedding=[float("nan"), 1.0, 0.0]),
        ]
        results = scorer.rank_jobs_for_resume(resume, jobs, limit=2, min_score=0)
        assert [r.job_id for r in results] == ["good", "corrupt"]
        assert results[1].breakdown.semantic == 0.0

    def test_symmetric(self):
        a, b = [0.3, 0.5, 0.1], [0.9, 0.2, 0.4]
        assert matching.semantic_score(a, b) == matching.semantic_score(b, a)

    def test_rounded_to_two_decimals(self):
        score = matching.semantic_score([1, 2, 3], [3, 2, 1])
        assert score == round(score, 2)
        assert 0 < score < 100


class TestSkillsScore:

    def test_partial_match(self):
        assert matching.skills_score(["Python", "SQL", "AWS", "Go"], ["python", "sql", "aws"]) == 75.0

    def test_substring_either_way(self):
        assert matching.skills_score(["React"], ["React Native"]) == 100.0

    @pytest.mark.parametrize("job_skills,resume_skills", [([], ["Python"]), (["Python"], []), ([], [])])
    def test_empty_side_is_zero(self, job_skills, resume_skills):
        assert matching.skills_score(job_skills, resume_skills) == 0.0

    def test_split_preserves_job_spelling(self):
        matched, missing = matching.split_skills(["Python", "python", "Kubernetes"], ["PYTHON"])
        assert matched == ["Python"]
        assert missing == ["Kubernetes"]


class TestExperienceScore:

    def test_missing_data_baseline(self):
        assert matching.experience_score(None, 5) == matching.MISSING_EXPERIENCE_BASELINE
        assert 0 < matching.MISSING_EXPERIENCE_BASELINE < 100

    @pytest.mark.parametrize("years,required,expected", [
        (3, 0, 100),
        (0, 1, 80),
        (0, 3, 20),
        (5, 5, 100),
        (4, 5, 90),
        (3, 5, 75),
        (2, 5, 50),
        (1, 5, 25),
    ])
    def test_bands(self, years, required, expected):
        assert matching.experience_score(years, required) == expected


class TestKeywordsScore:

    def test_share_of_terms(self):
        assert matching.keywords_score(["python", "docker", "rust", "go"], "Python and Docker daily") == 50.0

    def test_empty(self):
        assert matching.keywords_score([], "text") == 0.0
        assert matching.keywords_score(["python"], "   ") == 0.0


class TestCombine:

    def test_weighted_sum(self):
        breakdown = ScoreBreakdown(semantic=80, skills=60, experience=100, keywords=40)
        # 32 + 15 + 20 + 6
        assert matching.combine(breakdown) == 73

    def test_rounds_half_up(self):
        breakdown = ScoreBreakdown(semantic=0, skills=0, experience=0, keywords=10)
        # 0.15 * 10 = 1.5
        assert matching.combine(breakdown) == 2

    def test_custom_weights(self):
        weights = MatchWeights(semantic=1.0, skills=0.0, experience=0.0, keywords=0.0)
        assert matching.combine(ScoreBreakdown(semantic=42, skills=100), weights) == 42

    def test_weights_must_sum_to_one(self):
        with pytest.raises(ValueError):
            MatchWeights(semantic=0.5, skills=0.5, experience=0.5, keywords=0.5)


class TestScoringEngine:

    def test_score_fixture(self, resume, job):
        resume.embedding = [1.0, 0.0, 0.0]
        job.embedding = [1.0, 0.0, 0.0]
        result = ScoringEngine(current_year=2024).score(resume, job)

        assert isinstance(result, MatchResult)
        assert result.breakdown.semantic == 100.0
        assert result.breakdown.skills == 50.0
        assert result.matched_skills == ["Python", "FastAPI"]
        assert result.missing_skills == ["Kubernetes", "PostgreSQL"]
        assert result.experience_gap.required_years == 3
        assert result.experience_gap.resume_years == 6
        assert result.experience_gap.meets_requirement
        assert result.breakdown.experience == 100.0
        assert 0 <= result.overall_score <= 100
        assert "Matched 2 of 4 required skills" in result.explanations

    def test_no_embeddings_still_scores(self, resume, job):
        result = ScoringEngine(current_year=2024).score(resume, job)
        assert result.breakdown.semantic == 0.0

    def test_pure(self, resume, job):
        engine = ScoringEngine(current_year=2024)
        assert engine.score(resume, job) == engine.score(resume, job)

    def test_undated_experience_uses_baseline(self, job):
        resume = ResumeProfile(id="r", experience=[ExperienceEntry(position="Dev")], technical_skills=["Python"])
        result = ScoringEngine(current_year=2024).score(resume, job)
        assert result.breakdown.experience == matching.MISSING_EXPERIENCE_BASELINE
        assert result.experience_gap.resume_years is None

    def test_rank_is_stable_and_descending(self, resume):
        resume.embedding = [1.0, 0.0]
        jobs = [
            JobProfile(id="low", title="Chef", skills=["Cooking"], embedding=[0.0, 1.0]),
            JobProfile(id="tie-a", title="Python Dev", skills=["Python"], embedding=[1.0, 0.0]),
            JobProfile(id="tie-b", title="Python Dev", skills=["Python"], embedding=[1.0, 0.0]),
        ]
        ranked = ScoringEngine(current_year=2024).rank_jobs_for_resume(resume, jobs)
        assert [r.job_id for r in ranked] == ["tie-a", "tie-b", "low"]

    def test_rank_limit_and_min_score(self, resume):
        resume.embedding = [1.0, 0.0]
        jobs = [
            JobProfile(id="a", title="Python Dev", skills=["Python"], embedding=[1.0, 0.0]),
            JobProfile(id="b", title="Chef", skills=["Cooking"], embedding=[0.0, 1.0]),
        ]
        engine = ScoringEngine(current_year=2024)
        assert [r.job_id for r in engine.rank_jobs_for_resume(resume, jobs, limit=1)] == ["a"]
        assert [r.job_id for r in engine.rank_jobs_for_resume(resume, jobs, min_score=50)] == ["a"]

    def test_rank_resumes_for_job(self, job):
        strong = ResumeProfile(id="strong", technical_skills=["Python", "FastAPI", "Kubernetes", "PostgreSQL"])
        weak = ResumeProfile(id="weak", technical_skills=["Excel"])
        ranked = ScoringEngine(current_year=2024).rank_resumes_for_job(job, [weak, strong])
        assert [r.resume_id for r in ranked] == ["strong", "weak"]


class TestSummary:

    def test_empty(self):
        assert matching.summarize_matches([]).average_score == 0

    def test_distribution(self, resume, job):
        engine = ScoringEngine(current_year=2024)
        base = engine.score(resume, job)
        results = [base.model_copy(update={"overall_score": s}) for s in (90, 70, 50, 20)]
        summary = matching.summarize_matches(results)
        assert summary.average_score == 58
        assert summary.top_score == 90
        assert (summary.distribution.excellent, summary.distribution.good, summary.distribution.fair) == (1, 1, 1)
