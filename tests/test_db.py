import pytest
from unittest.mock import AsyncMock, MagicMock
from pymongo.errors import DuplicateKeyError, OperationFailure, ServerSelectionTimeoutError

from match_engine.models.profiles import EmbeddingMetadata, JobProfile, ResumeProfile
from match_engine.services.db import ProfileRepository
from match_engine.utils.exceptions import DatabaseError, NotFoundError


@pytest.fixture
def collections():
    return {"resumes": MagicMock(name="resumes"), "jobs": MagicMock(name="jobs")}


@pytest.fixture
def repo(collections):
    db = MagicMock()
    db.__getitem__.side_effect = lambda name: collections[name]
    return ProfileRepository(db)


def cursor_returning(docs):
    cursor = MagicMock()
    cursor.limit.return_value = cursor
    cursor.to_list = AsyncMock(return_value=docs)
    return cursor


class TestProfileRepository:

    @pytest.mark.asyncio
    async def test_get_resume(self, repo, collections):
        collections["resumes"].find_one = AsyncMock(return_value={
            "_id": "64f0", "resume_id": "r1", "version": 3, "summary": "Engineer", "unknown_field": 1,
        })
        resume = await repo.get_resume("r1")
        assert isinstance(resume, ResumeProfile)
        assert (resume.id, resume.version, resume.summary) == ("r1", 3, "Engineer")

    @pytest.mark.asyncio
    async def test_get_resume_missing(self, repo, collections):
        collections["resumes"].find_one = AsyncMock(return_value=None)
        with pytest.raises(NotFoundError) as exc_info:
            await repo.get_resume("r404")
        assert exc_info.value.details["resource_id"] == "r404"

    @pytest.mark.asyncio
    async def test_driver_error_wrapped(self, repo, collections):
        collections["jobs"].find_one = AsyncMock(side_effect=ServerSelectionTimeoutError("no servers"))
        with pytest.raises(DatabaseError) as exc_info:
            await repo.get_job("j1")
        assert exc_info.value.details["collection"] == "jobs"

    @pytest.mark.asyncio
    async def test_list_active_jobs(self, repo, collections):
        collections["jobs"].find = MagicMock(return_value=cursor_returning([
            {"job_id": "j1", "title": "Dev", "is_active": True},
        ]))
        jobs = await repo.list_active_jobs(limit=10)
        assert [j.id for j in jobs] == ["j1"]
        collections["jobs"].find.assert_called_once_with({"is_active": True})

    @pytest.mark.asyncio
    async def test_list_resumes_keeps_order(self, repo, collections):
        collections["resumes"].find = MagicMock(return_value=cursor_returning([
            {"resume_id": "b"}, {"resume_id": "a"},
        ]))
        resumes = await repo.list_resumes_for_ids(["a", "missing", "b"])
        assert [r.id for r in resumes] == ["a", "b"]

    @pytest.mark.asyncio
    async def test_list_resumes_empty(self, repo, collections):
        assert await repo.list_resumes_for_ids([]) == []
        collections["resumes"].find.assert_not_called()

    @pytest.mark.asyncio
    async def test_save_embedding(self, repo, collections):
        collections["jobs"].update_one = AsyncMock(return_value=MagicMock(matched_count=1))
        job = JobProfile(
            id="j1", title="Dev", embedding=[0.1, 0.2],
            embedding_metadata=EmbeddingMetadata(model="m", dimensions=2),
        )
        assert await repo.save_embedding(job) is True
        query, update = collections["jobs"].update_one.await_args.args
        assert query == {"job_id": "j1"}
        assert update["$set"]["embedding"] == [0.1, 0.2]
        assert update["$set"]["embedding_metadata"]["dimensions"] == 2

    @pytest.mark.asyncio
    async def test_init_indexes_tolerates_errors(self, repo, collections):
        collections["resumes"].create_index = AsyncMock(side_effect=OperationFailure("index already exists"))
        collections["jobs"].create_index = AsyncMock(side_effect=DuplicateKeyError("dup"))
        await repo.init_indexes()
        assert collections["jobs"].create_index.await_count == 2

    @pytest.mark.asyncio
    async def test_list_resumes_missing_embedding(self, repo, collections):
        collections["resumes"].find = MagicMock(return_value=cursor_returning([
            {"resume_id": "r1", "raw_text": "Python developer"},
        ]))
        resumes = await repo.list_resumes_missing_embedding(limit=20)
        assert [r.id for r in resumes] == ["r1"]
        query = collections["resumes"].find.call_args.args[0]
        assert query["embedding"] is None
        collections["resumes"].find.return_value.limit.assert_called_once_with(20)

    @pytest.mark.asyncio
    async def test_list_jobs_missing_embedding(self, repo, collections):
        collections["jobs"].find = MagicMock(return_value=cursor_returning([]))
        assert await repo.list_jobs_missing_embedding() == []
        collections["jobs"].find.assert_called_once_with({"embedding": None, "is_active": True})

    @pytest.mark.asyncio
    async def test_missing_embedding_query_error_wrapped(self, repo, collections):
        collections["jobs"].find = MagicMock(side_effect=ServerSelectionTimeoutError("no servers"))
        with pytest.raises(DatabaseError):
            await repo.list_jobs_missing_embedding()
