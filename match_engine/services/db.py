from typing import List, Optional, Union

import motor.motor_asyncio
from pymongo import ASCENDING
from pymongo.errors import PyMongoError

from match_engine.models.profiles import JobProfile, ResumeProfile
from match_engine.models.settings import EngineSettings
from match_engine.utils.exceptions import DatabaseError, NotFoundError
from match_engine.utils.logging_config import get_logger

logger = get_logger(__name__)

RESUMES = "resumes"
JOBS = "jobs"


def _resume_from_doc(doc: dict) -> ResumeProfile:
    return ResumeProfile.model_validate({**doc, "id": doc["resume_id"]})


def _job_from_doc(doc: dict) -> JobProfile:
    return JobProfile.model_validate({**doc, "id": doc["job_id"]})


class ProfileRepository:
    """Mongo-backed store of resume and job profiles"""

    def __init__(self, db, client=None):
        self.db = db
        self.client = client
        self.resumes = db[RESUMES]
        self.jobs = db[JOBS]

    @classmethod
    def from_settings(cls, settings: EngineSettings) -> "ProfileRepository":
        logger.info(f"Initializing MongoDB connection to database: {settings.db_name}")
        client = motor.motor_asyncio.AsyncIOMotorClient(settings.mongo_details)
        return cls(client[settings.db_name], client=client)

    def close(self) -> None:
        if self.client is not None:
            self.client.close()

    async def init_indexes(self) -> None:
        logger.info("Starting database index initialization")
        specs = [
            (self.resumes, [("resume_id", ASCENDING)], True),
            (self.jobs, [("job_id", ASCENDING)], True),
            (self.jobs, [("is_active", ASCENDING)], False),
        ]
        for coll, keys, unique in specs:
            try:
                await coll.create_index(keys, unique=unique)
                logger.debug(f"Created index on {coll.name}.{keys[0][0]}")
            except PyMongoError as e:
                if "already exists" in str(e).lower():
                    logger.debug(f"Index on {coll.name}.{keys[0][0]} already exists")
                else:
                    logger.warning(f"Could not create index on {coll.name}.{keys[0][0]}: {e}")
        logger.info("Database index initialization completed")

    async def get_resume(self, resume_id: str) -> ResumeProfile:
        try:
            doc = await self.resumes.find_one({"resume_id": resume_id})
        except PyMongoError as e:
            raise DatabaseError(f"Failed to load resume {resume_id}", operation="find_one",
                                collection=RESUMES, cause=e) from e
        if not doc:
            raise NotFoundError(f"Resume {resume_id} not found", resource="resume", resource_id=resume_id)
        return _resume_from_doc(doc)

    async def get_job(self, job_id: str) -> JobProfile:
        try:
            doc = await self.jobs.find_one({"job_id": job_id})
        except PyMongoError as e:
            raise DatabaseError(f"Failed to load job {job_id}", operation="find_one",
                                collection=JOBS, cause=e) from e
        if not doc:
            raise NotFoundError(f"Job {job_id} not found", resource="job", resource_id=job_id)
        return _job_from_doc(doc)

    async def list_active_jobs(self, limit: int = 100) -> List[JobProfile]:
        try:
            docs = await self.jobs.find({"is_active": True}).limit(limit).to_list(length=limit)
        except PyMongoError as e:
            raise DatabaseError("Failed to list active jobs", operation="find", collection=JOBS, cause=e) from e
        return [_job_from_doc(d) for d in docs]

    async def list_resumes_missing_embedding(self, limit: int = 50) -> List[ResumeProfile]:
        # {"embedding": None} matches both a null and an absent field
        query = {"embedding": None, "raw_text": {"$nin": [None, ""]}}
        try:
            docs = await self.resumes.find(query).limit(limit).to_list(length=limit)
        except PyMongoError as e:
            raise DatabaseError("Failed to list resumes without embeddings", operation="find",
                                collection=RESUMES, cause=e) from e
        return [_resume_from_doc(d) for d in docs]

    async def list_jobs_missing_embedding(self, limit: int = 50) -> List[JobProfile]:
        query = {"embedding": None, "is_active": True}
        try:
            docs = await self.jobs.find(query).limit(limit).to_list(length=limit)
        except PyMongoError as e:
            raise DatabaseError("Failed to list jobs without embeddings", operation="find",
                                collection=JOBS, cause=e) from e
        return [_job_from_doc(d) for d in docs]

    async def list_resumes_for_ids(self, resume_ids: List[str]) -> List[ResumeProfile]:
        if not resume_ids:
            return []
        try:
            docs = await self.resumes.find({"resume_id": {"$in": resume_ids}}).to_list(length=len(resume_ids))
        except PyMongoError as e:
            raise DatabaseError("Failed to list resumes", operation="find", collection=RESUMES, cause=e) from e
        by_id = {d["resume_id"]: d for d in docs}
        # keep the caller's order
        return [_resume_from_doc(by_id[i]) for i in resume_ids if i in by_id]

    async def save_embedding(self, profile: Union[ResumeProfile, JobProfile]) -> bool:
        if isinstance(profile, ResumeProfile):
            coll, key, name = self.resumes, "resume_id", RESUMES
        else:
            coll, key, name = self.jobs, "job_id", JOBS
        meta: Optional[dict] = profile.embedding_metadata.model_dump() if profile.embedding_metadata else None
        try:
            result = await coll.update_one(
                {key: profile.id},
                {"$set": {"embedding": profile.embedding, "embedding_metadata": meta}},
            )
        except PyMongoError as e:
            raise DatabaseError(f"Failed to save embedding for {profile.id}", operation="update_one",
                                collection=name, cause=e) from e
        logger.debug(f"Saved embedding for {name} {profile.id}")
        return result.matched_count > 0
