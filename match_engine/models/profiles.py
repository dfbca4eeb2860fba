from datetime import datetime
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field


class SkillCategory(str, Enum):
    TECHNICAL = "technical"
    SOFT = "soft"
    LANGUAGE = "language"
    TOOL = "tool"
    FRAMEWORK = "framework"
    CERTIFICATION = "certification"


class ExperienceLevel(str, Enum):
    ENTRY = "entry"
    MID = "mid"
    SENIOR = "senior"
    LEAD = "lead"
    EXECUTIVE = "executive"


class EmbeddingMetadata(BaseModel):
    model: str
    dimensions: int
    generated_at: datetime = Field(default_factory=datetime.utcnow)
    source_version: Optional[int] = None  # resume version the vector was built from


class ExtractedSkill(BaseModel):
    skill: str
    category: SkillCategory = SkillCategory.TECHNICAL
    confidence: float = Field(default=1.0, ge=0.0, le=1.0)
    context: Optional[str] = None


class ExperienceEntry(BaseModel):
    position: str = ""
    company: str = ""
    description: Optional[str] = None
    start_date: Optional[str] = None  # free-form, e.g. "2019", "2019-03", "March 2019"
    end_date: Optional[str] = None
    current: bool = False


class EducationEntry(BaseModel):
    degree: str = ""
    field: Optional[str] = None
    institution: str = ""
    start_date: Optional[str] = None
    end_date: Optional[str] = None


class ResumeProfile(BaseModel):
    id: str
    version: int = Field(default=1, ge=1)

    name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    summary: Optional[str] = None

    experience: List[ExperienceEntry] = Field(default_factory=list)
    education: List[EducationEntry] = Field(default_factory=list)
    technical_skills: List[str] = Field(default_factory=list)
    soft_skills: List[str] = Field(default_factory=list)
    certifications: List[str] = Field(default_factory=list)
    projects: List[str] = Field(default_factory=list)

    raw_text: str = ""
    keywords: List[str] = Field(default_factory=list)
    mime_type: Optional[str] = None
    extracted_skills: List[ExtractedSkill] = Field(default_factory=list)

    embedding: Optional[List[float]] = None
    embedding_metadata: Optional[EmbeddingMetadata] = None

    @property
    def cache_key(self):
        return (self.id, self.version)

    def has_content(self) -> bool:
        return bool(
            self.raw_text.strip()
            or self.summary
            or self.experience
            or self.education
            or self.technical_skills
        )


class JobProfile(BaseModel):
    id: str
    title: str
    company: str = ""
    description: str = ""
    requirements: List[str] = Field(default_factory=list)
    responsibilities: List[str] = Field(default_factory=list)
    skills: List[str] = Field(default_factory=list)
    experience_level: Optional[ExperienceLevel] = None

    embedding: Optional[List[float]] = None
    embedding_metadata: Optional[EmbeddingMetadata] = None
