"""
Turns structured resume/job records into flat text and comparable token sets.
"""
import re
from typing import List, Optional, Tuple

from match_engine.models.profiles import ExperienceLevel, JobProfile, ResumeProfile
from match_engine.utils.utils import dedupe_casefold

MAX_INPUT_CHARS = 8000

# word characters, whitespace and a little punctuation; "+" and "#" keep C++ / C# intact
_DISALLOWED = re.compile(r"[^\w\s.,;:!()\-+#]")
_WHITESPACE = re.compile(r"\s+")
_YEAR = re.compile(r"(\d{4})")
_WORD = re.compile(r"\b[a-zA-Z][a-zA-Z+#.\-]{2,}\b")

EXPERIENCE_PATTERNS = [
    re.compile(r"(\d+)\+?\s*years?\s*of\s*experience", re.IGNORECASE),
    re.compile(r"(\d+)\+?\s*years?\s*experience", re.IGNORECASE),
    re.compile(r"minimum\s*(?:of\s*)?(\d+)\s*years?", re.IGNORECASE),
    re.compile(r"at\s*least\s*(\d+)\s*years?", re.IGNORECASE),
]

LEVEL_YEARS = {
    ExperienceLevel.ENTRY: 0,
    ExperienceLevel.MID: 3,
    ExperienceLevel.SENIOR: 7,
    ExperienceLevel.LEAD: 10,
    ExperienceLevel.EXECUTIVE: 15,
}

STOP_WORDS = frozenset({
    "the", "and", "for", "with", "you", "our", "are", "will", "have", "has", "this",
    "that", "from", "your", "who", "all", "can", "their", "they", "them", "its", "not",
    "but", "into", "about", "within", "across", "while", "such", "other", "also", "more",
    "must", "should", "would", "could", "able", "work", "working", "team", "role",
    "years", "year", "experience", "including", "etc", "any", "per", "well", "new",
})


def preprocess_text(text: str, max_chars: int = MAX_INPUT_CHARS) -> str:
    """Trim, collapse whitespace, strip unsafe characters and truncate."""
    text = _WHITESPACE.sub(" ", (text or "").strip())
    text = _DISALLOWED.sub("", text)
    text = _WHITESPACE.sub(" ", text).strip()
    return text[:max_chars]


def _join(parts: List[str], sep: str) -> str:
    return sep.join(p for p in parts if p)


def build_resume_embedding_text(resume: ResumeProfile) -> str:
    parts = []
    if resume.summary:
        parts.append(f"Summary: {resume.summary}")
    if resume.experience:
        experience = ". ".join(
            f"{e.position} at {e.company}: {e.description or ''}".strip()
            for e in resume.experience
        )
        parts.append(f"Experience: {experience}")
    if resume.technical_skills:
        parts.append(f"Technical Skills: {', '.join(resume.technical_skills)}")
    if resume.education:
        education = ". ".join(f"{e.degree} from {e.institution}" for e in resume.education)
        parts.append(f"Education: {education}")
    text = _join(parts, ". ")
    return text or resume.raw_text


def build_resume_analysis_text(resume: ResumeProfile) -> str:
    parts = []
    if resume.summary:
        parts.append(f"Professional Summary: {resume.summary}")
    if resume.experience:
        lines = [
            f"{e.position} at {e.company} ({e.start_date or '?'} - {e.end_date or 'Present'}): {e.description or ''}".rstrip()
            for e in resume.experience
        ]
        parts.append("Work Experience:\n" + "\n".join(lines))
    if resume.technical_skills:
        parts.append(f"Technical Skills: {', '.join(resume.technical_skills)}")
    if resume.soft_skills:
        parts.append(f"Soft Skills: {', '.join(resume.soft_skills)}")
    if resume.education:
        lines = [
            f"{e.degree}{' in ' + e.field if e.field else ''} from {e.institution} ({e.end_date or 'Present'})"
            for e in resume.education
        ]
        parts.append("Education:\n" + "\n".join(lines))
    if resume.certifications:
        parts.append(f"Certifications: {', '.join(resume.certifications)}")
    text = _join(parts, "\n\n")
    return text or resume.raw_text


def build_job_embedding_text(job: JobProfile) -> str:
    parts = [f"Job Title: {job.title}"]
    if job.company:
        parts.append(f"Company: {job.company}")
    if job.description:
        parts.append(f"Description: {job.description}")
    if job.requirements:
        parts.append(f"Requirements: {'. '.join(job.requirements)}")
    if job.responsibilities:
        parts.append(f"Responsibilities: {'. '.join(job.responsibilities)}")
    if job.skills:
        parts.append(f"Required Skills: {', '.join(job.skills)}")
    return ". ".join(parts)


def resume_skill_names(resume: ResumeProfile) -> List[str]:
    """Extracted skill names plus declared technical skills, de-duplicated."""
    names = [s.skill for s in resume.extracted_skills]
    names.extend(resume.technical_skills)
    return dedupe_casefold(names)


def skill_present(skill: str, pool: List[str]) -> bool:
    """Case-insensitive equality or substring match in either direction."""
    needle = skill.lower().strip()
    if not needle:
        return False
    for candidate in pool:
        c = candidate.lower().strip()
        if c and (c == needle or needle in c or c in needle):
            return True
    return False


def extract_year(date_str: Optional[str]) -> Optional[int]:
    if not date_str:
        return None
    match = _YEAR.search(str(date_str))
    return int(match.group(1)) if match else None


def experience_intervals(resume: ResumeProfile, current_year: int) -> List[Tuple[int, int]]:
    intervals = []
    for entry in resume.experience:
        start = extract_year(entry.start_date)
        if start is None:
            continue
        end = current_year if entry.current else extract_year(entry.end_date)
        if end is None or end < start:
            continue
        intervals.append((start, end))
    return intervals


def total_experience_years(resume: ResumeProfile, current_year: int) -> Optional[int]:
    """Years covered by the union of dated positions; None when nothing is dated."""
    intervals = sorted(experience_intervals(resume, current_year))
    if not intervals:
        return None
    total = 0
    cur_start, cur_end = intervals[0]
    for start, end in intervals[1:]:
        if start <= cur_end:
            cur_end = max(cur_end, end)
        else:
            total += cur_end - cur_start
            cur_start, cur_end = start, end
    total += cur_end - cur_start
    return total


def required_experience_years(job: JobProfile) -> int:
    text = f"{job.description} {' '.join(job.requirements)}"
    for pattern in EXPERIENCE_PATTERNS:
        match = pattern.search(text)
        if match:
            return int(match.group(1))
    if job.experience_level is not None:
        return LEVEL_YEARS[job.experience_level]
    return 0


def tokenize(text: str) -> List[str]:
    return [w.lower().strip(".-") for w in _WORD.findall(text or "")]


def job_keywords(job: JobProfile) -> List[str]:
    keywords = [s.lower() for s in job.skills]
    for source in [job.description, *job.requirements]:
        keywords.extend(w for w in tokenize(source) if len(w) >= 3 and w not in STOP_WORDS)
    return dedupe_casefold(keywords)


def contains_term(text_lower: str, term: str) -> bool:
    term = term.lower().strip()
    if not term:
        return False
    return re.search(rf"(?<![\w+#]){re.escape(term)}(?![\w+#])", text_lower) is not None


def word_count(text: Optional[str]) -> int:
    return len(text.split()) if text and text.strip() else 0


def readability_score(text: Optional[str]) -> int:
    if not text or not text.strip():
        return 0
    sentences = [s for s in re.split(r"[.!?]+", text) if s.strip()]
    if not sentences:
        return 0
    avg = word_count(text) / len(sentences)
    if avg <= 15:
        return 90
    if avg <= 20:
        return 75
    if avg <= 25:
        return 60
    return 40
