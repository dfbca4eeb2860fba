CONTENT_ANALYSIS_PROMPT = """You are a resume reviewer.
Analyze the resume below for quality, structure and effectiveness.
Return strict JSON with this shape:
{{"strengths": ["..."], "weaknesses": ["..."],
  "contentQuality": {{"score": <0..100>, "feedback": "..."}},
  "structure": {{"score": <0..100>, "feedback": "..."}},
  "language": {{"score": <0..100>, "feedback": "..."}},
  "achievements": {{"quantified": <int>, "total": <int>, "score": <0..100>, "feedback": "..."}}}}

Evaluate content relevance, organization, professional tone and the use of quantified achievements.

RESUME:
{resume}
"""

ATS_ANALYSIS_PROMPT = """You are an applicant tracking system (ATS) expert.
Assess how well the resume below will be parsed and ranked by an ATS.
Return strict JSON with this shape:
{{"score": <0..100>,
  "factors": {{
    "formatting": {{"score": <0..100>, "issues": ["..."], "suggestions": ["..."]}},
    "keywords": {{"score": <0..100>, "found": ["..."], "missing": ["..."], "suggestions": ["..."]}},
    "structure": {{"score": <0..100>, "issues": ["..."], "suggestions": ["..."]}},
    "readability": {{"score": <0..100>, "issues": ["..."], "suggestions": ["..."]}}
  }},
  "overallFeedback": "..."}}

RESUME:
{resume}
"""

SUGGESTIONS_PROMPT = """You are a career coach.
Suggest concrete improvements for the resume below.
Return strict JSON with this shape:
{{"suggestions": [
    {{"type": "content|formatting|keywords|structure|grammar",
      "priority": "critical|high|medium|low",
      "title": "...", "description": "...", "section": "...",
      "current": "...", "suggested": "...",
      "impact": "high|medium|low", "category": "..."}}
  ],
  "missingSkills": ["..."], "keywordGaps": ["..."],
  "atsScore": <0..100>, "overallFeedback": "..."}}

Focus on ATS issues, missing keywords and skills, grammar, structure, quantifiable achievements and action verbs.

RESUME:
{resume}
"""

SKILL_EXTRACTION_PROMPT = """You are an information extractor.
Extract every technical and soft skill from the resume below.
Return strict JSON with this shape:
{{"skills": [{{"skill": "...", "category": "technical|soft|language|tool|framework|certification",
              "confidence": <0..1>, "context": "..."}}],
  "categories": {{"technical": ["..."], "soft": ["..."], "tools": ["..."], "frameworks": ["..."], "languages": ["..."]}}}}

Confidence reflects how clearly the skill is stated.

RESUME:
{resume}
"""

JOB_OPTIMIZATION_PROMPT = """You are a recruiting copywriter.
Improve the job description below for candidate attraction and ATS compatibility.
Return strict JSON with this shape:
{{"optimizedDescription": "...",
  "suggestions": [{{"type": "keywords|structure|requirements|benefits", "priority": "high|medium|low",
                   "current": "...", "suggested": "...", "reason": "..."}}],
  "keywordSuggestions": ["..."], "improvementScore": <0..100>, "feedback": "..."}}

JOB DESCRIPTION:
{description}
"""

RESUME_FOR_JOB_PROMPT = """You are a career coach.
Tailor the resume below to the job posting that follows it.
Return strict JSON with this shape:
{{"keywordOptimization": {{"missing": ["..."], "suggestions": ["..."]}},
  "contentOptimization": {{"summary": "...", "experienceHighlights": ["..."], "skillsToEmphasize": ["..."]}},
  "matchImprovements": {{"before": <0..100>, "after": <0..100>, "improvements": ["..."]}},
  "specificSuggestions": [{{"section": "...", "current": "...", "suggested": "...", "reason": "..."}}]}}

Only suggest changes the candidate's real experience supports.

RESUME:
{resume}

JOB POSTING:
{job}
"""
