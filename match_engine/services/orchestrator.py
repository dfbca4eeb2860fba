"""
Composite resume analysis.

A LangGraph fan-out runs the five sub-analyses and the embedding check side by
side, then a single ``aggregate`` node builds the report once every branch has
finished. Results are cached per ``(resume_id, version)`` and concurrent
requests for the same key share one computation.
"""
import asyncio
from enum import Enum
from typing import Awaitable, Callable, Dict, Hashable, List, Optional, TypedDict

from langgraph.graph import END, START, StateGraph

from match_engine.models.profiles import ResumeProfile
from match_engine.models.results import (
    AnalysisReport,
    ATSReport,
    ContentQualityReport,
    KeywordReport,
    Priority,
    Recommendation,
    SkillsReport,
    SuggestionsReport,
)
from match_engine.models.settings import AnalysisWeights
from match_engine.services.analysis import ResumeAnalyzer
from match_engine.services.cache import ResultCache
from match_engine.utils.exceptions import InvalidInputError, MatchEngineError
from match_engine.utils.logging_config import PerformanceMonitor, get_logger
from match_engine.utils.utils import clamp, round_half_up

logger = get_logger(__name__)

SUB_ANALYSES = ["content", "ats", "suggestions", "skills", "keywords"]


class AnalysisState(str, Enum):
    UNCOMPUTED = "uncomputed"
    COMPUTING = "computing"
    CACHED = "cached"
    EVICTED = "evicted"


class AnalysisGraphState(TypedDict, total=False):
    resume: ResumeProfile
    content: ContentQualityReport
    ats: ATSReport
    suggestions: SuggestionsReport
    skills: SkillsReport
    keywords: KeywordReport
    embedding_ready: bool
    report: AnalysisReport


def overall_score(content: ContentQualityReport, ats: ATSReport, weights: AnalysisWeights) -> int:
    return int(clamp(round_half_up(weights.content * content.score + weights.ats * ats.score)))


def build_recommendations(
    ats: ATSReport, suggestions: SuggestionsReport, weights: AnalysisWeights
) -> List[Recommendation]:
    recommendations = []
    if ats.score < weights.ats_alert_threshold:
        recommendations.append(Recommendation(
            priority=Priority.CRITICAL,
            category="ats",
            title="Improve ATS Compatibility",
            description="Your resume may not pass through Applicant Tracking Systems effectively",
            action="Review ATS optimization suggestions",
        ))
    for s in suggestions.suggestions:
        if s.priority == Priority.CRITICAL:
            recommendations.append(Recommendation(
                priority=Priority.HIGH,
                category=s.type.value,
                title=s.title,
                description=s.description,
                action=s.suggested_text or "Apply suggested changes",
            ))
    return recommendations[: weights.max_recommendations]


EnsureEmbedding = Callable[[ResumeProfile], Awaitable[ResumeProfile]]


class AnalysisOrchestrator:
    """Cached, de-duplicated composite analysis of one resume version"""

    def __init__(
        self,
        analyzer: ResumeAnalyzer,
        cache: ResultCache,
        weights: Optional[AnalysisWeights] = None,
        ensure_embedding: Optional[EnsureEmbedding] = None,
    ):
        self.analyzer = analyzer
        self.cache = cache
        self.weights = weights or AnalysisWeights()
        self._ensure_embedding = ensure_embedding
        self._inflight: Dict[Hashable, asyncio.Task] = {}
        self._lock = asyncio.Lock()
        self.graph = self._build_graph()

    # ------------------------------------------------------------------
    # graph nodes
    # ------------------------------------------------------------------

    async def _node_content(self, state: AnalysisGraphState):
        return {"content": await self.analyzer.analyze_content(state["resume"])}

    async def _node_ats(self, state: AnalysisGraphState):
        return {"ats": await self.analyzer.analyze_ats(state["resume"])}

    async def _node_suggestions(self, state: AnalysisGraphState):
        return {"suggestions": await self.analyzer.generate_suggestions(state["resume"])}

    async def _node_skills(self, state: AnalysisGraphState):
        return {"skills": await self.analyzer.extract_skills(state["resume"])}

    async def _node_keywords(self, state: AnalysisGraphState):
        return {"keywords": await self.analyzer.analyze_keywords(state["resume"])}

    async def _node_embedding(self, state: AnalysisGraphState):
        resume = state["resume"]
        if self._ensure_embedding is None:
            return {"embedding_ready": resume.embedding is not None}
        try:
            updated = await self._ensure_embedding(resume)
        except MatchEngineError as e:
            logger.warning(f"Embedding unavailable for resume {resume.id}: {e.message}")
            return {"embedding_ready": False}
        return {"embedding_ready": updated.embedding is not None}

    def _node_aggregate(self, state: AnalysisGraphState):
        resume = state["resume"]
        content, ats, suggestions = state["content"], state["ats"], state["suggestions"]
        report = AnalysisReport(
            resume_id=resume.id,
            version=resume.version,
            content=content,
            ats=ats,
            suggestions=suggestions,
            skills=state["skills"],
            keywords=state["keywords"],
            overall_score=overall_score(content, ats, self.weights),
            recommendations=build_recommendations(ats, suggestions, self.weights),
            embedding_ready=state.get("embedding_ready", False),
        )
        return {"report": report}

    def _build_graph(self):
        g = StateGraph(AnalysisGraphState)
        g.add_node("content", self._node_content)
        g.add_node("ats", self._node_ats)
        g.add_node("suggestions", self._node_suggestions)
        g.add_node("skills", self._node_skills)
        g.add_node("keywords", self._node_keywords)
        g.add_node("embedding", self._node_embedding)
        g.add_node("aggregate", self._node_aggregate)

        branches = SUB_ANALYSES + ["embedding"]
        for name in branches:
            g.add_edge(START, name)
        # aggregate runs once, after every branch has finished
        g.add_edge(branches, "aggregate")
        g.add_edge("aggregate", END)
        return g.compile()

    # ------------------------------------------------------------------
    # public API
    # ------------------------------------------------------------------

    async def analyze(self, resume: ResumeProfile) -> AnalysisReport:
        if not resume.has_content():
            raise InvalidInputError(
                "Resume has no content to analyze", field="resume", value=resume.id
            )
        key = resume.cache_key

        async with self._lock:
            cached = self.cache.get(key)
            if cached is not None:
                logger.debug(f"Analysis cache hit for {key}")
                return cached
            task = self._inflight.get(key)
            if task is None:
                task = asyncio.create_task(self._compute(resume))
                self._inflight[key] = task
                task.add_done_callback(lambda _t, k=key: self._inflight.pop(k, None))
            else:
                logger.debug(f"Joining in-flight analysis for {key}")

        # a cancelled caller must not cancel the shared computation
        return await asyncio.shield(task)

    async def _compute(self, resume: ResumeProfile) -> AnalysisReport:
        logger.info(f"Analyzing resume {resume.id} (version {resume.version})")
        with PerformanceMonitor(f"resume analysis {resume.id}", logger=logger, threshold_ms=30000):
            final = await self.graph.ainvoke({"resume": resume})
        report: AnalysisReport = final["report"]
        self.cache.put(resume.cache_key, report)
        if report.degraded:
            logger.warning(f"Analysis for resume {resume.id} completed with fallbacks")
        logger.info(f"Resume {resume.id} analyzed, overall score {report.overall_score}")
        return report

    def state(self, resume_id: str, version: int) -> AnalysisState:
        key = (resume_id, version)
        if key in self.cache:
            return AnalysisState.CACHED
        task = self._inflight.get(key)
        if task is not None and not task.done():
            return AnalysisState.COMPUTING
        if self.cache.was_evicted(key):
            return AnalysisState.EVICTED
        return AnalysisState.UNCOMPUTED
