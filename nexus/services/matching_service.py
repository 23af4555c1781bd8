"""
Matching service.

Ranks counterparties for the logged-in user in two ways:
1. A local point heuristic (industry +50, stage +25, funding fit +25).
2. Delegation to a language model that returns a score per candidate,
   blended with the heuristic score.

Scored pairs are upserted into the Match table so connection requests can
move their workflow status.
"""
import json
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

from nexus.adapters.dynamodb import Investor, Match, Startup
from nexus.core.config import Settings, get_settings
from nexus.middleware.auth import SessionUser
from nexus.middleware.error_handling import AppException, ErrorCode, PermissionDenied
from nexus.services.llm_service import LLMService, get_llm_service
from nexus.utils.cache import RedisCache, get_cache
from nexus.utils.executor import run_sync

logger = logging.getLogger(__name__)

INDUSTRY_POINTS = 50
STAGE_POINTS = 25
FUNDING_POINTS = 25


def _normalize(value: Optional[str]) -> str:
    return (value or "").strip().lower()


def score_match(startup, investor) -> int:
    """
    Heuristic compatibility score between 0 and 100.

    Industry match is case-insensitive. Missing attributes award nothing.
    """
    score = 0

    industries = {_normalize(i) for i in (investor.preferred_industries or [])}
    if startup.industry and _normalize(startup.industry) in industries:
        score += INDUSTRY_POINTS

    stages = {_normalize(s) for s in (investor.preferred_stages or [])}
    if startup.stage and _normalize(startup.stage) in stages:
        score += STAGE_POINTS

    funding = startup.funding_required
    low, high = investor.min_investment, investor.max_investment
    if funding is not None and low is not None and high is not None and low <= funding <= high:
        score += FUNDING_POINTS

    return max(0, min(100, score))


@dataclass
class MatchResult:
    """One ranked counterparty."""
    counterpart_id: str
    counterpart_role: str
    name: str
    profile: Any
    structured_score: int
    final_score: int
    ai_score: Optional[int] = None
    ai_available: bool = False
    summary: Optional[str] = None
    strengths: List[str] = field(default_factory=list)
    concerns: List[str] = field(default_factory=list)

    @property
    def score(self) -> int:
        return self.ai_score if self.ai_score is not None else self.structured_score


def startup_payload(startup: Startup) -> Dict[str, Any]:
    data = startup.to_dict()
    data["id"] = data.pop("user_id")
    return data


def investor_payload(investor: Investor) -> Dict[str, Any]:
    data = investor.to_dict()
    data["id"] = data.pop("user_id")
    return data


class MatchingService:
    """Produce ranked candidate lists for startups and investors."""

    def __init__(
        self,
        llm_service: Optional[LLMService] = None,
        cache: Optional[RedisCache] = None,
        settings: Optional[Settings] = None
    ):
        self._llm_service = llm_service
        self._cache = cache
        self.settings = settings or get_settings()

    @property
    def llm_service(self) -> LLMService:
        if self._llm_service is None:
            self._llm_service = get_llm_service()
        return self._llm_service

    @property
    def cache(self) -> RedisCache:
        if self._cache is None:
            self._cache = get_cache()
        return self._cache

    # ------------------------------------------------------------------
    # Heuristic matching
    # ------------------------------------------------------------------

    def _finish(self, results: List[MatchResult], key) -> List[MatchResult]:
        results = [r for r in results if r.structured_score >= self.settings.match_min_score]
        results.sort(key=key)
        return results[:self.settings.match_result_limit]

    def rank_investors_for_startup(self, startup: Startup, persist: bool = True) -> List[MatchResult]:
        """Every investor profile scored against the startup, best first."""
        results = []
        for investor in Investor.list_all():
            score = score_match(startup, investor)
            results.append(MatchResult(
                counterpart_id=investor.user_id,
                counterpart_role="investor",
                name=investor.display_name,
                profile=investor,
                structured_score=score,
                final_score=score,
            ))
        results = self._finish(results, key=lambda r: (-r.structured_score, r.name.lower()))
        if persist:
            for result in results:
                Match.upsert_score(startup.user_id, result.counterpart_id, result.structured_score,
                                   structured_score=result.structured_score)
        return results

    def rank_startups_for_investor(self, investor: Investor, persist: bool = True) -> List[MatchResult]:
        """Every startup profile scored against the investor, best first."""
        results = []
        for startup in Startup.list_all():
            score = score_match(startup, investor)
            results.append(MatchResult(
                counterpart_id=startup.user_id,
                counterpart_role="startup",
                name=startup.display_name,
                profile=startup,
                structured_score=score,
                final_score=score,
            ))
        results = self._finish(results, key=lambda r: (-r.structured_score, r.name.lower()))
        if persist:
            for result in results:
                Match.upsert_score(result.counterpart_id, investor.user_id, result.structured_score,
                                   structured_score=result.structured_score)
        return results

    def load_own_profile(self, user: SessionUser):
        """The user's profile, or an error redirecting to the profile form."""
        if user.role == "startup":
            profile = Startup.find_by_user(user.user_id)
        elif user.role == "investor":
            profile = Investor.find_by_user(user.user_id)
        else:
            raise PermissionDenied("Only startups and investors can view matches.")
        if profile is None:
            raise AppException(
                code=ErrorCode.PROFILE_INCOMPLETE,
                message="Please complete your profile to see matches.",
                redirect_to=f"/profile/{user.role}"
            )
        return profile

    def matches_for_user(self, user: SessionUser, persist: bool = True) -> Tuple[Any, List[MatchResult]]:
        """Heuristic matches for the logged-in user."""
        profile = self.load_own_profile(user)
        if user.role == "startup":
            return profile, self.rank_investors_for_startup(profile, persist=persist)
        return profile, self.rank_startups_for_investor(profile, persist=persist)

    # ------------------------------------------------------------------
    # AI matching
    # ------------------------------------------------------------------

    def _cache_key_payload(self, role: str, subject: Dict[str, Any], candidates: List[Dict[str, Any]]) -> str:
        return json.dumps(
            {"role": role, "model": self.llm_service.model, "subject": subject, "candidates": candidates},
            sort_keys=True,
            default=str
        )

    async def _score_with_cache(
        self,
        role: str,
        subject: Dict[str, Any],
        candidates: List[Dict[str, Any]]
    ) -> List[Dict[str, Any]]:
        payload = self._cache_key_payload(role, subject, candidates)
        cached = await run_sync(self.cache.get_ai_scores, payload)
        if cached is not None:
            logger.info(f"AI match scores served from cache for {len(candidates)} candidates")
            return cached

        scores = await self.llm_service.score_candidates(role, subject, candidates)
        if any(item.get("ai_available") for item in scores):
            await run_sync(self.cache.set_ai_scores, payload, scores, ttl=self.settings.ai_match_cache_ttl)
        return scores

    def _blend(self, ai_score: int, structured_score: int) -> int:
        weight = self.settings.ai_score_weight
        return int(round(weight * ai_score + (1 - weight) * structured_score))

    def _store_ai_scores(self, user: SessionUser, results: List[MatchResult]) -> None:
        for result in results:
            startup_id, investor_id = (
                (user.user_id, result.counterpart_id) if user.role == "startup"
                else (result.counterpart_id, user.user_id)
            )
            Match.upsert_score(
                startup_id,
                investor_id,
                result.ai_score,
                structured_score=result.structured_score,
                final_score=result.final_score,
                ai_analysis={
                    "summary": result.summary,
                    "strengths": result.strengths,
                    "concerns": result.concerns,
                } if result.ai_available else None,
                clear_analysis=not result.ai_available
            )

    async def ai_matches_for_user(self, user: SessionUser) -> Tuple[Any, List[MatchResult]]:
        """
        AI-ranked matches for the logged-in user.

        The heuristic picks which candidates are sent to the model (best
        first, up to AI_MATCH_CANDIDATE_LIMIT). Candidates the model could not
        score keep a zero AI score and their heuristic final score. Table
        scans, cache calls and Match writes run in the sync thread pool.
        """
        profile, ranked = await run_sync(self.matches_for_user, user, persist=False)
        candidates = ranked[:self.settings.ai_candidate_limit]
        if not candidates:
            return profile, []

        if user.role == "startup":
            subject = startup_payload(profile)
            payloads = [investor_payload(r.profile) for r in candidates]
        else:
            subject = investor_payload(profile)
            payloads = [startup_payload(r.profile) for r in candidates]

        scores = await self._score_with_cache(user.role, subject, payloads)
        by_id = {item["id"]: item for item in scores}

        for result in candidates:
            item = by_id.get(result.counterpart_id) or {}
            result.ai_available = bool(item.get("ai_available"))
            result.ai_score = int(item.get("score", 0))
            result.summary = item.get("summary")
            result.strengths = list(item.get("strengths") or [])
            result.concerns = list(item.get("concerns") or [])
            if result.ai_available:
                result.final_score = self._blend(result.ai_score, result.structured_score)
            else:
                result.final_score = result.structured_score

        await run_sync(self._store_ai_scores, user, candidates)

        candidates.sort(key=lambda r: (-r.ai_score, -r.final_score, r.name.lower()))
        return profile, candidates
