"""
LLM service for AI-assisted startup/investor matching.
"""
from typing import Optional, Dict, Any, List
import os
import logging
import json
from langchain_openai import ChatOpenAI
from langchain_core.messages import SystemMessage, HumanMessage
from dotenv import load_dotenv

load_dotenv()

logger = logging.getLogger(__name__)

PLACEHOLDER_SUMMARY = "AI analysis unavailable"

SYSTEM_PROMPT = """You are an analyst at a venture matchmaking platform.
You compare one startup or investor profile against a list of candidate counterparties
and rate how promising an introduction would be.
Consider industry focus, stage, ticket size versus funding need, location and thesis fit.
Always respond with valid JSON only."""


def _strip_code_fence(content: str) -> str:
    content = content.strip()
    if content.startswith("```json"):
        content = content[7:]
    if content.startswith("```"):
        content = content[3:]
    if content.endswith("```"):
        content = content[:-3]
    return content.strip()


def _clamp_score(value: Any) -> int:
    score = int(round(float(value)))
    return max(0, min(100, score))


def _string_list(value: Any) -> List[str]:
    if not isinstance(value, list):
        return []
    return [str(item) for item in value if str(item).strip()][:5]


class LLMService:
    """Service for LLM interactions using OpenAI."""

    def __init__(self):
        """Initialize LLM service."""
        self.api_key = os.getenv('OPENAI_API_KEY')
        self.model = os.getenv('OPENAI_MODEL', 'gpt-4.1-mini')
        self.temperature = float(os.getenv('LLM_TEMPERATURE', '0.2'))

        if not self.api_key:
            logger.warning("OPENAI_API_KEY not set - AI matching will return placeholder scores")

    def get_chat_model(self) -> ChatOpenAI:
        """Get OpenAI chat model instance."""
        return ChatOpenAI(
            model=self.model,
            temperature=self.temperature,
            api_key=self.api_key
        )

    def is_available(self) -> bool:
        """Check if LLM service is available."""
        return bool(self.api_key and self.model)

    def build_prompt(self, role: str, subject: Dict[str, Any], candidates: List[Dict[str, Any]]) -> str:
        """Format the subject profile and candidates as a scoring request."""
        counterpart = "investors" if role == "startup" else "startups"
        return f"""Rate how well each candidate matches the {role} below.

{role.upper()} PROFILE:
{json.dumps(subject, indent=2, default=str)}

CANDIDATE {counterpart.upper()}:
{json.dumps(candidates, indent=2, default=str)}

Respond with a JSON array containing one object per candidate, in any order:
[
    {{
        "id": "<candidate id, copied exactly>",
        "score": <integer 0-100>,
        "summary": "one or two sentences on why",
        "strengths": ["up to 3 short points"],
        "concerns": ["up to 3 short points"]
    }}
]"""

    def placeholder_scores(self, candidate_ids: List[str]) -> List[Dict[str, Any]]:
        """Zero-score entries used whenever the model cannot be consulted."""
        return [self._placeholder(candidate_id) for candidate_id in candidate_ids]

    @staticmethod
    def _placeholder(candidate_id: str) -> Dict[str, Any]:
        return {
            "id": candidate_id,
            "score": 0,
            "summary": PLACEHOLDER_SUMMARY,
            "strengths": [],
            "concerns": [],
            "ai_available": False,
        }

    def parse_scores(self, content: str, candidate_ids: List[str]) -> List[Dict[str, Any]]:
        """
        Parse the model reply into one entry per candidate.

        Accepts a bare array or an object wrapping it under "matches".
        Unknown ids are dropped and omitted candidates get the placeholder.
        Raises ValueError when the reply is not usable at all.
        """
        data = json.loads(_strip_code_fence(content))
        if isinstance(data, dict):
            data = data.get("matches")
        if not isinstance(data, list):
            raise ValueError("Expected a JSON array of scores")

        wanted = set(candidate_ids)
        parsed: Dict[str, Dict[str, Any]] = {}
        for item in data:
            if not isinstance(item, dict):
                continue
            candidate_id = str(item.get("id", ""))
            if candidate_id not in wanted or candidate_id in parsed:
                continue
            try:
                score = _clamp_score(item.get("score"))
            except (TypeError, ValueError, OverflowError):
                logger.warning(f"Unusable score for candidate {candidate_id}: {item.get('score')!r}")
                continue
            parsed[candidate_id] = {
                "id": candidate_id,
                "score": score,
                "summary": str(item.get("summary") or "").strip() or None,
                "strengths": _string_list(item.get("strengths")),
                "concerns": _string_list(item.get("concerns")),
                "ai_available": True,
            }

        missing = [cid for cid in candidate_ids if cid not in parsed]
        if missing:
            logger.warning(f"Model omitted {len(missing)} of {len(candidate_ids)} candidates")
        return [parsed.get(cid) or self._placeholder(cid) for cid in candidate_ids]

    async def score_candidates(
        self,
        role: str,
        subject: Dict[str, Any],
        candidates: List[Dict[str, Any]]
    ) -> List[Dict[str, Any]]:
        """
        Ask the model to score every candidate for the subject.

        Args:
            role: Role of the subject ("startup" or "investor")
            subject: Subject profile payload
            candidates: Candidate payloads, each with an "id"

        Returns:
            One dict per candidate with id, score, summary, strengths,
            concerns and ai_available. Never raises.
        """
        candidate_ids = [str(c["id"]) for c in candidates]
        if not candidate_ids:
            return []
        if not self.is_available():
            return self.placeholder_scores(candidate_ids)

        try:
            chat_model = self.get_chat_model()
            messages = [
                SystemMessage(content=SYSTEM_PROMPT),
                HumanMessage(content=self.build_prompt(role, subject, candidates))
            ]
            response = await chat_model.ainvoke(messages)
            scores = self.parse_scores(response.content, candidate_ids)
            logger.info(f"AI scored {sum(1 for s in scores if s['ai_available'])}/{len(candidate_ids)} candidates")
            return scores

        except (json.JSONDecodeError, ValueError) as e:
            logger.warning(f"Failed to parse LLM match scores: {e}")
            return self.placeholder_scores(candidate_ids)
        except Exception as e:
            logger.error(f"LLM match scoring failed: {e}")
            return self.placeholder_scores(candidate_ids)


# Singleton instance
_llm_service: Optional[LLMService] = None


def get_llm_service() -> LLMService:
    """Get or create the LLM service singleton."""
    global _llm_service
    if _llm_service is None:
        _llm_service = LLMService()
    return _llm_service
