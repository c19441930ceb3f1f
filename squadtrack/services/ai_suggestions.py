"""
AI suggestions from coach feedback.

The coach writes free-text feedback with the match stats; a generator turns
it into a short constructive rephrasing plus three improvement bullet
points tailored to the player's position:

    <one or two sentences>

    - <suggestion 1>
    - <suggestion 2>
    - <suggestion 3>

Two generators:
- HttpSuggestionGenerator: POSTs to an external text-generation service,
  guarded by the ``ai_suggestions`` circuit breaker, falling back to the
  templates on any failure
- TemplateSuggestionGenerator: deterministic position templates, used
  offline and as the fallback

Generators are called by the API layer before the stats submission, never
inside its database transaction. Empty feedback yields no suggestions.
"""
import logging
import zlib
from typing import Dict, List, Mapping, Optional, Protocol

import httpx

from squadtrack.core import metrics
from squadtrack.core.circuit_breaker import CircuitBreakerError, ai_suggestions_breaker
from squadtrack.core.config import settings

logger = logging.getLogger(__name__)

POSITIVE_KEYWORDS = ("excellent", "great", "strong", "outstanding", "good")

# Positions without their own template borrow the closest one
POSITION_TEMPLATE_ALIASES = {
    "CF": "ST", "ST1": "ST", "ST2": "ST",
    "LW": "RW", "LM": "RW", "RM": "RW",
    "LB": "RB", "LWB": "RB", "RWB": "RB",
    "CDM": "CM", "CAM": "CM",
}
DEFAULT_TEMPLATE = "CM"

SUGGESTION_TEMPLATES: Dict[str, Dict[str, List[str]]] = {
    "GK": {
        "positive": [
            "Your shot-stopping and command of the penalty area gave the whole back line confidence.",
            "Composed goalkeeping with sharp reactions and clear communication throughout the match.",
            "Commanding display between the posts; your handling and starting positions were reliable all game.",
        ],
        "improvements": [
            "Keep refining your distribution so kicks and throws reach a teammate under pressure",
            "Work on your set position and footwork to reach shots at the corners",
            "Focus on organising the defence early at set pieces and crosses",
        ],
    },
    "ST": {
        "positive": [
            "Your attacking instincts and finishing were on full display. Your movement in the box created repeated scoring opportunities.",
            "Strong performance in the final third. Your positioning and timing of runs caused constant problems for their defence.",
            "Excellent work rate and attacking presence. Your link-up and hold-up play kept the team moving forward.",
        ],
        "improvements": [
            "Keep practising finishes from different angles to maintain your scoring rate",
            "Vary your movement patterns so you are harder to mark in the box",
            "Develop different types of finish for the chances you get",
        ],
    },
    "CM": {
        "positive": [
            "Your passing range and control of the tempo shaped the game from midfield.",
            "Outstanding energy and vision from the centre of the pitch. You found space and switched play well.",
            "Strong midfield display with secure ball retention and progressive passing under pressure.",
        ],
        "improvements": [
            "Develop your long-range shooting to add another dimension to your game",
            "Time late runs into the box to increase your goal threat from midfield",
            "Sharpen your pressing triggers to win the ball back higher up the pitch",
        ],
    },
    "CB": {
        "positive": [
            "Your defensive leadership and presence organised the back line well.",
            "Strong defensive performance with good reading of the game and dominant aerial ability.",
            "Excellent defensive display showing clear communication and positional intelligence.",
        ],
        "improvements": [
            "Develop your progressive passing to help start attacks from deep",
            "Work on your timing when stepping out of the line to press",
            "Improve your distribution under pressure to keep possession in tight situations",
        ],
    },
    "RW": {
        "positive": [
            "Your pace, skill and attacking threat down the flank stretched their defence all game.",
            "Outstanding wing play with confident dribbling and accurate crossing.",
            "Strong performance on the wing with good ball-carrying and consistent creative output.",
        ],
        "improvements": [
            "Practise cutting inside to create shooting opportunities",
            "Add more variety to your crossing to keep defenders guessing",
            "Time your defensive tracking to keep the team's pressing shape",
        ],
    },
    "RB": {
        "positive": [
            "Good balance between defensive solidity and attacking threat. Your overlapping runs were well timed.",
            "Strong defensive performance with good positioning and useful attacking contributions.",
            "Consistent in both phases of play, exactly what the team needs from a fullback.",
        ],
        "improvements": [
            "Develop your crossing technique from different areas of the pitch",
            "Communicate more with your winger during attacking transitions",
            "Improve your recovery runs when caught high up the pitch",
        ],
    },
}


class SuggestionGenerator(Protocol):
    def generate(self, feedback: Optional[str], position: Optional[str], stats: Mapping[str, int]) -> Optional[str]:
        ...


def template_for(position: Optional[str]) -> Dict[str, List[str]]:
    code = (position or "").upper()
    code = POSITION_TEMPLATE_ALIASES.get(code, code)
    return SUGGESTION_TEMPLATES.get(code, SUGGESTION_TEMPLATES[DEFAULT_TEMPLATE])


def is_positive_feedback(feedback: str) -> bool:
    lowered = feedback.lower()
    return any(keyword in lowered for keyword in POSITIVE_KEYWORDS)


def _plural(count: int, word: str) -> str:
    return f"{count} {word}{'s' if count != 1 else ''}"


def performance_context(stats: Mapping[str, int]) -> str:
    """Sentences acknowledging notable numbers from the match."""
    parts = []
    goals = stats.get("goals", 0)
    assists = stats.get("assists", 0)
    tackles = stats.get("tackles", 0)
    saves = stats.get("saves", 0)
    if goals > 0:
        parts.append(f"Your {_plural(goals, 'goal')} today showed good finishing ability.")
    if assists > 0:
        parts.append(f"Your {_plural(assists, 'assist')} demonstrated good vision and teamwork.")
    if tackles > 3:
        parts.append(f"Your {tackles} tackles showed strong defensive commitment.")
    if saves > 3:
        parts.append(f"Your {saves} saves kept the team in the game.")
    return " ".join(parts)


class TemplateSuggestionGenerator:
    """
    Position templates with no randomness: the opening sentence is chosen
    from the feedback text's checksum, so the same feedback always yields
    the same suggestions.
    """

    def generate(self, feedback: Optional[str], position: Optional[str], stats: Mapping[str, int]) -> Optional[str]:
        if not feedback or not feedback.strip():
            return None
        feedback = feedback.strip()
        template = template_for(position)

        if is_positive_feedback(feedback):
            options = template["positive"]
            opening = options[zlib.crc32(feedback.encode("utf-8")) % len(options)]
        else:
            opening = f'Your coach identified areas for development: "{feedback}". This feedback is valuable for your growth.'

        context = performance_context(stats)
        if context:
            opening = f"{opening} {context}"

        bullets = "\n".join(f"- {item}" for item in template["improvements"][:3])
        return f"{opening}\n\n{bullets}"


class HttpSuggestionGenerator:
    """
    Remote generator.

    Request body: ``{"feedback", "position", "stats"}``; the response is
    JSON with a ``suggestions`` string. Failures (HTTP errors, timeouts,
    open circuit, empty text) fall back to the template generator.
    """

    def __init__(
        self,
        url: str,
        api_key: str = "",
        timeout: float = 15.0,
        fallback: Optional[SuggestionGenerator] = None,
        client: Optional[httpx.Client] = None,
    ):
        self.url = url
        self.api_key = api_key
        self.timeout = timeout
        self.fallback = fallback or TemplateSuggestionGenerator()
        self._client = client

    @ai_suggestions_breaker
    def _request(self, payload: dict) -> Optional[str]:
        headers = {"Content-Type": "application/json"}
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"

        if self._client is not None:
            response = self._client.post(self.url, json=payload, headers=headers, timeout=self.timeout)
        else:
            with httpx.Client(timeout=self.timeout) as client:
                response = client.post(self.url, json=payload, headers=headers)
        response.raise_for_status()
        text = (response.json() or {}).get("suggestions")
        return text.strip() if isinstance(text, str) and text.strip() else None

    def generate(self, feedback: Optional[str], position: Optional[str], stats: Mapping[str, int]) -> Optional[str]:
        if not feedback or not feedback.strip():
            metrics.record_ai_suggestion("skipped")
            return None

        payload = {"feedback": feedback.strip(), "position": position, "stats": dict(stats)}
        try:
            text = self._request(payload)
        except CircuitBreakerError:
            logger.warning("AI suggestion circuit breaker is OPEN - using template suggestions")
            text = None
        except (httpx.HTTPError, ValueError) as e:
            logger.warning(f"AI suggestion request failed: {e}")
            text = None

        if text:
            metrics.record_ai_suggestion("remote")
            return text
        metrics.record_ai_suggestion("fallback")
        return self.fallback.generate(feedback, position, stats)


def get_suggestion_generator() -> Optional[SuggestionGenerator]:
    """Generator configured by settings; None when suggestions are switched off."""
    if not settings.AI_SUGGESTIONS_ENABLED:
        return None
    if settings.AI_SUGGESTIONS_URL:
        return HttpSuggestionGenerator(
            url=settings.AI_SUGGESTIONS_URL,
            api_key=settings.AI_SUGGESTIONS_API_KEY,
            timeout=settings.AI_SUGGESTIONS_TIMEOUT,
        )
    return TemplateSuggestionGenerator()
