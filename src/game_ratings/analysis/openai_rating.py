from __future__ import annotations

import json
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any

from game_ratings.core.config import Settings
from game_ratings.core.logging import get_logger
from game_ratings.db.enums import HomeAwayEnum, ProviderEnum, RatingTypeEnum
from game_ratings.domain.entities import Competition, Rating
from game_ratings.ingestion.providers.base.client import BaseHttpClient
from game_ratings.ingestion.providers.base.errors import ProviderResponseError

logger = get_logger(component="openai_rating")

EXCITEMENT_PROMPT = """\
You are an expert NFL analyst. Rate how exciting the game described by the
play-by-play below was to watch, as an integer "score" from 0 to 100.

- Close games (one score or less) start high; blowouts of 17+ points cap near 40.
- Reward late drama, comebacks from 14+ points, repeated lead changes, big plays
  and strong quarterback duels.
- Only subtract for games that were genuinely painful to watch.
- Reserve 90+ for all-time classics.

Return only JSON of the shape:
{"score": 0, "explanation": "may include spoilers",
 "spoiler_free_explanation": "must not reveal the winner, score or decisive plays"}

Game:
"""


def competition_prompt_payload(competition: Competition) -> dict[str, Any]:
    game: dict[str, Any] = {}
    for side in (HomeAwayEnum.HOME, HomeAwayEnum.AWAY):
        team = competition.team(side)
        if team is not None:
            game[side.value] = {"name": team.name, "score": team.score, "record": team.record or ""}
    game["details"] = competition.details.play_by_play if competition.details else []
    return game


def _strip_code_fence(text: str) -> str:
    t = text.strip()
    if t.startswith("```"):
        t = t.split("\n", 1)[1] if "\n" in t else ""
        if t.rstrip().endswith("```"):
            t = t.rstrip()[:-3]
    return t.strip()


def parse_rating_content(content: str, *, rating_type: RatingTypeEnum) -> Rating:
    try:
        data = json.loads(_strip_code_fence(content))
    except json.JSONDecodeError as e:
        raise ProviderResponseError(f"rating content is not JSON: {e}") from e
    if not isinstance(data, dict):
        raise ProviderResponseError("rating content must be a JSON object")

    try:
        score = int(data.get("score", 0))
    except (TypeError, ValueError) as e:
        raise ProviderResponseError(f"rating score is not an integer: {data.get('score')!r}") from e

    return Rating(
        score=max(0, min(100, score)),
        explanation=str(data.get("explanation") or ""),
        spoiler_free_explanation=str(data.get("spoiler_free_explanation") or ""),
        rating_type=rating_type,
        source=ProviderEnum.OPENAI.value,
        generated_at=datetime.now(tz=UTC),
    )


@dataclass
class OpenAIRatingService:
    """`AnalysisService` backed by an OpenAI-compatible chat completions endpoint."""

    http: BaseHttpClient
    model: str = "gpt-4o-mini"
    temperature: float = 0.1
    rating_type: RatingTypeEnum = RatingTypeEnum.EXCITEMENT
    prompt: str = field(default=EXCITEMENT_PROMPT, repr=False)

    def produce(self, competition: Competition) -> Rating:
        game = competition_prompt_payload(competition)
        body = {
            "model": self.model,
            "temperature": self.temperature,
            "messages": [{"role": "user", "content": self.prompt + json.dumps(game)}],
        }

        logger.info(
            "rating_requested",
            competition_id=competition.id,
            matchup=competition.matchup(),
            plays=len(game["details"]),
        )
        payload = self.http.post_json("chat/completions", json=body)

        choices = payload.get("choices")
        if not isinstance(choices, list) or not choices:
            raise ProviderResponseError("chat completion returned no choices")
        message = choices[0].get("message") if isinstance(choices[0], dict) else None
        content = message.get("content") if isinstance(message, dict) else None
        if not isinstance(content, str):
            raise ProviderResponseError("chat completion message has no content")

        return parse_rating_content(content, rating_type=self.rating_type)


def build_openai_rating_service(settings: Settings) -> OpenAIRatingService:
    http = BaseHttpClient(
        base_url=settings.openai_base_url,
        timeout_s=120.0,
        headers={"Authorization": f"Bearer {settings.require_openai_api_key()}"},
    )
    return OpenAIRatingService(http=http, model=settings.openai_model)
