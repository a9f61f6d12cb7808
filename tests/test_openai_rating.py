from __future__ import annotations

import json

import httpx
import pytest
from fakes import make_competition

from game_ratings.analysis.openai_rating import OpenAIRatingService, parse_rating_content
from game_ratings.db.enums import RatingTypeEnum
from game_ratings.domain.entities import CompetitionDetails
from game_ratings.ingestion.providers.base.client import BaseHttpClient
from game_ratings.ingestion.providers.base.errors import ProviderResponseError


def _service(handler) -> OpenAIRatingService:
    http = BaseHttpClient(
        base_url="https://llm.example.test/v1",
        headers={"Authorization": "Bearer test-key"},
        transport=httpx.MockTransport(handler),
    )
    return OpenAIRatingService(http=http, model="test-model")


def _completion(content: str) -> dict:
    return {"choices": [{"message": {"role": "assistant", "content": content}}]}


def test_produce_posts_game_and_parses_fenced_json() -> None:
    sent: list[dict] = []

    def handler(request: httpx.Request) -> httpx.Response:
        assert request.method == "POST"
        assert request.url.path == "/v1/chat/completions"
        assert request.headers["Authorization"] == "Bearer test-key"
        sent.append(json.loads(request.content))
        body = json.dumps(
            {
                "score": 88,
                "explanation": "Late field goal won it.",
                "spoiler_free_explanation": "A tense finish.",
            }
        )
        return httpx.Response(200, json=_completion(f"```json\n{body}\n```"))

    competition = make_competition(
        "401", details=CompetitionDetails(play_by_play=[{"text": "Kickoff"}])
    )
    rating = _service(handler).produce(competition)

    assert rating.score == 88
    assert rating.explanation == "Late field goal won it."
    assert rating.spoiler_free_explanation == "A tense finish."
    assert rating.rating_type == RatingTypeEnum.EXCITEMENT
    assert rating.source == "openai"
    assert rating.generated_at is not None

    assert sent[0]["model"] == "test-model"
    prompt = sent[0]["messages"][0]["content"]
    assert '"Kickoff"' in prompt
    assert "Home Team" in prompt


def test_produce_without_choices_is_a_response_error() -> None:
    service = _service(lambda request: httpx.Response(200, json={"choices": []}))

    with pytest.raises(ProviderResponseError):
        service.produce(make_competition("401"))


def test_parse_rating_content_clamps_score() -> None:
    rating = parse_rating_content('{"score": 140}', rating_type=RatingTypeEnum.EXCITEMENT)

    assert rating.score == 100
    assert rating.explanation == ""


@pytest.mark.parametrize("content", ["not json", "[1, 2]", '{"score": "high"}'])
def test_parse_rating_content_rejects_garbage(content: str) -> None:
    with pytest.raises(ProviderResponseError):
        parse_rating_content(content, rating_type=RatingTypeEnum.EXCITEMENT)
