import random
from unittest.mock import Mock

import pytest
import requests

from app.services.clue_engine import DEFAULT_QUESTIONS, NO_INFORMATION_CLUE
from app.services.generation_client import (
    ContentGenerator,
    GenerationClient,
    GenerationServiceError,
    build_generator,
)

ANSWERS = {"What's your favorite way to spend a weekend?": "Hiking in the Alps with my dog Rex"}


def _response(payload=None, *, status_error=None, json_error=None):
    response = Mock()
    if status_error:
        response.raise_for_status.side_effect = status_error
    if json_error:
        response.json.side_effect = json_error
    else:
        response.json.return_value = payload
    return response


@pytest.fixture
def session():
    return Mock(spec=requests.Session)


def test_clue_posts_expected_payload(session):
    session.post.return_value = _response({"clue": "They like mountains."})
    client = GenerationClient("http://gen.local/functions/v1/", session=session)

    assert client.clue(ANSWERS, 3) == "They like mountains."

    args, kwargs = session.post.call_args
    assert args[0] == "http://gen.local/functions/v1/generate-clue"
    assert kwargs["json"] == {"playerAnswers": ANSWERS, "clueNumber": 3}
    assert kwargs["timeout"] == client.timeout


def test_questions_are_validated(session):
    session.post.return_value = _response({"questions": [{"question": "Cats or dogs?", "category": "pets"}]})
    client = GenerationClient("http://gen.local", session=session)

    questions = client.questions()

    assert [(q.question, q.category) for q in questions] == [("Cats or dogs?", "pets")]


@pytest.mark.parametrize(
    "response",
    [
        _response(status_error=requests.HTTPError("502")),
        _response(json_error=ValueError("not json")),
        _response(["not", "a", "dict"]),
        _response({"error": "quota exceeded"}),
    ],
)
def test_client_errors_are_wrapped(session, response):
    session.post.return_value = response
    client = GenerationClient("http://gen.local", session=session)

    with pytest.raises(GenerationServiceError):
        client.clue(ANSWERS, 1)


def test_timeout_is_wrapped(session):
    session.post.side_effect = requests.Timeout("slow")
    client = GenerationClient("http://gen.local", session=session)

    with pytest.raises(GenerationServiceError):
        client.questions()


def test_malformed_questions_payload(session):
    session.post.return_value = _response({"questions": [{"question": "no category"}]})
    client = GenerationClient("http://gen.local", session=session)

    with pytest.raises(GenerationServiceError):
        client.questions()


def test_generator_without_client_uses_local_tables():
    generator = ContentGenerator(rng=random.Random(0))

    assert [q.question for q in generator.questions()] == [q.question for q in DEFAULT_QUESTIONS]
    assert generator.clue({}, 4) == NO_INFORMATION_CLUE
    assert generator.clue(ANSWERS, 7) == 'They answered: "Hiking in the Alps with my dog Rex"'


def test_generator_prefers_remote_service():
    client = Mock()
    client.clue.return_value = "  Remote clue  "
    generator = ContentGenerator(client=client)

    assert generator.clue(ANSWERS, 2) == "Remote clue"
    client.clue.assert_called_once_with(ANSWERS, 2)


def test_generator_falls_back_on_failure():
    client = Mock()
    client.questions.side_effect = GenerationServiceError("down")
    client.clue.side_effect = GenerationServiceError("down")
    generator = ContentGenerator(client=client, rng=random.Random(0))

    assert len(generator.questions()) == len(DEFAULT_QUESTIONS)
    assert generator.clue(ANSWERS, 8).startswith('Question: "')


def test_generator_falls_back_on_empty_payloads():
    client = Mock()
    client.questions.return_value = []
    client.clue.return_value = ""
    generator = ContentGenerator(client=client, rng=random.Random(0))

    assert len(generator.questions()) == len(DEFAULT_QUESTIONS)
    assert generator.clue(ANSWERS, 1).startswith("This person has shared")


def test_build_generator():
    assert build_generator(None).client is None
    remote = build_generator("http://gen.local")
    assert isinstance(remote.client, GenerationClient)
    assert remote.client.endpoint == "http://gen.local"
