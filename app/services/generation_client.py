"""
Service: generation_client.py
- Centralise les appels vers le service distant de génération (questions de
  personnalisation + indices), type "edge function".
- Bascule de manière transparente sur les tables locales (DEFAULT_QUESTIONS,
  échelle de clue_engine) si le service est absent, en erreur ou renvoie un
  payload vide.

Contrat distant:
- POST {endpoint}/generate-questions -> {"questions": [{"question", "category"}]}
- POST {endpoint}/generate-clue {"playerAnswers", "clueNumber"} -> {"clue": "..."}
"""
import json
import logging
import random
from typing import Any, Dict, List, Mapping, Optional, Tuple
from uuid import uuid4

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from app.models.clue import Question
from app.services.clue_engine import default_questions, generate_clue

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT: Tuple[float, float] = (3.0, 10.0)  # connect, read


class GenerationServiceError(RuntimeError):
    """Erreur encapsulant un échec de communication avec le service de génération."""


class GenerationClient:
    """
    Client HTTP du service de génération.
    - Configure des retries avec backoff exponentiel.
    - Journalise chaque requête avec un identifiant de corrélation.
    """

    def __init__(
        self,
        endpoint: str,
        *,
        session: Optional[requests.Session] = None,
        timeout: Tuple[float, float] = DEFAULT_TIMEOUT,
    ) -> None:
        self.endpoint = endpoint.rstrip("/")
        self.session = session or self._build_session()
        self.timeout = timeout

    @staticmethod
    def _build_session() -> requests.Session:
        session = requests.Session()
        retry = Retry(
            total=2,
            backoff_factor=0.3,
            status_forcelist=(429, 502, 503, 504),
            allowed_methods=frozenset({"POST"}),
            respect_retry_after_header=True,
        )
        adapter = HTTPAdapter(max_retries=retry)
        session.mount("http://", adapter)
        session.mount("https://", adapter)
        return session

    def _post(self, name: str, payload: Dict[str, Any], *, request_id: str) -> Dict[str, Any]:
        url = f"{self.endpoint}/{name}"
        try:
            logger.debug("Generation request start", extra={"gen_url": url, "gen_request_id": request_id})
            response = self.session.post(url, json=payload, timeout=self.timeout)
            response.raise_for_status()
        except requests.Timeout as exc:
            logger.warning("Generation request timeout", extra={"gen_url": url, "gen_request_id": request_id})
            raise GenerationServiceError("Generation request timed out") from exc
        except requests.RequestException as exc:
            logger.warning(
                "Generation request failed",
                exc_info=True,
                extra={"gen_url": url, "gen_request_id": request_id},
            )
            raise GenerationServiceError("Generation request failed") from exc

        try:
            data = response.json()
        except (json.JSONDecodeError, ValueError) as exc:
            raise GenerationServiceError("Invalid JSON payload from generation service") from exc
        if not isinstance(data, dict):
            raise GenerationServiceError("Unexpected payload from generation service")
        if data.get("error"):
            raise GenerationServiceError(str(data["error"]))
        return data

    def questions(self) -> List[Question]:
        data = self._post("generate-questions", {}, request_id=f"questions-{uuid4().hex}")
        raw = data.get("questions") or []
        try:
            return [Question.model_validate(item) for item in raw]
        except Exception as exc:
            raise GenerationServiceError("Malformed questions payload") from exc

    def clue(self, answers: Mapping[str, str], clue_number: int) -> str:
        data = self._post(
            "generate-clue",
            {"playerAnswers": dict(answers), "clueNumber": clue_number},
            request_id=f"clue-{uuid4().hex}",
        )
        return str(data.get("clue") or "")


class ContentGenerator:
    """
    Façade utilisée par le jeu : service distant si configuré, sinon/à défaut
    tables locales. Ne lève jamais d'exception de génération.
    """

    def __init__(self, client: Optional[GenerationClient] = None, rng: Optional[random.Random] = None) -> None:
        self.client = client
        self.rng = rng

    def questions(self) -> List[Question]:
        if self.client is not None:
            try:
                questions = self.client.questions()
                if questions:
                    return questions
                logger.warning("Generation service returned no questions, using fallback")
            except GenerationServiceError:
                logger.warning("Question generation failed, using fallback questions", exc_info=True)
        return default_questions()

    def clue(self, answers: Mapping[str, str], clue_number: int) -> str:
        if self.client is not None:
            try:
                text = self.client.clue(answers, clue_number).strip()
                if text:
                    return text
                logger.warning("Generation service returned an empty clue, using fallback")
            except GenerationServiceError:
                logger.warning(
                    "Clue generation failed, using fallback clue",
                    exc_info=True,
                    extra={"clue_number": clue_number},
                )
        return generate_clue(answers, clue_number, rng=self.rng)


def build_generator(endpoint: Optional[str], rng: Optional[random.Random] = None) -> ContentGenerator:
    client = GenerationClient(endpoint) if endpoint else None
    return ContentGenerator(client=client, rng=rng)
