"""
Service: clue_engine.py
Rôle:
- Générer l'indice n°k sur une cible à partir de ses réponses {question: réponse}.
- Fournir la liste de questions par défaut (phase de collecte).

Échelle de précision (index 1-based, borné au dernier barreau):
  1. phrase générique (aucune information)
  2. catégorie tirée au hasard (pas forcément réellement renseignée)
  3. un mot (> 4 lettres) extrait d'une réponse
  4. thème déduit du texte de la QUESTION (weekend / food / travel / skill / time period)
  5. première moitié d'une réponse (ou son premier mot si <= 3 mots)
  6. 30 premiers caractères d'une réponse
  7. une réponse complète, sans la question
  8+ question + réponse complètes

Contrat de non-déterminisme:
- Chaque appel re-tire sa réponse/catégorie: deux appels au même index ne renvoient
  pas forcément le même texte. Injecter `rng` (random.Random seedé) pour les tests.
"""
from __future__ import annotations

import math
import random
from typing import Callable, List, Mapping, Optional, Tuple

from app.models.clue import Question

NO_INFORMATION_CLUE = "This person has shared some interesting information about themselves."

CLUE_CATEGORIES = [
    "weekend activities",
    "food preferences",
    "travel interests",
    "hobbies",
    "personality traits",
]

# (mots-clés recherchés dans la question, phrase produite), ordre significatif
QUESTION_TOPICS: List[Tuple[Tuple[str, ...], str]] = [
    (("weekend",), "Their weekend preferences reveal something distinctive about their lifestyle."),
    (("food", "eat"), "Their food choices show an adventurous or particular taste."),
    (("travel", "vacation"), "Their travel preferences give insight into their ideal environment."),
    (("skill", "learn"), "There's a skill they'd love to develop that reflects their interests."),
    (("time period", "historical"), "Their choice of time period or historical figure is quite revealing."),
]
PERSONALITY_TRAIT_CLUE = "One of their personality traits really stands out from their answers."

PARTIAL_ANSWER_MIN_WORDS = 4
SNIPPET_LENGTH = 30

DEFAULT_QUESTIONS: List[Question] = [
    Question(question="What's your favorite way to spend a weekend?", category="lifestyle"),
    Question(question="If you could have dinner with any historical figure, who would it be?", category="personality"),
    Question(question="What's the most unusual food you've ever tried and enjoyed?", category="food"),
    Question(question="Do you prefer mountains or beaches for vacation?", category="travel"),
    Question(question="What's a skill you'd love to learn if you had unlimited time?", category="interests"),
    Question(question="Are you more of a morning person or night owl?", category="lifestyle"),
    Question(question="What's your go-to comfort activity when stressed?", category="personality"),
    Question(question="If you could live in any time period, which would you choose?", category="preferences"),
    Question(question="What's something you're passionate about that might surprise people?", category="interests"),
    Question(question="Do you prefer big social gatherings or intimate small groups?", category="personality"),
]

Entry = Tuple[str, str]


def default_questions() -> List[Question]:
    """Copie de la liste par défaut (10 questions)."""
    return [q.model_copy() for q in DEFAULT_QUESTIONS]


# -----------------------------
# Barreaux de l'échelle
# -----------------------------
def _generic(entries: List[Entry], rng: random.Random) -> str:
    return "This person has shared some fascinating insights about their personality and lifestyle."


def _category_hint(entries: List[Entry], rng: random.Random) -> str:
    category = rng.choice(CLUE_CATEGORIES)
    return f"This person has some unique preferences when it comes to {category}."


def _keyword(entries: List[Entry], rng: random.Random) -> str:
    _, answer = rng.choice(entries)
    words = answer.lower().split(" ")
    key_word = next((w for w in words if len(w) > 4), words[0])
    return f'Something about "{key_word}" is particularly interesting in their answers.'


def _question_topic(entries: List[Entry], rng: random.Random) -> str:
    question, _ = rng.choice(entries)
    question = question.lower()
    for keywords, sentence in QUESTION_TOPICS:
        if any(k in question for k in keywords):
            return sentence
    return PERSONALITY_TRAIT_CLUE


def _partial_answer(entries: List[Entry], rng: random.Random) -> str:
    _, answer = rng.choice(entries)
    words = answer.split(" ")
    if len(words) >= PARTIAL_ANSWER_MIN_WORDS:
        partial = " ".join(words[: math.ceil(len(words) / 2)])
        return f'They mentioned something about "{partial}..." in their responses.'
    return f'One of their answers includes the word "{words[0]}".'


def _snippet(entries: List[Entry], rng: random.Random) -> str:
    _, answer = rng.choice(entries)
    suffix = "..." if len(answer) > SNIPPET_LENGTH else ""
    return f'They specifically mentioned: "{answer[:SNIPPET_LENGTH]}{suffix}"'


def _full_answer(entries: List[Entry], rng: random.Random) -> str:
    _, answer = rng.choice(entries)
    return f'They answered: "{answer}"'


def _question_and_answer(entries: List[Entry], rng: random.Random) -> str:
    question, answer = rng.choice(entries)
    return f'Question: "{question}" - Their answer: "{answer}"'


CLUE_LADDER: List[Callable[[List[Entry], random.Random], str]] = [
    _generic,
    _category_hint,
    _keyword,
    _question_topic,
    _partial_answer,
    _snippet,
    _full_answer,
    _question_and_answer,
]
MAX_CLUE_LEVEL = len(CLUE_LADDER)


def clue_level(clue_number: int) -> int:
    """Barreau effectivement utilisé pour un index (borné à [1, MAX_CLUE_LEVEL])."""
    return min(max(int(clue_number), 1), MAX_CLUE_LEVEL)


def generate_clue(
    answers: Optional[Mapping[str, object]],
    clue_number: int,
    rng: Optional[random.Random] = None,
) -> str:
    """
    Produit l'indice n°`clue_number` (1-based) à partir des réponses de la cible.
    - Réponses vides => phrase "aucune information", quel que soit l'index.
    - Index > 8 => même comportement que l'index 8.
    """
    entries: List[Entry] = [(str(q), str(a)) for q, a in (answers or {}).items()]
    if not entries:
        return NO_INFORMATION_CLUE

    strategy = CLUE_LADDER[clue_level(clue_number) - 1]
    return strategy(entries, rng or random)


