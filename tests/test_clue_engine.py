import random

import pytest

from app.services.clue_engine import (
    CLUE_CATEGORIES,
    DEFAULT_QUESTIONS,
    MAX_CLUE_LEVEL,
    NO_INFORMATION_CLUE,
    PERSONALITY_TRAIT_CLUE,
    clue_level,
    default_questions,
    generate_clue,
)

WEEKEND_Q = "What's your favorite way to spend a weekend?"
WEEKEND_A = "Hiking in the Alps with my dog Rex"

MANY_ANSWERS = {q.question: f"answer {i} about something memorable" for i, q in enumerate(DEFAULT_QUESTIONS)}


def test_default_questions_are_ten_copies():
    questions = default_questions()
    assert len(questions) == 10
    assert questions[0].question == WEEKEND_Q
    questions[0].question = "changed"
    assert DEFAULT_QUESTIONS[0].question == WEEKEND_Q


@pytest.mark.parametrize("clue_number", range(1, 51))
def test_empty_answers_always_return_no_information(clue_number):
    assert generate_clue({}, clue_number) == NO_INFORMATION_CLUE
    assert generate_clue(None, clue_number) == NO_INFORMATION_CLUE


def test_clue_one_is_generic():
    text = generate_clue({WEEKEND_Q: WEEKEND_A}, 1, rng=random.Random(0))
    assert text == "This person has shared some fascinating insights about their personality and lifestyle."
    assert WEEKEND_A not in text


def test_clue_two_names_a_known_category():
    rng = random.Random(4)
    for _ in range(20):
        text = generate_clue({WEEKEND_Q: WEEKEND_A}, 2, rng=rng)
        assert text.startswith("This person has some unique preferences when it comes to ")
        assert any(text.endswith(f"{c}.") for c in CLUE_CATEGORIES)


@pytest.mark.parametrize(
    "answer,keyword",
    [
        (WEEKEND_A, "hiking"),
        ("I love Pizza", "pizza"),
        ("Tea and biscuits", "biscuits"),
        ("Tea", "tea"),
    ],
)
def test_clue_three_surfaces_long_token(answer, keyword):
    text = generate_clue({WEEKEND_Q: answer}, 3, rng=random.Random(0))
    assert text == f'Something about "{keyword}" is particularly interesting in their answers.'


@pytest.mark.parametrize(
    "question,expected",
    [
        (WEEKEND_Q, "Their weekend preferences reveal something distinctive about their lifestyle."),
        ("What's the most unusual food you've ever tried and enjoyed?", "Their food choices show an adventurous or particular taste."),
        ("Do you prefer mountains or beaches for vacation?", "Their travel preferences give insight into their ideal environment."),
        ("What's a skill you'd love to learn if you had unlimited time?", "There's a skill they'd love to develop that reflects their interests."),
        ("If you could live in any time period, which would you choose?", "Their choice of time period or historical figure is quite revealing."),
        ("If you could have dinner with any historical figure, who would it be?", "Their choice of time period or historical figure is quite revealing."),
        ("Are you more of a morning person or night owl?", PERSONALITY_TRAIT_CLUE),
    ],
)
def test_clue_four_matches_question_topic(question, expected):
    assert generate_clue({question: "whatever"}, 4, rng=random.Random(0)) == expected


def test_clue_five_reveals_first_half_of_long_answer():
    text = generate_clue({WEEKEND_Q: WEEKEND_A}, 5, rng=random.Random(0))
    assert text == 'They mentioned something about "Hiking in the Alps..." in their responses.'


def test_clue_five_rounds_half_up():
    text = generate_clue({WEEKEND_Q: "one two three four five"}, 5, rng=random.Random(0))
    assert text == 'They mentioned something about "one two three..." in their responses.'


def test_clue_five_short_answer_gives_first_word():
    text = generate_clue({WEEKEND_Q: "Sleeping all day"}, 5, rng=random.Random(0))
    assert text == 'One of their answers includes the word "Sleeping".'


def test_clue_six_truncates_to_thirty_characters():
    text = generate_clue({WEEKEND_Q: WEEKEND_A}, 6, rng=random.Random(0))
    assert text == 'They specifically mentioned: "Hiking in the Alps with my dog..."'

    exact = "x" * 30
    assert generate_clue({WEEKEND_Q: exact}, 6) == f'They specifically mentioned: "{exact}"'


def test_clue_seven_reveals_full_answer_unattributed():
    text = generate_clue({WEEKEND_Q: WEEKEND_A}, 7, rng=random.Random(0))
    assert text == f'They answered: "{WEEKEND_A}"'
    assert WEEKEND_Q not in text


@pytest.mark.parametrize("clue_number", [8, 9, 50])
def test_clue_index_is_clamped_to_question_and_answer(clue_number):
    rng = random.Random(clue_number)
    for _ in range(10):
        text = generate_clue(MANY_ANSWERS, clue_number, rng=rng)
        assert text.startswith('Question: "')
        question = text.split('"')[1]
        assert question in MANY_ANSWERS
        assert text == f'Question: "{question}" - Their answer: "{MANY_ANSWERS[question]}"'


def test_clue_level_clamping():
    assert clue_level(0) == 1
    assert clue_level(-3) == 1
    assert clue_level(8) == MAX_CLUE_LEVEL
    assert clue_level(20) == MAX_CLUE_LEVEL


def test_same_index_is_not_required_to_repeat():
    rng = random.Random(11)
    texts = {generate_clue(MANY_ANSWERS, 7, rng=rng) for _ in range(30)}
    assert len(texts) > 1


def test_seeded_rng_makes_clues_reproducible():
    first = [generate_clue(MANY_ANSWERS, n, rng=random.Random(99)) for n in range(1, 10)]
    second = [generate_clue(MANY_ANSWERS, n, rng=random.Random(99)) for n in range(1, 10)]
    assert first == second
