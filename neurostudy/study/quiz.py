import random
from typing import List, Optional

from ..schemas.api import Flashcard, QuizQuestion


def build_quiz(cards: List[Flashcard], distractors: int = 3, rng: Optional[random.Random] = None) -> List[QuizQuestion]:
    """Turn flashcards into multiple-choice questions.

    Wrong options come from the other cards' answers (unique, stripped,
    never equal to the correct one). Options are shuffled; with too few
    other cards a question simply gets fewer options.
    """
    rng = rng or random.Random()
    answers = [c.answer.strip() for c in cards]
    quiz: List[QuizQuestion] = []
    for i, card in enumerate(cards):
        correct = answers[i]
        pool = []
        for j, a in enumerate(answers):
            if j != i and a != correct and a not in pool:
                pool.append(a)
        rng.shuffle(pool)
        options = [correct] + pool[:max(0, distractors)]
        rng.shuffle(options)
        quiz.append(QuizQuestion(question=card.question, answer=correct, options=options))
    return quiz
