import random
from collections import namedtuple
from typing import List, Optional
from uuid import uuid4

from quiz_app.quiz_engine.state import OPTIONS_PER_QUESTION, Difficulty, Question

Template = namedtuple("Template", ["op", "min", "max"])

QUESTION_TEMPLATES = {
    Difficulty.EASY: [
        Template("+", 1, 20),
        Template("-", 1, 20),
        Template("*", 1, 10),
    ],
    Difficulty.MEDIUM: [
        Template("+", 10, 100),
        Template("-", 10, 100),
        Template("*", 5, 20),
        Template("/", 2, 12),  # divisor and quotient range
    ],
    Difficulty.HARD: [
        Template("+", 50, 500),
        Template("-", 50, 500),
        Template("*", 10, 50),
        Template("/", 5, 20),
    ],
}

OPERATOR_SYMBOLS = {"+": "+", "-": "-", "*": "×", "/": "÷"}

DISTRACTOR_OFFSETS = [-2, -1, 1, 2, 3, -3, 5, -5]
DISTRACTOR_COUNT = OPTIONS_PER_QUESTION - 1
MAX_FALLBACK_DRAWS = 30
FALLBACK_OFFSET_MAX = 10


def shuffle(items: List, rng: random.Random) -> List:
    """Shuffled copy of ``items``; the input list is left alone."""
    shuffled = list(items)
    rng.shuffle(shuffled)
    return shuffled


def draw_operands(template: Template, rng: random.Random):
    """Return (left, right, result) for one template."""
    if template.op == "/":
        divisor = rng.randint(template.min, template.max)
        quotient = rng.randint(template.min, template.max)
        return divisor * quotient, divisor, quotient

    a = rng.randint(template.min, template.max)
    b = rng.randint(template.min, template.max)

    if template.op == "+":
        return a, b, a + b
    if template.op == "-":
        if b > a:
            a, b = b, a
        return a, b, a - b
    if template.op == "*":
        return a, b, a * b

    raise ValueError(f"Unsupported operator {template.op!r}")


def make_distractors(result: int, rng: random.Random) -> List[str]:
    correct = str(result)
    chosen: List[str] = []

    def accept(candidate: int) -> None:
        text = str(candidate)
        if candidate >= 0 and text != correct and text not in chosen:
            chosen.append(text)

    # 1. Near misses around the real answer
    for offset in shuffle(DISTRACTOR_OFFSETS, rng):
        accept(result + offset)
        if len(chosen) == DISTRACTOR_COUNT:
            return chosen

    # 2. Random small positive offsets, bounded
    for _ in range(MAX_FALLBACK_DRAWS):
        accept(result + rng.randint(1, FALLBACK_OFFSET_MAX))
        if len(chosen) == DISTRACTOR_COUNT:
            return chosen

    # 3. Walk upwards past the random range; always terminates
    offset = FALLBACK_OFFSET_MAX + 1
    while len(chosen) < DISTRACTOR_COUNT:
        accept(result + offset)
        offset += 1

    return chosen


def generate_question(difficulty: Difficulty, rng: Optional[random.Random] = None) -> Question:
    """Build one multiple-choice arithmetic question for ``difficulty``."""
    rng = rng or random.Random()
    difficulty = Difficulty(difficulty)

    templates = QUESTION_TEMPLATES[difficulty]
    template = templates[rng.randrange(len(templates))]

    left, right, result = draw_operands(template, rng)
    correct_answer = str(result)
    options = shuffle([correct_answer] + make_distractors(result, rng), rng)

    return Question(
        id=str(uuid4()),
        prompt=f"{left} {OPERATOR_SYMBOLS[template.op]} {right} = ?",
        correct_answer=correct_answer,
        options=tuple(options),
        operator=template.op,
        left=left,
        right=right,
    )
