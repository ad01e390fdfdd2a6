import random
from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple

from .errors import InsufficientQuestions


@dataclass(frozen=True)
class QuestionItem:
    prompt: str
    options: Tuple[str, ...]
    correct_answer: str

    def __post_init__(self):
        if len(self.options) != 4:
            raise ValueError(f'Question {self.prompt!r} must have exactly four options')
        if self.correct_answer not in self.options:
            raise ValueError(f'Correct answer for {self.prompt!r} is not one of its options')


def _item(prompt, options, correct_answer):
    return QuestionItem(prompt=prompt, options=tuple(options), correct_answer=correct_answer)


DEFAULT_CATALOG = (
    _item("What is the capital of France?", ["London", "Berlin", "Paris", "Madrid"], "Paris"),
    _item("What is 2 + 2?", ["3", "4", "5", "6"], "4"),
    _item("Which planet is known as the Red Planet?", ["Venus", "Mars", "Jupiter", "Saturn"], "Mars"),
    _item("What is the largest ocean on Earth?",
          ["Atlantic Ocean", "Indian Ocean", "Arctic Ocean", "Pacific Ocean"], "Pacific Ocean"),
    _item("Who painted the Mona Lisa?",
          ["Vincent van Gogh", "Pablo Picasso", "Leonardo da Vinci", "Michelangelo"], "Leonardo da Vinci"),
    _item("What is the chemical symbol for gold?", ["Ag", "Fe", "Au", "Cu"], "Au"),
    _item("In which year did World War II end?", ["1944", "1945", "1946", "1947"], "1945"),
    _item("What is the smallest country in the world?",
          ["Monaco", "Vatican City", "San Marino", "Liechtenstein"], "Vatican City"),
    _item("What is the speed of light?",
          ["299,792,458 m/s", "150,000,000 m/s", "1,000,000,000 m/s", "500,000,000 m/s"], "299,792,458 m/s"),
    _item("Who wrote 'Romeo and Juliet'?",
          ["Charles Dickens", "William Shakespeare", "Jane Austen", "Mark Twain"], "William Shakespeare"),
)


class QuestionBank:
    """Fixed catalog of trivia items handed out to new matches."""

    def __init__(self, items: Sequence[QuestionItem] = DEFAULT_CATALOG):
        self._items = tuple(items)

    def __len__(self):
        return len(self._items)

    def draw_question_set(self, n: int, rng: Optional[random.Random] = None) -> List[QuestionItem]:
        """Return ``n`` distinct items in a random presentation order."""
        if n < 0:
            raise ValueError('n must be non-negative')
        if n > len(self._items):
            raise InsufficientQuestions(n, len(self._items))
        return (rng or random).sample(self._items, n)
