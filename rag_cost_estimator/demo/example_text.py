"""
Filler text for illustrating a conversation's shape.

The generated words carry no meaning; only their counts matter.
"""

import random
from dataclasses import dataclass
from typing import List, Optional


LOREM_WORDS = [
    'lorem', 'ipsum', 'dolor', 'sit', 'amet', 'consectetur', 'adipiscing', 'elit',
    'sed', 'do', 'eiusmod', 'tempor', 'incididunt', 'ut', 'labore', 'et', 'dolore',
    'magna', 'aliqua', 'enim', 'ad', 'minim', 'veniam', 'quis', 'nostrud', 'exercitation'
]


@dataclass(frozen=True)
class Conversation:
    """One exchange: a user query, its retrieved chunks and the response."""
    user_query: str
    chunks: List[str]
    response: str


def generate_random_text(word_count: int, rng: Optional[random.Random] = None) -> str:
    """Join word_count words drawn uniformly, with replacement, from LOREM_WORDS."""
    rng = rng or random
    return ' '.join(rng.choice(LOREM_WORDS) for _ in range(max(int(word_count), 0)))


def generate_conversation(
    messages_count: int,
    user_query_words: int,
    chunks_per_query: int,
    words_per_chunk: int,
    response_words: int,
    rng: Optional[random.Random] = None
) -> List[Conversation]:
    """Generate an example conversation with the given shape."""
    conversation = []
    for _ in range(max(int(messages_count), 0)):
        conversation.append(Conversation(
            user_query=generate_random_text(user_query_words, rng),
            chunks=[
                generate_random_text(words_per_chunk, rng)
                for _ in range(max(int(chunks_per_query), 0))
            ],
            response=generate_random_text(response_words, rng)
        ))
    return conversation
