"""
Token counting and word/token conversion.

Approximates token volumes from word counts with a fixed ratio instead of a
real tokenizer.
"""

import math
from dataclasses import dataclass


# Tokens per word
WORDS_TO_TOKENS_RATIO = 1.33


@dataclass(frozen=True)
class TokenUsage:
    """Token volume of a single message.
    
    Prompt tokens cover everything sent to the model (retrieved chunks,
    the user query and carried conversation history); completion tokens
    cover the model response.
    """
    prompt_tokens: float
    completion_tokens: float
    
    @property
    def total_tokens(self) -> float:
        """Total tokens used (prompt + completion)."""
        return self.prompt_tokens + self.completion_tokens


def words_to_tokens(words: float) -> float:
    """Convert a word count to an approximate token count.
    
    Args:
        words: Number of words, any real number
        
    Returns:
        ceil(words * 1.33), or 0 for words <= 0. NaN and +inf are
        returned unchanged.
    """
    if words <= 0:
        return 0
    if not math.isfinite(words):
        return words
    return math.ceil(words * WORDS_TO_TOKENS_RATIO)


def tokens_to_words(tokens: float) -> float:
    """Convert a token count back to an approximate word count.
    
    Not an exact inverse of words_to_tokens: both directions round up,
    so a round trip can overshoot the original word count.
    """
    if tokens <= 0:
        return 0
    if not math.isfinite(tokens):
        return tokens
    return math.ceil(tokens / WORDS_TO_TOKENS_RATIO)
