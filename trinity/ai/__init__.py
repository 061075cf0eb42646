"""Computer players for Trinity.

Only a uniform random player is provided; it is used for self-play smoke
games from the CLI and as a baseline in tests.
"""

from .random_ai import RandomAI, play_random_game

__all__ = ["RandomAI", "play_random_game"]
