"""Trinity rules engine.

Board storage, trinity detection, the authoritative game state and the
controller that drives a full game on top of it.
"""

__version__ = "0.1.0"
