"""ezer: notes, puzzles and feedback that persist across agent sessions."""

__version__ = "0.1.0"
