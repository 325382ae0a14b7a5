"""handlers/__init__.py — re-export handler functions for convenience."""
from .completion import get_completions
from .folding import get_folding_ranges

__all__ = ['get_completions', 'get_folding_ranges']
