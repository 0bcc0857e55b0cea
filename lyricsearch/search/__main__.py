"""
lyricsearch.search.__main__
===========================

Command-line entry point for verse search.

Example
-------
    python -m lyricsearch.search "heartbreak on a summer night"
"""

from .semantic import main

if __name__ == "__main__":  # pragma: no cover
    main()
