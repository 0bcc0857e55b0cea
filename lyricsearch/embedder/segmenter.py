"""
Verse segmentation for the embedder.

This module splits raw song lyrics into verse-sized excerpts worth
embedding. Genius-style lyrics separate stanzas with blank lines and
label sections with bracketed tags such as ``[Chorus]`` on their own
line; both are treated as verse boundaries.

The segmentation process:
1. Splits the lyrics on blank lines and on section-tag lines
2. Drops fragments shorter than ``min_tokens`` whitespace-delimited tokens
3. Trims surrounding whitespace
4. Drops repeats: a verse whose first ``prefix_tokens`` normalized tokens
   match an earlier verse of the same song is skipped (repeated choruses)

Example:
    ```python
    segmenter = VerseSegmenter()
    verses = segmenter.segment(song.lyrics)

    # Or through the module-level helper
    verses = segment(song.lyrics)
    ```
"""
import re
from typing import List

from lyricsearch.config.settings import SEGMENTER_CONFIG

# A blank line, or a line holding nothing but a [Section] tag
VERSE_BOUNDARY = re.compile(r"\n\s*\n|^[ \t]*\[[^\]\n]*\][ \t]*$", re.MULTILINE)
PUNCTUATION = re.compile(r"[^\w\s]")


class VerseSegmenter:
    """
    Splits lyrics into unique, sufficiently long verses.

    Instances hold no state besides their thresholds, so ``segment`` is
    deterministic and safe to call repeatedly.

    Attributes:
        min_tokens: Minimum number of tokens a verse must have
        prefix_tokens: Number of normalized leading tokens compared for dedup
    """

    def __init__(
        self,
        min_tokens: int = SEGMENTER_CONFIG["min_tokens"],
        prefix_tokens: int = SEGMENTER_CONFIG["prefix_tokens"],
    ):
        """
        Initialize the segmenter with its thresholds.

        Example:
            >>> segmenter = VerseSegmenter(min_tokens=17, prefix_tokens=16)
            >>> segmenter.min_tokens
            17
        """
        self.min_tokens = min_tokens
        self.prefix_tokens = prefix_tokens

    def dedup_key(self, verse: str) -> str:
        """
        Normalized prefix used to spot repeated verses.

        Example:
            >>> VerseSegmenter(prefix_tokens=3).dedup_key("Hey, YOU! Over there")
            'hey you over'
        """
        words = PUNCTUATION.sub("", verse.lower()).split()
        return " ".join(words[: self.prefix_tokens])

    def segment(self, lyrics: str) -> List[str]:
        """
        Split lyrics into verses in order of first appearance.

        Args:
            lyrics: Raw lyrics text

        Returns:
            Unique verses with at least ``min_tokens`` tokens; may be empty

        Example:
            >>> segmenter = VerseSegmenter(min_tokens=3, prefix_tokens=2)
            >>> segmenter.segment("[Verse]\\nla la la\\n\\nLa, la la!\\n\\nhi")
            ['la la la']
        """
        if not lyrics:
            return []

        verses = []
        seen = set()
        for part in VERSE_BOUNDARY.split(lyrics):
            if len(part.split()) < self.min_tokens:
                continue
            verse = part.strip()
            key = self.dedup_key(verse)
            if key in seen:
                continue
            seen.add(key)
            verses.append(verse)
        return verses


_default = VerseSegmenter()


def segment(lyrics: str) -> List[str]:
    """Segment ``lyrics`` with the configured thresholds."""
    return _default.segment(lyrics)
