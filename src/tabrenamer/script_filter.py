# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Unicode script detection for tab titles.

The word tokenizer assumes Latin-alphabet word boundaries.  Titles written
in Hebrew, Arabic, Han, Kana or Cyrillic tokenize to nothing useful (or to
a stray Latin brand name), so label derivation asks this module first and
falls back to URL path segments for such titles.
"""

from __future__ import annotations

import bisect
from enum import Enum, auto


class Script(Enum):
    LATIN = auto()
    HAN = auto()
    HIRAGANA = auto()
    KATAKANA = auto()
    CYRILLIC = auto()
    ARABIC = auto()
    HEBREW = auto()
    COMMON = auto()  # digits, punctuation, whitespace
    UNKNOWN = auto()


# Unicode ranges → Script mapping, sorted by start codepoint.
_RANGES: list[tuple[int, int, Script]] = sorted(
    [
        (0x0000, 0x0040, Script.COMMON),  # control + digits + basic punct
        (0x0041, 0x005A, Script.LATIN),  # A-Z
        (0x005B, 0x0060, Script.COMMON),
        (0x0061, 0x007A, Script.LATIN),  # a-z
        (0x007B, 0x00BF, Script.COMMON),
        (0x00C0, 0x024F, Script.LATIN),  # Latin Extended-A/B
        (0x0400, 0x04FF, Script.CYRILLIC),
        (0x0500, 0x052F, Script.CYRILLIC),  # Cyrillic Supplement
        (0x0590, 0x05FF, Script.HEBREW),
        (0x0600, 0x06FF, Script.ARABIC),
        (0x0750, 0x077F, Script.ARABIC),  # Arabic Supplement
        (0x0870, 0x089F, Script.ARABIC),  # Arabic Extended-B
        (0x08A0, 0x08FF, Script.ARABIC),  # Arabic Extended-A
        (0x1C80, 0x1C8F, Script.CYRILLIC),  # Cyrillic Extended-C
        (0x1E00, 0x1EFF, Script.LATIN),  # Latin Extended Additional
        (0x2000, 0x206F, Script.COMMON),  # General Punctuation
        (0x20A0, 0x20CF, Script.COMMON),  # Currency Symbols
        (0x2DE0, 0x2DFF, Script.CYRILLIC),  # Cyrillic Extended-A
        (0x2E80, 0x2FDF, Script.HAN),  # CJK Radicals, Kangxi Radicals
        # CJK symbols & punctuation, with the ideographic iteration mark,
        # the ideographic zero and the Hangzhou numerals carved out as Han.
        (0x3000, 0x3004, Script.COMMON),
        (0x3005, 0x3005, Script.HAN),  # 々
        (0x3006, 0x3006, Script.COMMON),
        (0x3007, 0x3007, Script.HAN),  # 〇
        (0x3008, 0x3020, Script.COMMON),
        (0x3021, 0x3029, Script.HAN),
        (0x302A, 0x3037, Script.COMMON),
        (0x3038, 0x303B, Script.HAN),
        (0x303C, 0x303F, Script.COMMON),
        (0x3041, 0x3096, Script.HIRAGANA),
        (0x3099, 0x309C, Script.COMMON),  # combining and spacing sound marks
        (0x309D, 0x309F, Script.HIRAGANA),
        (0x30A0, 0x30A0, Script.COMMON),
        (0x30A1, 0x30FA, Script.KATAKANA),
        (0x30FB, 0x30FC, Script.COMMON),  # middle dot, prolonged sound mark
        (0x30FD, 0x30FF, Script.KATAKANA),
        (0x31F0, 0x31FF, Script.KATAKANA),  # Katakana Phonetic Extensions
        (0x32D0, 0x32FE, Script.KATAKANA),  # circled Katakana
        (0x3300, 0x3357, Script.KATAKANA),  # squared Katakana words
        (0x3400, 0x4DBF, Script.HAN),  # CJK Extension A
        (0x4E00, 0x9FFF, Script.HAN),  # CJK Unified Ideographs
        (0xA640, 0xA69F, Script.CYRILLIC),  # Cyrillic Extended-B
        (0xF900, 0xFAFF, Script.HAN),  # CJK Compatibility Ideographs
        (0xFB1D, 0xFB4F, Script.HEBREW),  # Hebrew presentation forms
        (0xFB50, 0xFDFF, Script.ARABIC),  # Arabic Presentation Forms-A
        (0xFE70, 0xFEFF, Script.ARABIC),  # Arabic Presentation Forms-B
        (0xFF01, 0xFF20, Script.COMMON),  # Fullwidth punctuation + digits
        (0xFF66, 0xFF6F, Script.KATAKANA),  # Halfwidth Katakana
        (0xFF70, 0xFF70, Script.COMMON),  # halfwidth prolonged sound mark
        (0xFF71, 0xFF9D, Script.KATAKANA),
        (0xFF9E, 0xFF9F, Script.COMMON),  # halfwidth sound marks
        (0x10E60, 0x10E7E, Script.ARABIC),  # Rumi Numeral Symbols
        (0x10EC0, 0x10EFF, Script.ARABIC),  # Arabic Extended-C
        (0x16FF0, 0x16FF1, Script.HAN),  # Vietnamese reading marks
        (0x1AFF0, 0x1AFFE, Script.KATAKANA),  # Kana Extended-B
        (0x1B000, 0x1B000, Script.KATAKANA),
        (0x1B001, 0x1B11F, Script.HIRAGANA),  # Kana Supplement, Kana Extended-A
        (0x1B120, 0x1B122, Script.KATAKANA),
        (0x1B132, 0x1B132, Script.HIRAGANA),  # Small Kana Extension
        (0x1B150, 0x1B152, Script.HIRAGANA),
        (0x1B155, 0x1B155, Script.KATAKANA),
        (0x1B164, 0x1B167, Script.KATAKANA),
        (0x1E030, 0x1E08F, Script.CYRILLIC),  # Cyrillic Extended-D
        (0x1EE00, 0x1EEFF, Script.ARABIC),  # Arabic Mathematical Alphabetic Symbols
        (0x1F200, 0x1F200, Script.HIRAGANA),  # squared hiragana hoka
        (0x20000, 0x2A6DF, Script.HAN),  # CJK Extension B
        (0x2A700, 0x2EE5F, Script.HAN),  # CJK Extensions C-F, I
        (0x2F800, 0x2FA1F, Script.HAN),  # CJK Compatibility Ideographs Supplement
        (0x30000, 0x323AF, Script.HAN),  # CJK Extensions G-H
    ],
    key=lambda r: r[0],
)

_STARTS = [r[0] for r in _RANGES]

NON_LATIN_SCRIPTS: frozenset[Script] = frozenset(
    {Script.HEBREW, Script.ARABIC, Script.HAN, Script.HIRAGANA, Script.KATAKANA, Script.CYRILLIC}
)


def classify_char(cp: int) -> Script:
    """Classify a Unicode codepoint to a Script. O(log k)."""
    if cp > 0x10FFFF:
        return Script.UNKNOWN
    idx = bisect.bisect_right(_STARTS, cp) - 1
    if idx >= 0 and _RANGES[idx][0] <= cp <= _RANGES[idx][1]:
        return _RANGES[idx][2]
    return Script.UNKNOWN


def has_non_latin_script(text: str) -> bool:
    """True as soon as one character belongs to a script without Latin word boundaries."""
    return any(classify_char(ord(ch)) in NON_LATIN_SCRIPTS for ch in text)
