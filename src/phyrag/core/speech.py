"""Voice-transcript cleanup: repair misheard product codes and domain terms before retrieval."""

import re
import logging
from typing import Dict, List, Pattern, Tuple

logger = logging.getLogger(__name__)

# Misrecognitions replaced verbatim.
TERM_CORRECTIONS: Dict[str, str] = {
    '852Q': '8522',
    '85二二': '8522',
    '85一二': '8512',
    '85三一': '8531',
    '80一零': '8010',
    '80一一': '8011',
    'T操': 'TX',
    'T叉': 'TX',
    'T差': 'TX',
    '踢叉': 'TX',
    '常料': '常亮',
    '闪说': '闪烁',
    '摆高': '百兆',
    '乌规': '车规',
    '开网': '以太网',
    '令次': 'link',
    '灵次': 'link',
    '另次': 'link',
    'AI地': 'LED',
    '爱的零': 'LED0',
    'ID零': 'LED0',
    'RGB米': 'RGMII',
}

# Short ASCII words only replaced when they stand alone.
WORD_CORRECTIONS: Dict[str, str] = {
    'fi': 'PHY',
    'fy': 'PHY',
    'sgmi': 'SGMII',
}

REGEX_RULES: List[Tuple[Pattern[str], str]] = [
    (re.compile(r'VT包[玩完]'), 'YT8522'),
    (re.compile(r'(?:YT|VT|WT)\s*(\d{4})', re.IGNORECASE), r'YT\1'),
    (re.compile(r'\b(85\d{2})\b', re.ASCII), r'YT\1'),
    (re.compile(r'\b(80\d{2}[A-Z]*)\b', re.ASCII), r'YT\1'),
    # YT8522link -> YT8522 link
    (re.compile(r'(YT\d{4}[A-Z]*)([a-z]+)'), r'\1 \2'),
    (re.compile(r'爱的\s*(\d+)'), r'LED\1'),
    (re.compile(r'LED零'), 'LED0'),
    (re.compile(r'LED一'), 'LED1'),
    (re.compile(r'link\s*不通', re.IGNORECASE), 'link不通'),
    (re.compile(r'ping\s*不通', re.IGNORECASE), 'ping不通'),
]


def _word_pattern(word: str) -> Pattern[str]:
    return re.compile(rf'(?<![A-Za-z0-9]){re.escape(word)}(?![A-Za-z0-9])', re.IGNORECASE)


_WORD_RULES = [(_word_pattern(w), r) for w, r in WORD_CORRECTIONS.items()]


def normalize_transcript(text: str) -> str:
    """
    Correct a speech-recognition transcript.

    1) verbatim term corrections
    2) standalone-word corrections
    3) regex rules (model codes, LED numbering, common phrases)
    4) whitespace normalization
    """
    corrected = text.strip()

    for wrong, right in TERM_CORRECTIONS.items():
        corrected = corrected.replace(wrong, right)

    for pattern, replacement in _WORD_RULES:
        corrected = pattern.sub(replacement, corrected)

    for pattern, replacement in REGEX_RULES:
        corrected = pattern.sub(replacement, corrected)

    corrected = re.sub(r'\s+', ' ', corrected).strip()

    if corrected != text.strip():
        logger.debug(f"Transcript corrected: '{text}' -> '{corrected}'")

    return corrected


def describe_corrections(original: str, corrected: str) -> List[str]:
    """Human-readable list of word-level changes for display."""
    if original == corrected:
        return []

    original_words = original.split()
    corrected_words = corrected.split()

    if len(original_words) != len(corrected_words):
        return ["transcript optimized"]

    return [
        f'"{before}" -> "{after}"'
        for before, after in zip(original_words, corrected_words)
        if before != after
    ]
