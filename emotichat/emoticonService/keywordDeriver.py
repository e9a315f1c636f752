import re
from typing import List

MAX_SUBSTRING_LENGTH = 6
MIN_SUBSTRING_LENGTH = 2

_EXTENSION_RE = re.compile(r"\.(?:jpe?g|png|gif|webp)$", re.IGNORECASE)
# letters, digits, whitespace and CJK Unified Ideographs survive
_NOISE_RE = re.compile(r"[^\w\s\u4e00-\u9fff]|_")
# "2.0版", "3版" ... after cleaning the dot is already gone, so both shapes are covered
_VERSION_RE = re.compile(r"\d+(?:\.\d+)?版")


def clean_token(token: str) -> str:
    stem = _EXTENSION_RE.sub("", token.strip())
    return _NOISE_RE.sub("", stem).strip()


def derive_variations(token: str) -> List[str]:
    """Candidate search keywords for a placeholder token, most specific first.

    The full cleaned token comes first, then the version-stripped form, then
    every contiguous substring from length min(len, 6) down to 2, longer and
    earlier substrings first.
    """
    cleaned = clean_token(token)
    if not cleaned:
        return []

    candidates = [cleaned]

    without_version = _VERSION_RE.sub("", cleaned).strip()
    if without_version and without_version != cleaned:
        candidates.append(without_version)

    max_len = min(len(cleaned), MAX_SUBSTRING_LENGTH)
    for length in range(max_len, MIN_SUBSTRING_LENGTH - 1, -1):
        for start in range(0, len(cleaned) - length + 1):
            piece = cleaned[start:start + length].strip()
            if len(piece) >= MIN_SUBSTRING_LENGTH:
                candidates.append(piece)

    seen = set()
    variations = []
    for candidate in candidates:
        if candidate and candidate not in seen:
            seen.add(candidate)
            variations.append(candidate)
    return variations
