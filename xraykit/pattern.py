"""Simple wildcard matching.

Patterns may contain fixed text and the special characters ``*`` (zero or
more characters) and ``?`` (exactly one character).
"""

__all__ = ["wildcard_match", "wildcard_match_case_insensitive"]


def wildcard_match_case_insensitive(pattern: str, text: str) -> bool:
    """Return True if ``text`` matches ``pattern``, ignoring case."""
    return wildcard_match(pattern, text, True)


def wildcard_match(pattern: str, text: str, case_insensitive: bool) -> bool:
    """Return True if ``text`` matches ``pattern`` at the given case sensitivity."""
    if not pattern:
        return not text
    if pattern == "*":
        return True

    if case_insensitive:
        pattern = pattern.lower()
        text = text.lower()

    pattern_len = len(pattern)
    text_len = len(text)
    i = 0
    p = 0
    i_star = text_len
    p_star = 0

    while i < text_len:
        if p < pattern_len:
            current = pattern[p]
            if current == text[i] or current == "?":
                i += 1
                p += 1
                continue
            if current == "*":
                i_star = i
                p_star = p
                p += 1
                continue
        if i_star == text_len:
            return False
        i_star += 1
        i = i_star
        p = p_star + 1

    while p < pattern_len and pattern[p] == "*":
        p += 1

    return p == pattern_len and i == text_len