"""PGN tokenizing and serialization helpers."""

from __future__ import annotations

import re
from collections.abc import Iterable, Mapping
from types import MappingProxyType

from chessreview.core.notation.models import TokenizedGame
from chessreview.errors import InvalidInputError

PGN_RESULT_TOKENS = frozenset({"1-0", "0-1", "1/2-1/2", "*"})

_PGN_HEADER_RE = re.compile(r'^[ \t]*\[(\w+)\s+"((?:[^"\\]|\\.)*)"\][ \t]*$', re.M)
_ESCAPE_LINE_RE = re.compile(r"^%.*$", re.M)
_BRACE_COMMENT_RE = re.compile(r"\{[^}]*\}")
_LINE_COMMENT_RE = re.compile(r";[^\n]*")
_NAG_RE = re.compile(r"\$\d+")
_VARIATION_RE = re.compile(r"\([^()]*\)")
_MOVE_NUMBER_RE = re.compile(r"^\d+\.(?:\.\.)?$")
_GLUED_MOVE_NUMBER_RE = re.compile(r"^\d+\.+")
_ZERO_WIDTH_RE = re.compile("[\u200b-\u200d\ufeff]")
_ELLIPSES = frozenset({".", "..", "..."})


def normalize_game_text(raw_text: str) -> str:
    """Normalize line endings and strip web-copy artefacts."""
    text = raw_text.replace("\r\n", "\n").replace("\r", "\n")
    text = text.replace("&nbsp;", " ").replace("\u00a0", " ")
    return _ZERO_WIDTH_RE.sub("", text)


def _unescape(value: str) -> str:
    return value.replace('\\"', '"').replace("\\\\", "\\")


def _strip_variations(text: str) -> str:
    # Innermost first, until no balanced pair remains.
    while True:
        stripped = _VARIATION_RE.sub(" ", text)
        if stripped == text:
            return stripped
        text = stripped


def _split_headers(text: str) -> tuple[dict[str, str], str]:
    headers: dict[str, str] = {}
    for match in _PGN_HEADER_RE.finditer(text):
        key, raw_value = match.groups()
        headers[key] = _unescape(raw_value)
    return headers, _PGN_HEADER_RE.sub("", text)


def _movetext_tokens(movetext: str) -> tuple[list[str], str]:
    text = _ESCAPE_LINE_RE.sub(" ", movetext)
    text = _BRACE_COMMENT_RE.sub(" ", text)
    text = _LINE_COMMENT_RE.sub(" ", text)
    text = _NAG_RE.sub(" ", text)
    text = _strip_variations(text)

    tokens: list[str] = []
    result_token = "*"
    for word in text.split():
        if word in PGN_RESULT_TOKENS:
            result_token = word
            break
        if _MOVE_NUMBER_RE.match(word) or word in _ELLIPSES:
            continue
        word = _GLUED_MOVE_NUMBER_RE.sub("", word)
        if word:
            tokens.append(word)
    else:
        result_token = ""
    return tokens, result_token


def tokenize(raw_text: str) -> TokenizedGame:
    """Split raw game text into header tags and ordered mainline move tokens.

    Comments, numeric annotation glyphs, variations (nested included) and
    move numbers are dropped. Tokenizing stops at the first result token.

    Raises:
        InvalidInputError: when no move tokens remain after cleanup.
    """
    text = normalize_game_text(raw_text or "")
    headers, movetext = _split_headers(text)
    tokens, result_token = _movetext_tokens(movetext)
    if not tokens:
        raise InvalidInputError("Game text contains no moves")

    if not result_token:
        header_result = headers.get("Result")
        result_token = header_result if header_result in PGN_RESULT_TOKENS else "*"

    return TokenizedGame(
        headers=MappingProxyType(headers),
        tokens=tuple(tokens),
        result_token=result_token,
    )


def pgn_movetext(tokens: Iterable[str], result_token: str = "*") -> str:
    """Build PGN movetext with move numbers from mainline tokens."""
    parts: list[str] = []
    for ply, token in enumerate(tokens):
        if ply % 2 == 0:
            parts.append(f"{(ply // 2) + 1}.")
        parts.append(token)
    parts.append(result_token)
    return " ".join(parts)


def build_pgn(
    headers: Mapping[str, str],
    tokens: Iterable[str],
    result_token: str = "*",
) -> str:
    """Build a minimal single-game PGN document."""
    lines: list[str] = []
    for key, value in headers.items():
        escaped = value.replace("\\", "\\\\").replace('"', '\\"')
        lines.append(f'[{key} "{escaped}"]')
    if lines:
        lines.append("")
    lines.append(pgn_movetext(tokens, result_token))
    lines.append("")
    return "\n".join(lines)
