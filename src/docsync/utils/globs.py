"""Glob matching for repository-relative paths.

Patterns follow the usual shell conventions extended with ``**`` and brace
alternation: ``*`` and ``?`` stay inside one path segment, ``**`` spans zero
or more segments, ``[...]`` is a character class (``!`` or ``^`` negates) and
``{a,b}`` expands to alternatives. Dot-files are matched like any other name.
"""

from __future__ import annotations

import re
from functools import lru_cache
from typing import Iterable, Pattern


def _find_closing_brace(pattern: str, start: int) -> int:
    depth = 0
    for index in range(start, len(pattern)):
        char = pattern[index]
        if char == "{":
            depth += 1
        elif char == "}":
            depth -= 1
            if depth == 0:
                return index
    return -1


def _split_alternatives(body: str) -> list[str]:
    options: list[str] = []
    depth = 0
    current: list[str] = []
    for char in body:
        if char == "{":
            depth += 1
        elif char == "}":
            depth -= 1
        if char == "," and depth == 0:
            options.append("".join(current))
            current = []
            continue
        current.append(char)
    options.append("".join(current))
    return options


def expand_braces(pattern: str) -> list[str]:
    """Expand ``{a,b}`` groups into separate patterns, preserving order."""
    start = pattern.find("{")
    while start != -1:
        end = _find_closing_brace(pattern, start)
        if end == -1:
            return [pattern]
        options = _split_alternatives(pattern[start + 1 : end])
        if len(options) > 1:
            prefix, suffix = pattern[:start], pattern[end + 1 :]
            expanded: list[str] = []
            for option in options:
                expanded.extend(expand_braces(f"{prefix}{option}{suffix}"))
            return expanded
        start = pattern.find("{", end + 1)
    return [pattern]


def _translate_segment(segment: str) -> str:
    """Translate one path segment into a regular expression fragment."""
    output: list[str] = []
    index = 0
    length = len(segment)
    while index < length:
        char = segment[index]
        index += 1
        if char == "*":
            while index < length and segment[index] == "*":
                index += 1
            output.append("[^/]*")
        elif char == "?":
            output.append("[^/]")
        elif char == "[":
            close = index
            if close < length and segment[close] in "!^":
                close += 1
            if close < length and segment[close] == "]":
                close += 1
            while close < length and segment[close] != "]":
                close += 1
            if close >= length:
                output.append("\\[")
                continue
            body = segment[index:close].replace("\\", "\\\\")
            index = close + 1
            if body and body[0] in "!^":
                body = "^/" + body[1:]
            output.append(f"[{body}]")
        elif char == "\\" and index < length:
            output.append(re.escape(segment[index]))
            index += 1
        else:
            output.append(re.escape(char))
    return "".join(output)


def translate(pattern: str) -> str:
    """Translate a brace-free glob into an anchored regular expression."""
    clean = pattern.strip()
    while clean.startswith("./"):
        clean = clean[2:]
    segments = clean.split("/")
    last = len(segments) - 1
    pieces: list[str] = []
    for position, segment in enumerate(segments):
        if segment == "**":
            if position == last:
                pieces.append(".*")
            else:
                pieces.append("(?:[^/]+/)*")
            continue
        pieces.append(_translate_segment(segment))
        if position != last:
            pieces.append("/")
    return "^" + "".join(pieces) + "$"


@lru_cache(maxsize=256)
def compile_glob(pattern: str) -> tuple[Pattern[str], ...]:
    """Compile ``pattern`` (braces expanded) into a tuple of regexes."""
    return tuple(re.compile(translate(option)) for option in expand_braces(pattern))


def _normalise_path(path: str) -> str:
    clean = path.strip().replace("\\", "/")
    while clean.startswith("./"):
        clean = clean[2:]
    return clean


def glob_match(path: str, pattern: str) -> bool:
    """Return ``True`` when ``path`` matches ``pattern``."""
    candidate = _normalise_path(path)
    return any(regex.match(candidate) for regex in compile_glob(pattern))


def filter_paths(paths: Iterable[str], pattern: str) -> list[str]:
    """Return the subset of ``paths`` matching ``pattern`` in input order."""
    return [path for path in paths if glob_match(path, pattern)]


__all__ = ["compile_glob", "expand_braces", "filter_paths", "glob_match", "translate"]
