"""Turning Avro names into Rust identifiers."""

from __future__ import annotations

from typing import Iterator, List

RESERVED = frozenset(
    {
        "Self", "abstract", "as", "async", "await", "become", "box", "break", "const",
        "continue", "crate", "do", "dyn", "else", "enum", "extern", "false", "final", "fn",
        "for", "if", "impl", "in", "let", "loop", "macro", "match", "mod", "move", "mut",
        "override", "priv", "pub", "ref", "return", "self", "static", "struct", "super",
        "trait", "true", "try", "type", "typeof", "union", "unsafe", "unsized", "use",
        "virtual", "where", "while", "yield",
    }
)

UNESCAPABLE = frozenset({"Self", "self", "super", "extern", "crate"})


def sanitize(name: str) -> str:
    """Escape a Rust keyword as a raw identifier, suffixing those that cannot be raw."""
    if name not in RESERVED:
        return name
    if name in UNESCAPABLE:
        name += "_"
    return "r#" + name


def _chunks(text: str) -> Iterator[str]:
    """Split text on non-alphanumeric characters."""
    current: List[str] = []
    for char in text:
        if char.isalnum():
            current.append(char)
        elif current:
            yield "".join(current)
            current = []
    if current:
        yield "".join(current)


def _words(text: str) -> Iterator[str]:
    """Yield the words of text, splitting on separators and case changes."""
    for chunk in _chunks(text):
        start = 0
        mode = None  # "lower", "upper" or None at a boundary
        for i, char in enumerate(chunk):
            if i + 1 == len(chunk):
                yield chunk[start:]
                break
            nxt = chunk[i + 1]
            if char.islower():
                next_mode = "lower"
            elif char.isupper():
                next_mode = "upper"
            else:
                next_mode = mode
            if next_mode == "lower" and nxt.isupper():
                yield chunk[start : i + 1]
                start = i + 1
                mode = None
            elif mode == "upper" and char.isupper() and nxt.islower():
                yield chunk[start:i]
                start = i
                mode = None
            else:
                mode = next_mode


def to_snake_case(text: str) -> str:
    """Lower-case words joined by underscores."""
    return "_".join(word.lower() for word in _words(text))


def to_upper_camel_case(text: str) -> str:
    """Capitalized words joined together."""
    return "".join(word[0].upper() + word[1:].lower() for word in _words(text))