"""Textual patches applied to the generated entry module before publishing."""

from __future__ import annotations

import re
from pathlib import Path
from typing import List, Optional, Tuple

from ..fsutil import read_text, write_text
from ..logging import get_logger

REQUIRE_TOKEN = "goog.require("
_REQUIRE_LINE = re.compile(r"^[ \t]*goog\.require\(", re.MULTILINE)
_PROVIDE_LINE = re.compile(r"^[ \t]*goog\.provide\(", re.MULTILINE)
_REQUIRE_STATEMENT = re.compile(r"goog\.require\(\s*['\"]([\w.$]+)['\"]\s*\);?")

_LOGGER = get_logger("patcher")


def append_export_symbol(text: str, project_name: str) -> str:
    """Keep the entry symbol reachable after optimizer renaming."""
    return (
        f"{text}\n\n// Ensures the symbol will be visible after compiler renaming.\n"
        f"goog.exportSymbol('{project_name}', {project_name});\n"
    )


def split_encoded_stylesheet(encoded: str) -> Tuple[str, List[str]]:
    """Separate the cssData array body from trailing goog.require statements."""
    index = encoded.find(REQUIRE_TOKEN)
    if index == -1:
        return encoded.rstrip(), []
    body = encoded[:index].rstrip()
    requires = [_terminate(match.group(0)) for match in _REQUIRE_STATEMENT.finditer(encoded[index:])]
    return body, requires


def stylesheet_requires(encoded: str) -> List[str]:
    """Symbols the encoded stylesheet will require once spliced into the entry module."""
    _, statements = split_encoded_stylesheet(encoded)
    names: List[str] = []
    for statement in statements:
        match = _REQUIRE_STATEMENT.match(statement)
        if match and match.group(1) not in names:
            names.append(match.group(1))
    return names


def inject_encoded_css(text: str, project_name: str, encoded: str) -> str:
    """Append the cssData assignment, splicing CSS requires before the first import."""
    body, requires = split_encoded_stylesheet(encoded)
    assignment = f"{project_name}.prototype.cssData = [{body}"
    if assignment in text:
        return text

    missing = [statement for statement in requires if statement not in text]
    marker = _REQUIRE_LINE.search(text)
    tail = f"\n\n{assignment}\n"
    if missing and marker is not None:
        block = "".join(f"{statement}\n" for statement in missing)
        text = f"{text[:marker.start()]}{block}{text[marker.start():]}"
    elif missing:
        tail = "\n" + "\n".join(missing) + tail
    return f"{text}{tail}"


def support_import_statement(qname: str) -> str:
    return f"goog.require('{qname}');"


def inject_support_import(text: str, qname: str) -> str:
    """Insert the runtime-support require after the last import, once."""
    statement = support_import_statement(qname)
    if statement in text:
        return text

    anchor = _last_match(_REQUIRE_LINE, text)
    if anchor is None:
        anchor = _last_match(_PROVIDE_LINE, text)
    if anchor is None:
        _LOGGER.debug("No goog.require/goog.provide anchor found; skipping %s import", qname)
        return text

    terminator = text.find(";", anchor)
    if terminator == -1:
        _LOGGER.debug("Anchor statement is unterminated; skipping %s import", qname)
        return text
    return f"{text[:terminator + 1]}\n{statement}{text[terminator + 1:]}"


class SourcePatcher:
    """Reads the entry module once, applies all patches and writes it back."""

    def patch(
        self,
        path: Path,
        *,
        project_name: str,
        encoded_stylesheet: str,
        support_qname: Optional[str] = None,
    ) -> str:
        text = read_text(path)
        text = append_export_symbol(text, project_name)
        text = inject_encoded_css(text, project_name, encoded_stylesheet)
        if support_qname:
            text = inject_support_import(text, support_qname)
        write_text(path, text)
        _LOGGER.debug("Patched entry module %s", path)
        return text


def _last_match(pattern: re.Pattern[str], text: str) -> Optional[int]:
    last = None
    for match in pattern.finditer(text):
        last = match.start()
    return last


def _terminate(statement: str) -> str:
    return statement if statement.endswith(";") else f"{statement};"


__all__ = [
    "SourcePatcher",
    "append_export_symbol",
    "inject_encoded_css",
    "inject_support_import",
    "split_encoded_stylesheet",
    "stylesheet_requires",
    "support_import_statement",
]
