"""Name and content conversion helpers shared by the sync engine and services."""

from __future__ import annotations

import json
import re

# Characters that cannot appear in a file name on at least one supported host.
_UNSAFE_CHARS = re.compile(r'[\\/:*?"<>|]')

# Note directories are named "<title>_<id>"; the greedy prefix makes the last
# "_<digits>" group the id.
_NOTE_DIR_PATTERN = re.compile(r"^(.*)_(\d+)$")

EMPTY_DOCUMENT = '{"ops":[{"insert":"\\n"}]}'


def sanitize_filename(name: str) -> str:
    """Replace characters that are illegal in file names with underscores."""
    return _UNSAFE_CHARS.sub("_", name)


def format_note_dir_name(title: str, note_id: str) -> str:
    return f"{sanitize_filename(title)}_{note_id}"


def parse_note_dir_name(name: str) -> tuple[str, str] | None:
    """
    Split a note directory name into (title, id).

    Args:
        name: Directory name, e.g. "Todo_1712345678901"

    Returns:
        (title, id) tuple, or None when the name does not carry an embedded id
    """
    match = _NOTE_DIR_PATTERN.match(name)
    if not match:
        return None
    return match.group(1), match.group(2)


def note_dir_has_id(name: str, note_id: str) -> bool:
    return name.endswith(f"_{note_id}")


def is_hidden(name: str) -> bool:
    return name.startswith(".")


def document_from_text(text: str) -> str:
    """Wrap plain text in a single-insert document."""
    return json.dumps({"ops": [{"insert": text + "\n"}]}, ensure_ascii=False)


def heading_document(title: str) -> str:
    """Document whose first line is ``title`` formatted as a level-1 heading."""
    ops = [
        {"insert": title},
        {"attributes": {"header": 1}, "insert": "\n"},
        {"insert": "\n"},
    ]
    return json.dumps({"ops": ops}, ensure_ascii=False)
