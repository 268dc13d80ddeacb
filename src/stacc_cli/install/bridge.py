"""Configuration Format Bridge.

Transforms a server-registry document (JSON text mapping server name to
{command, args, type, url}) for the different host schemas: filtered,
merged, wrapped under a namespace key, or projected to a sectioned
key/value text file.

Two interchangeable strategies implement the same interface:

- JqBridge runs the `jq` executable as a subprocess.
- TextScanBridge scans the JSON text itself, tracking string and brace
  depth to find member boundaries.

select_bridge() checks once at startup and picks one. Both emit jq-style
output (two-space indent, trailing newline) so either can write the same
files.
"""

from __future__ import annotations

import json
import math
import re
import shutil
import subprocess
import sys
from abc import ABC, abstractmethod
from collections.abc import Collection
from decimal import Decimal

from ..errors import SourceEnvironmentError
from ..shared.logging import get_logger

logger = get_logger(__name__)

SECTION_PREFIX = "mcp_servers"
SECTION_FIELDS = ("command", "args", "type", "url")

_BARE_KEY = re.compile(r"[A-Za-z0-9_-]+")


class RegistryFormatError(ValueError):
    """A registry document could not be read or transformed."""


class RegistryBridge(ABC):
    """Operations over registry documents held as JSON text."""

    name = "abstract"

    @abstractmethod
    def keys(self, doc: str) -> list[str]:
        """Top-level keys of doc, in document order."""

    @abstractmethod
    def extract_subset(self, doc: str, selected_keys: Collection[str]) -> str:
        """Keep only entries whose key is selected; empty selection keeps doc as is."""

    @abstractmethod
    def unwrap_key(self, doc: str, key: str) -> str:
        """Return the object stored under key, or doc itself when absent."""

    @abstractmethod
    def wrap_under_key(self, doc: str, key: str) -> str:
        """Nest the whole document one level deeper under key."""

    @abstractmethod
    def to_sectioned_text(self, doc: str) -> str:
        """Project each entry to a [mcp_servers.<name>] section of field = value lines."""

    @abstractmethod
    def _merge_documents(self, existing: str, incoming: str) -> str: ...

    def merge_documents(self, existing: str, incoming: str) -> str:
        """Recursively merge objects; incoming wins, arrays are replaced wholesale."""
        if not existing.strip():
            existing = "{}"
        return self._merge_documents(existing, incoming)

    def merge_into_sectioned_text(
        self,
        existing_text: str,
        incoming: str,
        keys_to_replace: Collection[str],
    ) -> str:
        """Drop the named sections from existing_text and append fresh ones.

        Sections that are not named are kept byte for byte.
        """
        kept = remove_sections(existing_text, keys_to_replace)
        return append_sections(kept, self.to_sectioned_text(incoming))


# =============================================================================
# jq strategy
# =============================================================================

SUBSET_PROGRAM = "with_entries(select(.key as $k | any($keys[]; . == $k)))"
UNWRAP_PROGRAM = (
    'if type == "object" and has($key) and (.[$key] | type) == "object" then .[$key] else . end'
)
WRAP_PROGRAM = "{($key): .}"
MERGE_PROGRAM = ".[0] * .[1]"
KEYS_PROGRAM = "keys_unsorted"
SECTIONS_PROGRAM = (
    "to_entries[]"
    ' | "[' + SECTION_PREFIX + '.\\(.key'
    ' | if test("\\\\A[A-Za-z0-9_-]+\\\\z") then . else tojson end)]",'
    " (.value | objects | . as $v"
    ' | ("command", "args", "type", "url")'
    " | select($v[.] != null)"
    ' | "\\(.) = \\($v[.] | tojson)"),'
    ' ""'
)
# Applied before every program so numbers print the same on every jq release.
CANONICAL_NUMBERS = (
    'def canon: if type == "object" then map_values(canon)'
    ' elif type == "array" then map(canon)'
    ' elif type == "number" then . + 0 else . end; canon | '
)


class JqBridge(RegistryBridge):
    """Bridge backed by the jq executable."""

    name = "jq"

    def __init__(self, executable: str = "jq", timeout: float = 30.0):
        self.executable = executable
        self.timeout = timeout

    def _run(self, program: str, doc: str, *args: str) -> str:
        cmd = [self.executable, *args, CANONICAL_NUMBERS + program]
        try:
            result = subprocess.run(
                cmd,
                input=doc,
                capture_output=True,
                text=True,
                timeout=self.timeout,
            )
        except subprocess.TimeoutExpired as e:
            raise RegistryFormatError("jq did not respond (timeout)") from e
        if result.returncode != 0:
            raise RegistryFormatError(f"jq failed: {result.stderr.strip()}")
        return result.stdout

    def keys(self, doc: str) -> list[str]:
        return json.loads(self._run(KEYS_PROGRAM, doc, "-c"))

    def extract_subset(self, doc: str, selected_keys: Collection[str]) -> str:
        if not selected_keys:
            return doc
        return self._run(SUBSET_PROGRAM, doc, "--argjson", "keys", json.dumps(list(selected_keys)))

    def unwrap_key(self, doc: str, key: str) -> str:
        return self._run(UNWRAP_PROGRAM, doc, "--arg", "key", key)

    def wrap_under_key(self, doc: str, key: str) -> str:
        return self._run(WRAP_PROGRAM, doc, "--arg", "key", key)

    def to_sectioned_text(self, doc: str) -> str:
        return self._run(SECTIONS_PROGRAM, doc, "-r")

    def _merge_documents(self, existing: str, incoming: str) -> str:
        return self._run(MERGE_PROGRAM, existing + "\n" + incoming, "-s")


# =============================================================================
# Text-scanning strategy
# =============================================================================

_WHITESPACE = " \t\r\n"
_DELIMITERS = ",:}]" + _WHITESPACE
_ESCAPES = {
    '"': '"',
    "\\": "\\",
    "/": "/",
    "b": "\b",
    "f": "\f",
    "n": "\n",
    "r": "\r",
    "t": "\t",
}
_ENCODE = {
    '"': '\\"',
    "\\": "\\\\",
    "\b": "\\b",
    "\f": "\\f",
    "\n": "\\n",
    "\r": "\\r",
    "\t": "\\t",
}


def _char(text: str, i: int) -> str:
    return text[i] if i < len(text) else ""


def _skip_ws(text: str, i: int) -> int:
    while i < len(text) and text[i] in _WHITESPACE:
        i += 1
    return i


def _scan_string(text: str, i: int) -> int:
    """Index just past the string starting at text[i] == '"'."""
    i += 1
    while i < len(text):
        ch = text[i]
        if ch == "\\":
            i += 2
            continue
        if ch == '"':
            return i + 1
        i += 1
    raise RegistryFormatError("unterminated string")


def _scan_value(text: str, i: int) -> int:
    """Index just past the JSON value starting at text[i]."""
    ch = _char(text, i)
    if ch == '"':
        return _scan_string(text, i)
    if ch in ("{", "["):
        depth = 0
        while i < len(text):
            ch = text[i]
            if ch == '"':
                i = _scan_string(text, i)
                continue
            if ch in "{[":
                depth += 1
            elif ch in "}]":
                depth -= 1
                if depth == 0:
                    return i + 1
            i += 1
        raise RegistryFormatError("unbalanced braces")
    start = i
    while i < len(text) and text[i] not in _DELIMITERS:
        i += 1
    if i == start:
        raise RegistryFormatError(f"unexpected {ch!r} at offset {i}")
    return i


def _expect_end(text: str, i: int) -> None:
    if _skip_ws(text, i) != len(text):
        raise RegistryFormatError(f"trailing content at offset {i}")


def decode_string(token: str) -> str:
    """Unescape a JSON string token (quotes included)."""
    body = token[1:-1]
    out: list[str] = []
    i = 0
    while i < len(body):
        ch = body[i]
        if ch != "\\":
            out.append(ch)
            i += 1
            continue
        esc = _char(body, i + 1)
        if esc == "u":
            code = int(body[i + 2 : i + 6], 16)
            i += 6
            if 0xD800 <= code < 0xDC00 and body[i : i + 2] == "\\u":
                low = int(body[i + 2 : i + 6], 16)
                if 0xDC00 <= low < 0xE000:
                    code = 0x10000 + ((code - 0xD800) << 10) + (low - 0xDC00)
                    i += 6
            out.append(chr(code))
        elif esc in _ESCAPES:
            out.append(_ESCAPES[esc])
            i += 2
        else:
            raise RegistryFormatError(f"invalid escape \\{esc}")
    return "".join(out)


def encode_string(value: str) -> str:
    """Encode value as a JSON string the way jq prints it."""
    out = ['"']
    for ch in value:
        if ch in _ENCODE:
            out.append(_ENCODE[ch])
        elif ord(ch) < 0x20 or ord(ch) == 0x7F:
            out.append(f"\\u{ord(ch):04x}")
        else:
            out.append(ch)
    out.append('"')
    return "".join(out)


def _canonical_string(token: str) -> str:
    return encode_string(decode_string(token))


def object_members(text: str) -> dict[str, str]:
    """Map decoded key -> raw value text for a JSON object.

    Duplicate keys keep their first position and their last value.
    """
    i = _skip_ws(text, 0)
    if _char(text, i) != "{":
        raise RegistryFormatError("expected a JSON object")
    members: dict[str, str] = {}
    i = _skip_ws(text, i + 1)
    if _char(text, i) == "}":
        _expect_end(text, i + 1)
        return members

    while True:
        if _char(text, i) != '"':
            raise RegistryFormatError(f"expected a key at offset {i}")
        key_end = _scan_string(text, i)
        key = decode_string(text[i:key_end])
        i = _skip_ws(text, key_end)
        if _char(text, i) != ":":
            raise RegistryFormatError(f"expected ':' at offset {i}")
        i = _skip_ws(text, i + 1)
        value_end = _scan_value(text, i)
        members[key] = text[i:value_end]
        i = _skip_ws(text, value_end)
        ch = _char(text, i)
        if ch == ",":
            i = _skip_ws(text, i + 1)
            continue
        if ch == "}":
            _expect_end(text, i + 1)
            return members
        raise RegistryFormatError(f"expected ',' or '}}' at offset {i}")


def array_elements(text: str) -> list[str]:
    """Raw element texts of a JSON array."""
    i = _skip_ws(text, 0)
    if _char(text, i) != "[":
        raise RegistryFormatError("expected a JSON array")
    elements: list[str] = []
    i = _skip_ws(text, i + 1)
    if _char(text, i) == "]":
        _expect_end(text, i + 1)
        return elements

    while True:
        end = _scan_value(text, i)
        elements.append(text[i:end])
        i = _skip_ws(text, end)
        ch = _char(text, i)
        if ch == ",":
            i = _skip_ws(text, i + 1)
            continue
        if ch == "]":
            _expect_end(text, i + 1)
            return elements
        raise RegistryFormatError(f"expected ',' or ']' at offset {i}")


def _is_object(value: str) -> bool:
    return value.lstrip().startswith("{")


_NUMBER = re.compile(r"^-?(0|[1-9]\d*)(\.\d+)?([eE][+-]?\d+)?$")


def format_number(token: str) -> str:
    """Print a JSON number token the way jq prints a double.

    Shortest round-trip digits; exponent form once the decimal point sits
    four places right of the digits or more than fifteen places past them.
    Values too large for a double clamp to the largest finite one.
    """
    value = float(token) + 0.0
    if math.isinf(value):
        value = math.copysign(sys.float_info.max, value)
    if value == 0:
        return "0"
    sign = "-" if value < 0 else ""
    _, digit_tuple, exponent = Decimal(repr(abs(value))).normalize().as_tuple()
    digits = "".join(str(d) for d in digit_tuple)
    point = len(digits) + exponent

    if point <= -4 or point > len(digits) + 15:
        shown = point - 1
        mantissa = digits[0] + ("." + digits[1:] if len(digits) > 1 else "")
        return f"{sign}{mantissa}e{'-' if shown < 0 else '+'}{abs(shown):02d}"
    if point <= 0:
        return f"{sign}0.{'0' * -point}{digits}"
    if point >= len(digits):
        return sign + digits + "0" * (point - len(digits))
    return f"{sign}{digits[:point]}.{digits[point:]}"


def _scalar(value: str) -> str:
    value = value.strip()
    if value.startswith('"'):
        return _canonical_string(value)
    if value in ("true", "false", "null"):
        return value
    if not _NUMBER.match(value):
        raise RegistryFormatError(f"invalid literal {value!r}")
    return format_number(value)



def render_pretty(value: str, level: int = 0) -> str:
    """Re-indent raw JSON text with two spaces per level, as jq does."""
    value = value.strip()
    inner = "  " * (level + 1)
    outer = "  " * level
    if value.startswith("{"):
        members = object_members(value)
        if not members:
            return "{}"
        lines = [
            f"{inner}{encode_string(key)}: {render_pretty(raw, level + 1)}"
            for key, raw in members.items()
        ]
        return "{\n" + ",\n".join(lines) + "\n" + outer + "}"
    if value.startswith("["):
        elements = array_elements(value)
        if not elements:
            return "[]"
        lines = [f"{inner}{render_pretty(raw, level + 1)}" for raw in elements]
        return "[\n" + ",\n".join(lines) + "\n" + outer + "]"
    return _scalar(value)


def render_compact(value: str) -> str:
    """Compact single-line JSON, as jq's tojson prints it."""
    value = value.strip()
    if value.startswith("{"):
        members = object_members(value)
        body = ",".join(
            f"{encode_string(key)}:{render_compact(raw)}" for key, raw in members.items()
        )
        return "{" + body + "}"
    if value.startswith("["):
        return "[" + ",".join(render_compact(raw) for raw in array_elements(value)) + "]"
    return _scalar(value)


def _join_object(members: dict[str, str]) -> str:
    return "{" + ",".join(f"{encode_string(k)}:{v}" for k, v in members.items()) + "}"


def _merge_members(existing: str, incoming: str) -> str:
    merged = object_members(existing)
    for key, value in object_members(incoming).items():
        if key in merged and _is_object(merged[key]) and _is_object(value):
            merged[key] = _merge_members(merged[key], value)
        else:
            merged[key] = value
    return _join_object(merged)


def section_name(key: str) -> str:
    return key if _BARE_KEY.fullmatch(key) else encode_string(key)


class TextScanBridge(RegistryBridge):
    """Dependency-free bridge scanning the JSON text directly."""

    name = "text"

    def keys(self, doc: str) -> list[str]:
        return list(object_members(doc))

    def extract_subset(self, doc: str, selected_keys: Collection[str]) -> str:
        if not selected_keys:
            return doc
        wanted = set(selected_keys)
        members = {k: v for k, v in object_members(doc).items() if k in wanted}
        return render_pretty(_join_object(members)) + "\n"

    def unwrap_key(self, doc: str, key: str) -> str:
        members = object_members(doc)
        if key in members and _is_object(members[key]):
            return render_pretty(members[key]) + "\n"
        return render_pretty(doc) + "\n"

    def wrap_under_key(self, doc: str, key: str) -> str:
        return render_pretty(_join_object({key: doc.strip()})) + "\n"

    def to_sectioned_text(self, doc: str) -> str:
        lines: list[str] = []
        for key, raw in object_members(doc).items():
            lines.append(f"[{SECTION_PREFIX}.{section_name(key)}]")
            if _is_object(raw):
                fields = object_members(raw)
                for name in SECTION_FIELDS:
                    if name in fields and fields[name].strip() != "null":
                        lines.append(f"{name} = {render_compact(fields[name])}")
            lines.append("")
        return "".join(line + "\n" for line in lines)

    def _merge_documents(self, existing: str, incoming: str) -> str:
        return render_pretty(_merge_members(existing, incoming)) + "\n"


# =============================================================================
# Sectioned text helpers (shared by both strategies)
# =============================================================================

_HEADER = re.compile(r"^\s*\[\[?(?P<name>[^\]]+)\]\]?\s*(#.*)?$")


def _split_dotted(name: str) -> list[str]:
    """Split a dotted table name, honoring quoted parts."""
    parts: list[str] = []
    i = 0
    name = name.strip()
    while i < len(name):
        i = _skip_ws(name, i)
        ch = _char(name, i)
        if ch == '"':
            end = _scan_string(name, i)
            parts.append(decode_string(name[i:end]))
            i = end
        elif ch == "'":
            end = name.index("'", i + 1)
            parts.append(name[i + 1 : end])
            i = end + 1
        else:
            end = i
            while end < len(name) and name[end] not in ". \t":
                end += 1
            parts.append(name[i:end])
            i = end
        i = _skip_ws(name, i)
        if _char(name, i) == ".":
            i += 1
    return parts


def section_owner(line: str) -> str | None:
    """Server name owning a header line.

    Returns None for non-header lines and "" for headers of other tables.
    """
    match = _HEADER.match(line.rstrip("\r\n"))
    if not match:
        return None
    try:
        parts = _split_dotted(match.group("name"))
    except (RegistryFormatError, ValueError):
        return ""
    if len(parts) >= 2 and parts[0] == SECTION_PREFIX:
        return parts[1]
    return ""


def remove_sections(text: str, names: Collection[str]) -> str:
    """Remove [mcp_servers.<name>] sections (and their sub-tables) for names.

    Comment lines directly above a kept header stay with that header, even
    when they sit at the tail of a removed section.
    """
    doomed = set(names)
    kept: list[str] = []
    pending: list[str] = []
    dropping = False
    for line in text.splitlines(keepends=True):
        owner = section_owner(line)
        if owner is not None:
            dropping = owner in doomed
            if not dropping:
                while pending and not pending[0].strip():
                    pending.pop(0)
                kept.extend(pending)
            pending = []
        if not dropping:
            kept.append(line)
        elif owner is None:
            stripped = line.strip()
            if not stripped or stripped.startswith("#"):
                pending.append(line)
            else:
                pending = []
    return "".join(kept)



def append_sections(kept: str, fresh: str) -> str:
    """Append fresh sections after kept text, separated by one blank line."""
    if not kept.strip():
        return fresh
    if not kept.endswith("\n"):
        kept += "\n"
    if not kept.endswith("\n\n"):
        kept += "\n"
    return kept + fresh


# =============================================================================
# Strategy selection
# =============================================================================

BRIDGE_CHOICES = ("auto", "jq", "text")


def jq_available(executable: str = "jq") -> bool:
    """Check that a working jq is on PATH."""
    if not shutil.which(executable):
        return False
    try:
        result = subprocess.run(
            [executable, "--version"],
            capture_output=True,
            text=True,
            timeout=5,
        )
    except (subprocess.TimeoutExpired, OSError):
        return False
    return result.returncode == 0


def select_bridge(preference: str = "auto") -> RegistryBridge:
    """Pick the bridge strategy for this run.

    Args:
        preference: "auto" (jq when available), "jq" or "text"

    Raises:
        SourceEnvironmentError: If jq is forced but not available
    """
    if preference == "text":
        bridge: RegistryBridge = TextScanBridge()
    elif jq_available():
        bridge = JqBridge()
    elif preference == "jq":
        raise SourceEnvironmentError(
            "jq was requested but is not installed",
            hint="Install jq or set bridge to 'auto' or 'text'.",
        )
    else:
        bridge = TextScanBridge()
    logger.info("bridge_selected", bridge=bridge.name, preference=preference)
    return bridge
