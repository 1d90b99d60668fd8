"""
Nginx server block and hosts line codec.

The config is handled as a list of lines. Entries written by revproxy are
identified by their leading comment and located as a line span by tracking
brace depth, so removal deletes exactly the lines that were inserted.
"""

import logging
import re
from collections.abc import Iterator
from dataclasses import dataclass

logger = logging.getLogger("revproxy.nginx")

ENTRY_COMMENT_PREFIX = "# Reverse proxy entry for "
CONTAINER_OPENING = "http {"
LOOPBACK = "127.0.0.1"

_COMMENT_LINE = re.compile(r"^\s*#\s*Reverse proxy entry for\s+(\S+)\s*$")
_SERVER_NAME = re.compile(r"server_name\s+([^;]+);")


@dataclass(frozen=True)
class EntrySpan:
    """Line range [start, end] of a managed entry, comment line included"""

    host_name: str
    start: int
    end: int


def _strip_comment(line: str) -> str:
    if "#" in line:
        return line.split("#", 1)[0]
    return line


def _net_braces(line: str) -> int:
    code = _strip_comment(line)
    return code.count("{") - code.count("}")


# ─────────────────────────────────────────────────────────────────────────────
# Rendering
# ─────────────────────────────────────────────────────────────────────────────


def render_server_block(host_name: str, port: int) -> str:
    """Render the server block for one proxy entry (indented for the http block)."""
    lines = [
        f"    {ENTRY_COMMENT_PREFIX}{host_name}",
        "    server {",
        "        listen 80;",
        f"        server_name {host_name};",
        "",
        "        location / {",
        f"            proxy_pass http://{LOOPBACK}:{port};",
        "            proxy_set_header Host $host;",
        "            proxy_set_header X-Real-IP $remote_addr;",
        "            proxy_set_header X-Forwarded-For $proxy_add_x_forwarded_for;",
        "            proxy_set_header X-Forwarded-Proto $scheme;",
        "            proxy_redirect off;",
        "        }",
        "    }",
    ]
    return "\n".join(lines)


def render_hosts_line(host_name: str) -> str:
    return f"{LOOPBACK} {host_name}"


# ─────────────────────────────────────────────────────────────────────────────
# Config text
# ─────────────────────────────────────────────────────────────────────────────


def find_insertion_point(config_text: str) -> int | None:
    """
    Find the line index of the closing brace of the http block.

    Tracking starts at the line that is exactly "http {" (surrounding
    whitespace ignored) with depth 1. Each following line adds its net brace
    count; the line where depth reaches 0 closes the container and a new
    block is inserted just before it.

    Returns None if there is no http block or it never closes.
    """
    depth = 0
    tracking = False

    for idx, raw in enumerate(config_text.split("\n")):
        if not tracking:
            if raw.strip() == CONTAINER_OPENING:
                tracking = True
                depth = 1
            continue

        depth += _net_braces(raw)
        if depth <= 0:
            return idx

    return None


def insert_block(config_text: str, block: str, at_line: int) -> str:
    """Splice a rendered block in as a new line at at_line."""
    lines = config_text.split("\n")
    lines.insert(at_line, block)
    return "\n".join(lines)


def _server_span_end(lines: list[str], start: int) -> int | None:
    """Return the line closing the server block that opens at or after start."""
    depth = 0
    opened = False
    for idx in range(start, len(lines)):
        code = _strip_comment(lines[idx]).strip()
        if not opened:
            if not code:
                continue
            if not re.match(r"^server\b\s*\{", code):
                return None
            opened = True
        depth += _net_braces(lines[idx])
        if depth <= 0:
            return idx
    return None


def iter_entry_spans(config_text: str) -> Iterator[EntrySpan]:
    """Yield the span of every managed entry in file order."""
    lines = config_text.split("\n")
    idx = 0
    while idx < len(lines):
        match = _COMMENT_LINE.match(lines[idx])
        if match:
            end = _server_span_end(lines, idx + 1)
            if end is not None:
                yield EntrySpan(host_name=match.group(1), start=idx, end=end)
                idx = end + 1
                continue
            logger.debug("Entry comment at line %d has no closed server block", idx + 1)
        idx += 1


def find_entry_span(config_text: str, host_name: str) -> EntrySpan | None:
    for span in iter_entry_spans(config_text):
        if span.host_name == host_name:
            return span
    return None


def remove_block_for(config_text: str, host_name: str) -> str:
    """
    Delete every managed entry for host_name.

    Text without a matching entry is returned unchanged.
    """
    spans = [span for span in iter_entry_spans(config_text) if span.host_name == host_name]
    if not spans:
        return config_text

    lines = config_text.split("\n")
    for span in reversed(spans):
        del lines[span.start : span.end + 1]
    return "\n".join(lines)


def has_entry(config_text: str, host_name: str) -> bool:
    """True if any line declares exactly `server_name <host_name>;`, ignoring case like nginx does."""
    pattern = re.compile(rf"^server_name\s+{re.escape(host_name)}\s*;$", re.IGNORECASE)
    return any(pattern.match(_strip_comment(line).strip()) for line in config_text.split("\n"))


def list_server_names(config_text: str) -> list[str]:
    return [value.strip() for value in _SERVER_NAME.findall(config_text)]


def brace_balance(config_text: str) -> int:
    """Net count of opening minus closing braces, comments ignored."""
    return sum(_net_braces(line) for line in config_text.split("\n"))


# ─────────────────────────────────────────────────────────────────────────────
# Hosts text
# ─────────────────────────────────────────────────────────────────────────────


def add_hosts_line(hosts_text: str, line: str) -> str:
    """Append line unless it is already present."""
    if any(existing.strip() == line for existing in hosts_text.splitlines()):
        return hosts_text
    if hosts_text and not hosts_text.endswith("\n"):
        hosts_text += "\n"
    return f"{hosts_text}{line}\n"


def remove_hosts_line(hosts_text: str, host_name: str) -> str:
    """Delete every occurrence of the rendered hosts line together with its newline."""
    target = render_hosts_line(host_name)
    kept = [line for line in hosts_text.splitlines(keepends=True) if line.strip() != target]
    return "".join(kept)


def list_hosts_entries(hosts_text: str) -> list[str]:
    """Host names mapped to 127.0.0.1, in file order."""
    entries = []
    for line in hosts_text.split("\n"):
        stripped = line.strip()
        if not stripped or stripped.startswith("#") or LOOPBACK not in line:
            continue
        parts = stripped.split()
        if len(parts) >= 2:
            entries.append(parts[1])
    return entries
