"""
Shared helpers for backend implementations: line-numbered rendering,
string replacement, path normalization and glob/grep over file maps.
"""

import functools
import posixpath
import re
from datetime import datetime, timezone

from deepagent.domain import FileData, FileInfo, GrepMatch

EMPTY_CONTENT_WARNING = "System reminder: File exists but has empty contents"
MAX_LINE_LENGTH = 10000
LINE_NUMBER_WIDTH = 6
DEFAULT_READ_LIMIT = 2000
TOOL_RESULT_TOKEN_LIMIT = 20000
TRUNCATION_GUIDANCE = "... [results truncated, try being more specific with your parameters]"


def now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def format_content_with_line_numbers(content: str | list[str], start_line: int = 1) -> str:
    """Render lines ``cat -n`` style; long lines get N.1, N.2 continuation rows."""
    if isinstance(content, str):
        lines = content.split("\n")
        if lines and lines[-1] == "":
            lines = lines[:-1]
    else:
        lines = content

    rendered: list[str] = []
    for i, line in enumerate(lines):
        line_num = i + start_line
        if len(line) <= MAX_LINE_LENGTH:
            rendered.append(f"{line_num:>{LINE_NUMBER_WIDTH}}\t{line}")
            continue
        for chunk_idx in range(0, (len(line) + MAX_LINE_LENGTH - 1) // MAX_LINE_LENGTH):
            chunk = line[chunk_idx * MAX_LINE_LENGTH : (chunk_idx + 1) * MAX_LINE_LENGTH]
            marker = str(line_num) if chunk_idx == 0 else f"{line_num}.{chunk_idx}"
            rendered.append(f"{marker:>{LINE_NUMBER_WIDTH}}\t{chunk}")
    return "\n".join(rendered)


def check_empty_content(content: str) -> str | None:
    if not content or not content.strip():
        return EMPTY_CONTENT_WARNING
    return None


def file_data_to_string(file_data: FileData) -> str:
    return "\n".join(file_data.content)


def create_file_data(content: str, created_at: str | None = None) -> FileData:
    now = now_iso()
    return FileData(content=content.split("\n"), created_at=created_at or now, modified_at=now)


def update_file_data(file_data: FileData, content: str) -> FileData:
    """New content, same created_at."""
    return FileData(
        content=content.split("\n"),
        created_at=file_data.created_at,
        modified_at=now_iso(),
    )


def format_read_response(file_data: FileData, offset: int = 0, limit: int = DEFAULT_READ_LIMIT) -> str:
    content = file_data_to_string(file_data)
    empty = check_empty_content(content)
    if empty:
        return empty

    lines = content.split("\n")
    if offset >= len(lines):
        return f"Error: Line offset {offset} exceeds file length ({len(lines)} lines)"

    selected = lines[offset : offset + limit]
    return format_content_with_line_numbers(selected, start_line=offset + 1)


def perform_string_replacement(
    content: str,
    old_string: str,
    new_string: str,
    replace_all: bool,
) -> tuple[str, int] | str:
    """
    Replace ``old_string`` in ``content``.

    Returns:
        (new_content, occurrences) on success, otherwise an error message.
    """
    if old_string == new_string:
        return "Error: old_string and new_string must be different"
    if not old_string:
        return "Error: old_string must not be empty"

    occurrences = content.count(old_string)
    if occurrences == 0:
        return f"Error: String not found in file: '{old_string}'"
    if occurrences > 1 and not replace_all:
        return (
            f"Error: String '{old_string}' appears {occurrences} times in file. "
            "Use replace_all=true to replace all instances, or provide a more "
            "specific string with surrounding context."
        )
    return content.replace(old_string, new_string), occurrences


def normalize_dir_path(path: str | None) -> str:
    """
    Normalize a directory path to '/a/b/' form.

    Raises:
        ValueError: If the path is blank or escapes the root
    """
    path_str = path or "/"
    if not path_str.strip():
        raise ValueError("Path cannot be empty")
    normalized = normalize_file_path(path_str)
    return normalized if normalized.endswith("/") else normalized + "/"


def normalize_file_path(path: str) -> str:
    """
    Normalize a virtual file path to an absolute '/a/b' form.

    Raises:
        ValueError: If the path is blank or contains '..' segments
    """
    if not path or not path.strip():
        raise ValueError("Path cannot be empty")
    if ".." in path.split("/"):
        raise ValueError(f"Path traversal is not allowed: {path}")
    if not path.startswith("/"):
        path = "/" + path
    normalized = posixpath.normpath(path)
    # normpath keeps a leading '//' as-is
    if normalized.startswith("//"):
        normalized = "/" + normalized.lstrip("/")
    return normalized


@functools.lru_cache(maxsize=256)
def _glob_regex(pattern: str) -> re.Pattern:
    return re.compile(translate_glob(pattern) + r"\Z", re.DOTALL)


def translate_glob(pattern: str) -> str:
    out: list[str] = []
    i, n = 0, len(pattern)
    while i < n:
        c = pattern[i]
        if c == "*":
            if pattern.startswith("**", i):
                i += 2
                if pattern.startswith("/", i):
                    i += 1
                    out.append("(?:.*/)?")
                else:
                    out.append(".*")
                continue
            out.append("[^/]*")
        elif c == "?":
            out.append("[^/]")
        elif c == "[":
            end = pattern.find("]", i + 1)
            if end == -1:
                out.append(re.escape(c))
            else:
                body = pattern[i + 1 : end]
                if body.startswith("!"):
                    body = "^" + body[1:]
                out.append(f"[{body}]")
                i = end
        elif c == "{":
            end = pattern.find("}", i + 1)
            if end == -1:
                out.append(re.escape(c))
            else:
                alternatives = pattern[i + 1 : end].split(",")
                out.append("(?:" + "|".join(translate_glob(a) for a in alternatives) + ")")
                i = end
        else:
            out.append(re.escape(c))
        i += 1
    return "".join(out)


def glob_match(path: str, pattern: str) -> bool:
    """Match a relative path against a glob supporting **, *, ?, [] and {a,b}."""
    return _glob_regex(pattern).match(path) is not None


def glob_search_files(files: dict[str, FileData], pattern: str, path: str = "/") -> list[FileInfo]:
    """Files under ``path`` whose path relative to it matches ``pattern``."""
    try:
        base = normalize_dir_path(path)
    except ValueError:
        return []

    results: list[FileInfo] = []
    for file_path, file_data in files.items():
        if not file_path.startswith(base):
            continue
        relative = file_path[len(base) :]
        if glob_match(relative, pattern.lstrip("/")):
            results.append(
                FileInfo(
                    path=file_path,
                    size=len(file_data_to_string(file_data)),
                    modified_at=file_data.modified_at,
                )
            )
    return sorted(results, key=lambda info: info.path)


def grep_matches_from_files(
    files: dict[str, FileData],
    pattern: str,
    path: str | None = None,
    glob: str | None = None,
) -> list[GrepMatch] | str:
    """Regex search over a file map; returns an error string for a bad pattern."""
    try:
        regex = re.compile(pattern)
    except re.error as e:
        return f"Invalid regex pattern: {e}"

    try:
        base = normalize_dir_path(path)
    except ValueError:
        return []

    matches: list[GrepMatch] = []
    for file_path in sorted(files):
        if not (file_path.startswith(base) or file_path == base.rstrip("/")):
            continue
        if glob and not glob_match(posixpath.basename(file_path), glob):
            continue
        for line_no, line in enumerate(files[file_path].content, start=1):
            if regex.search(line):
                matches.append(GrepMatch(path=file_path, line=line_no, text=line))
    return matches


def list_directory(files: dict[str, FileData], path: str) -> list[FileInfo]:
    """Immediate children of ``path``; subdirectories end with '/'."""
    base = normalize_dir_path(path)
    entries: dict[str, FileInfo] = {}
    for file_path, file_data in files.items():
        if not file_path.startswith(base):
            continue
        relative = file_path[len(base) :]
        if "/" in relative:
            sub_dir = base + relative.split("/", 1)[0] + "/"
            entries.setdefault(sub_dir, FileInfo(path=sub_dir, is_dir=True))
        else:
            entries[file_path] = FileInfo(
                path=file_path,
                size=len(file_data_to_string(file_data)),
                modified_at=file_data.modified_at,
            )
    return sorted(entries.values(), key=lambda info: info.path)


def format_grep_matches(matches: list[GrepMatch]) -> str:
    """Group matches by file for the model."""
    if not matches:
        return "No matches found"
    lines: list[str] = []
    current = None
    for match in matches:
        if match.path != current:
            current = match.path
            lines.append(f"\n{match.path}:")
        lines.append(f"  {match.line}: {match.text}")
    return "\n".join(lines).lstrip("\n")


def truncate_if_too_long(text: str, char_limit: int = TOOL_RESULT_TOKEN_LIMIT * 4) -> str:
    if len(text) <= char_limit:
        return text
    return text[:char_limit] + "\n" + TRUNCATION_GUIDANCE
