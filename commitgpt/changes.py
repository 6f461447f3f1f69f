"""
Working Tree Change Collection for commit-gpt

This module reads every change in a repository relative to HEAD (staged,
unstaged and untracked) and condenses it into a per-file list of short
"Added: ..." / "Removed: ..." summaries that fit comfortably into a prompt.
"""

import os
import re

import git
from loguru import logger

from .errors import RepositoryError
from .prompts import format_changes_for_prompt

# The SHA-1 empty tree, used when git cannot compute it for the repository
EMPTY_TREE_SHA = "4b825dc642cb6eb9a060e54bf8d69288fbee4904"

MAX_SUMMARY_LENGTH = 80

BINARY_CHECK_SIZE = 8000

NO_CHANGES_MESSAGE = "No changes detected. Nothing to generate a commit message for."

ADDED = "Added"
DELETED = "Deleted"
MODIFIED = "Modified"
RENAMED = "Renamed"
COPIED = "Copied"

_QUOTED_ESCAPES = {
    b"a": b"\a",
    b"b": b"\b",
    b"t": b"\t",
    b"n": b"\n",
    b"v": b"\v",
    b"f": b"\f",
    b"r": b"\r",
    b'"': b'"',
    b"\\": b"\\",
}


class FileChange:
    """A single changed file and the summaries of its changed lines."""

    def __init__(self, file_path, change_type=MODIFIED, summaries=None, omitted=0):
        self.file_path = file_path
        self.change_type = change_type
        self.summaries = summaries if summaries is not None else []
        # Changed lines left out of summaries to respect a budget
        self.omitted = omitted

    def __eq__(self, other):
        if not isinstance(other, FileChange):
            return NotImplemented
        return (
            self.file_path == other.file_path
            and self.change_type == other.change_type
            and self.summaries == other.summaries
            and self.omitted == other.omitted
        )

    def __repr__(self):
        return (
            f"FileChange({self.file_path!r}, {self.change_type!r}, "
            f"{len(self.summaries)} summaries)"
        )


def open_repository(workdir_path="."):
    """
    Open the Git repository containing the given working directory.

    Args:
        workdir_path (str): Path inside the repository's working tree

    Returns:
        git.Repo: The opened repository

    Raises:
        RepositoryError: If the path is not inside a non-bare repository
    """
    try:
        repo = git.Repo(workdir_path, search_parent_directories=True)
    except (git.exc.InvalidGitRepositoryError, git.exc.NoSuchPathError):
        raise RepositoryError(f"Failed to open Git repository at '{workdir_path}'")

    if repo.bare:
        raise RepositoryError(f"Git repository at '{workdir_path}' has no working tree")

    logger.debug(f"Opened Git repository at {repo.working_tree_dir}")
    return repo


def is_initial_commit(repo):
    """Return True when HEAD does not point to a commit yet (unborn branch)."""
    return not repo.head.is_valid()


def get_combined_diff(repo):
    """
    Get the unified diff of HEAD against the working tree.

    Staged and unstaged changes to tracked files are both included. On an
    unborn branch the diff is taken against the empty tree, so everything in
    the index shows up as added.

    Args:
        repo (git.Repo): Repository to diff

    Returns:
        str: Unified diff text (empty when nothing changed)
    """
    base = get_empty_tree_sha(repo) if is_initial_commit(repo) else "HEAD"

    try:
        output = repo.git.diff(
            base,
            "-M",
            "--no-color",
            "--no-ext-diff",
            "--src-prefix=a/",
            "--dst-prefix=b/",
            stdout_as_string=False,
        )
    except git.exc.GitCommandError as e:
        raise RepositoryError(f"Failed to diff working tree against {base}: {e.stderr.strip()}")

    # File contents are not necessarily UTF-8
    diff = output.decode("utf-8", "replace")

    logger.debug(f"Diff against {base[:7]} is {len(diff)} characters long")
    return diff


def get_empty_tree_sha(repo):
    """
    Get the id of the empty tree in the repository's object format.

    SHA-256 repositories use a different id than the well-known SHA-1 one.
    """
    try:
        with open(os.devnull, "rb") as empty:
            return repo.git.hash_object("-t", "tree", "--stdin", istream=empty).strip()
    except git.exc.GitCommandError as e:
        logger.debug(f"Falling back to the SHA-1 empty tree: {e}")
        return EMPTY_TREE_SHA


def summarize_change(origin, content):
    """
    Summarize one diff line.

    Args:
        origin (str): Diff line origin, '+' for additions and '-' for removals
        content (str): The line content without its origin marker

    Returns:
        str: "Added: ..." or "Removed: ...", or an empty string for any
        other origin or a blank line
    """
    content = content.strip()
    if not content:
        return ""

    if len(content) > MAX_SUMMARY_LENGTH:
        content = content[:MAX_SUMMARY_LENGTH - 3] + "..."

    if origin == "+":
        return f"Added: {content}"
    if origin == "-":
        return f"Removed: {content}"
    return ""


def _unquote_path(path):
    # git wraps unusual paths in double quotes with C-style escapes
    if not (len(path) >= 2 and path.startswith('"') and path.endswith('"')):
        return path

    def replace(match):
        escape = match.group(1)
        if escape in _QUOTED_ESCAPES:
            return _QUOTED_ESCAPES[escape]
        if len(escape) == 3:
            return bytes([int(escape, 8) & 0xFF])
        return escape

    raw = path[1:-1].encode("utf-8", "surrogateescape")
    raw = re.sub(rb"\\([0-7]{3}|.)", replace, raw)
    return raw.decode("utf-8", "replace")


def _strip_prefix(path, prefix):
    path = _unquote_path(path.rstrip("\t"))
    if path == "/dev/null":
        return None
    if path.startswith(prefix):
        return path[len(prefix):]
    return path


def _paths_from_header(header):
    """Extract (old_path, new_path) from a 'diff --git a/X b/Y' line."""
    rest = header[len("diff --git "):]

    if rest.startswith('"'):
        # Quoted old path, new path may or may not be quoted
        end = 1
        while end < len(rest):
            if rest[end] == "\\":
                end += 2
                continue
            if rest[end] == '"':
                break
            end += 1
        old, new = rest[:end + 1], rest[end + 2:]
        return _strip_prefix(old, "a/"), _strip_prefix(new, "b/")

    if rest.endswith('"') and ' "' in rest:
        old, new = rest.rsplit(' "', 1)
        return _strip_prefix(old, "a/"), _strip_prefix('"' + new, "b/")

    # Unquoted: both sides name the same file unless it was renamed, in which
    # case the rename lines that follow override these paths
    if rest.startswith("a/") and (len(rest) - 5) % 2 == 0:
        length = (len(rest) - 5) // 2
        old, new = rest[2:2 + length], rest[2 + length + 3:]
        if rest[2 + length:2 + length + 3] == " b/" and old == new:
            return old, new

    old, _, new = rest.partition(" b/")
    return _strip_prefix(old, "a/"), new


def parse_diff(diff_text):
    """
    Parse unified diff text into a list of FileChange entries.

    Entries appear in the order git printed them. Files without any content
    lines, such as binary files, pure renames and mode changes, still get an
    entry with no summaries.

    Args:
        diff_text (str): Output of 'git diff'

    Returns:
        list: FileChange objects
    """
    changes = []
    current = None
    old_path = new_path = None
    in_hunk = False

    def flush():
        if current is None:
            return
        if current.change_type == DELETED:
            current.file_path = old_path or new_path
        else:
            current.file_path = new_path or old_path
        changes.append(current)

    for line in diff_text.split("\n"):
        if line.startswith("diff --git "):
            flush()
            old_path, new_path = _paths_from_header(line)
            current = FileChange(new_path or old_path)
            in_hunk = False
            continue

        if current is None:
            continue

        if line.startswith("@@"):
            in_hunk = True
            continue

        if in_hunk:
            if line.startswith(("+", "-")):
                summary = summarize_change(line[0], line[1:])
                if summary:
                    current.summaries.append(summary)
            continue

        # Extended header lines
        if line.startswith("new file mode"):
            current.change_type = ADDED
        elif line.startswith("deleted file mode"):
            current.change_type = DELETED
        elif line.startswith("rename from "):
            current.change_type = RENAMED
            old_path = _unquote_path(line[len("rename from "):])
        elif line.startswith("rename to "):
            current.change_type = RENAMED
            new_path = _unquote_path(line[len("rename to "):])
        elif line.startswith("copy from "):
            current.change_type = COPIED
            old_path = _unquote_path(line[len("copy from "):])
        elif line.startswith("copy to "):
            current.change_type = COPIED
            new_path = _unquote_path(line[len("copy to "):])
        elif line.startswith("--- "):
            path = _strip_prefix(line[4:], "a/")
            if path is not None:
                old_path = path
        elif line.startswith("+++ "):
            path = _strip_prefix(line[4:], "b/")
            if path is not None:
                new_path = path

    flush()
    return changes


def collect_untracked(repo, max_summaries=None):
    """
    Build an Added FileChange for every untracked, non-ignored file.

    Files are read line by line. Once max_summaries summaries have been
    built, further lines are only counted in FileChange.omitted.

    Args:
        repo (git.Repo): Repository to inspect
        max_summaries (int): Optional budget of summary lines, None for unlimited

    Returns:
        list: FileChange objects, one per untracked file

    Raises:
        RepositoryError: If git cannot list the untracked files
    """
    try:
        untracked_files = repo.untracked_files
    except git.exc.GitCommandError as e:
        raise RepositoryError(f"Failed to list untracked files: {e.stderr.strip()}")

    changes = []
    remaining = max_summaries

    for file_path in untracked_files:
        change = FileChange(file_path, ADDED)
        changes.append(change)
        full_path = os.path.join(repo.working_tree_dir, file_path)

        try:
            with open(full_path, "rb") as f:
                # Same binary heuristic as git
                if b"\0" in f.read(BINARY_CHECK_SIZE):
                    continue
                f.seek(0)

                for raw_line in f:
                    summary = summarize_change("+", raw_line.decode("utf-8", "replace"))
                    if not summary:
                        continue
                    if remaining is not None:
                        if remaining <= 0:
                            change.omitted += 1
                            continue
                        remaining -= 1
                    change.summaries.append(summary)
        except OSError as e:
            logger.debug(f"Skipping content of untracked file {file_path}: {e}")

    return changes


def collect_changes(repo, max_summaries=None):
    """
    Collect tracked and untracked changes, merging entries that share a path.

    Args:
        repo (git.Repo): Repository to inspect
        max_summaries (int): Optional budget of summary lines, None or 0 for
            unlimited; untracked files only get what tracked changes left over

    Returns:
        list: FileChange objects in diff order, untracked files last
    """
    tracked = parse_diff(get_combined_diff(repo))

    remaining = None
    if max_summaries:
        remaining = max(max_summaries - sum(len(change.summaries) for change in tracked), 0)

    merged = {}

    for change in tracked + collect_untracked(repo, max_summaries=remaining):
        existing = merged.get(change.file_path)
        if existing is None:
            merged[change.file_path] = change
        else:
            existing.summaries.extend(change.summaries)
            existing.omitted += change.omitted

    logger.debug(f"Collected changes for {len(merged)} file(s)")
    return list(merged.values())


def get_structured_changes(repo, max_summaries=None):
    """
    Get the prompt-ready description of every change in the working tree.

    Args:
        repo (git.Repo): Repository to inspect
        max_summaries (int): Optional budget of summary lines

    Returns:
        str: Formatted changes, or an empty string when nothing changed
    """
    changes = collect_changes(repo, max_summaries=max_summaries)
    if not changes:
        return ""
    return format_changes_for_prompt(changes, max_summaries=max_summaries)
