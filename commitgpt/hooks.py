"""
Git Hooks Management for commit-gpt

This module installs, removes and inspects a prepare-commit-msg hook that
drafts the commit message with commit-gpt whenever 'git commit' opens the
editor without a message.
"""

import os
import shlex
import shutil
import sys

import git

from .changes import NO_CHANGES_MESSAGE, open_repository
from .errors import RepositoryError

HOOK_NAME = "prepare-commit-msg"
HOOK_SIGNATURE = "Generated by commit-gpt"


def install_git_hook(workdir_path=".", api_key_path=None, model=None, force=False):
    """
    Install commit-gpt as the repository's prepare-commit-msg hook.

    Args:
        workdir_path (str): Path inside the repository
        api_key_path (str): Optional key file the hook passes to commit-gpt
        model (str): Optional model the hook passes to commit-gpt
        force (bool): Replace a hook that was not created by commit-gpt

    Returns:
        tuple: (success: bool, message: str)
    """
    try:
        hook_path = get_hook_path(workdir_path)
    except RepositoryError as e:
        return False, str(e)

    if os.path.exists(hook_path) and not _is_our_hook(hook_path) and not force:
        return False, f"A different {HOOK_NAME} hook already exists at: {hook_path} (use --force to replace it)"

    args = []
    if api_key_path:
        args += ["--api-key-path", os.path.abspath(api_key_path)]
    if model:
        args += ["--model", model]

    try:
        os.makedirs(os.path.dirname(hook_path), exist_ok=True)
        _write_hook_file(hook_path, _create_hook_script(_get_command(), args))
    except OSError as e:
        return False, f"Error installing Git hook: {e}"

    return True, f"Git hook installed successfully at: {hook_path}"


def uninstall_git_hook(workdir_path="."):
    """
    Remove the commit-gpt hook, leaving any other hook untouched.

    Returns:
        tuple: (success: bool, message: str)
    """
    try:
        hook_path = get_hook_path(workdir_path)
    except RepositoryError as e:
        return False, str(e)

    if not os.path.exists(hook_path):
        return False, "No commit-gpt hook found to remove."

    if not _is_our_hook(hook_path):
        return False, "Hook exists but was not created by commit-gpt. Won't remove it."

    try:
        os.remove(hook_path)
    except OSError as e:
        return False, f"Error removing Git hook: {e}"

    return True, f"Git hook removed successfully from: {hook_path}"


def check_git_hook_status(workdir_path="."):
    """
    Check whether the commit-gpt hook is installed.

    Returns:
        dict: Status information about the hook
    """
    try:
        hook_path = get_hook_path(workdir_path)
    except RepositoryError:
        return {
            'git_repo': False,
            'hook_path': None,
            'hook_exists': False,
            'is_our_hook': False,
            'is_executable': False,
        }

    hook_exists = os.path.exists(hook_path)
    return {
        'git_repo': True,
        'hook_path': hook_path,
        'hook_exists': hook_exists,
        'is_our_hook': hook_exists and _is_our_hook(hook_path),
        'is_executable': hook_exists and os.access(hook_path, os.X_OK),
    }


def get_hook_path(workdir_path="."):
    """
    Get the path of the prepare-commit-msg hook, honouring core.hooksPath.

    Raises:
        RepositoryError: If workdir_path is not inside a repository
    """
    repo = open_repository(workdir_path)

    try:
        hooks_dir = repo.git.rev_parse("--git-path", "hooks")
    except git.exc.GitCommandError:
        hooks_dir = os.path.join(repo.git_dir, "hooks")

    # rev-parse answers relative to the working tree, where GitPython runs git
    if not os.path.isabs(hooks_dir):
        hooks_dir = os.path.join(repo.working_tree_dir, hooks_dir)

    return os.path.join(os.path.normpath(hooks_dir), HOOK_NAME)


# Private helper functions

def _get_command():
    """
    Determine how the hook should call commit-gpt.

    Returns:
        list: The installed console script, or the current interpreter
        running the module when the script is not on PATH
    """
    executable = shutil.which("commit-gpt")
    if executable:
        return ["commit-gpt"]
    return [sys.executable, "-m", "commitgpt.main"]


def _create_hook_script(command, args):
    """
    Create the hook script content.

    Args:
        command (list): Command that runs commit-gpt
        args (list): Extra arguments passed to commit-gpt

    Returns:
        str: The hook script content
    """
    program = shlex.quote(command[0])
    invocation = " ".join(shlex.quote(part) for part in command + args)
    no_changes = shlex.quote(NO_CHANGES_MESSAGE)

    return f"""#!/bin/sh
# {HOOK_NAME} hook that drafts the commit message
# {HOOK_SIGNATURE}

# Only run when git has no message source (no -m, -F, template, merge or squash)
if [ -z "$2" ]; then
    if command -v {program} >/dev/null 2>&1; then
        MESSAGE=$({invocation} 2>/dev/null)

        if [ $? -eq 0 ] && [ -n "$MESSAGE" ] && [ "$MESSAGE" != {no_changes} ]; then
            TEMPLATE=$(cat "$1")
            printf '%s\\n\\n%s\\n' "$MESSAGE" "$TEMPLATE" > "$1"
        fi
    else
        echo "# commit-gpt not found - message draft unavailable" >> "$1"
    fi
fi
"""


def _write_hook_file(hook_path, hook_content):
    """Write the hook with Unix line endings and make it executable."""
    with open(hook_path, 'w', newline='\n') as f:
        f.write(hook_content)

    os.chmod(hook_path, 0o755)


def _is_our_hook(hook_path):
    """Check if a hook file was created by commit-gpt."""
    try:
        with open(hook_path, 'r', encoding='utf-8', errors='replace') as f:
            return HOOK_SIGNATURE in f.read()
    except OSError:
        return False
