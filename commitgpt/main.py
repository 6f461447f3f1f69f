import os
import sys

import click
from loguru import logger

from . import __version__
from .changes import NO_CHANGES_MESSAGE, get_structured_changes, open_repository
from .client import DEFAULT_RETRIES, DEFAULT_TIMEOUT, create_client, generate_commit_message
from .config import (
    DEFAULT_MAX_CHANGES,
    get_config_dir,
    get_default_model,
    load_environment,
    resolve_api_key,
    save_api_key,
)
from .errors import APIError, CommitGPTError
from .hooks import check_git_hook_status, install_git_hook, uninstall_git_hook
from .prompts import build_messages


def setup_logging(verbose=False):
    """Send loguru output to stderr, keeping stdout for the commit message."""
    logger.remove()
    logger.add(
        sys.stderr,
        level="DEBUG" if verbose else "WARNING",
        format="<green>{time:HH:mm:ss}</green> | <level>{level: <8}</level> | <cyan>{name}</cyan>:<cyan>{function}</cyan> - <level>{message}</level>",
        colorize=True,
    )


def generate(api_key_path=None, context=None, workdir_path=".", model=None, base_url=None,
             max_changes=DEFAULT_MAX_CHANGES, timeout=DEFAULT_TIMEOUT, retries=DEFAULT_RETRIES):
    """
    Generate a commit message for the changes in a working tree.

    Args:
        api_key_path (str): Optional path to a file holding the OpenAI API key
        context (str): Optional extra context for the model
        workdir_path (str): Path inside the repository
        model (str): Model to use, defaults to get_default_model()
        base_url (str): Optional OpenAI-compatible endpoint
        max_changes (int): Budget of summary lines sent to the model, 0 for unlimited
        timeout (float): Request timeout in seconds
        retries (int): Retries for transient API failures

    Returns:
        str: The commit message, or None when there is nothing to describe

    Raises:
        CommitGPTError: If configuration, the repository or the API call fails
    """
    api_key = resolve_api_key(api_key_path)
    repo = open_repository(workdir_path)

    structured_changes = get_structured_changes(repo, max_summaries=max_changes)
    if not structured_changes:
        return None

    messages = build_messages(structured_changes, context)
    client = create_client(api_key, base_url=base_url, timeout=timeout, max_retries=retries)
    return generate_commit_message(client, messages, model or get_default_model())


def _fail(error):
    """Report an error on stderr and exit with status 1."""
    click.secho(str(error), fg='red', err=True)
    if isinstance(error, APIError) and error.body:
        click.echo(f"Response body:\n{error.body}", err=True)
    sys.exit(1)


# Define the CLI commands using Click
@click.group(invoke_without_command=True)
@click.version_option(__version__, prog_name="commit-gpt")
@click.option('--api-key-path', '-a', type=click.Path(dir_okay=False), metavar='FILE',
              help='Path to the OpenAI API key file')
@click.option('--context', '-c', metavar='CONTEXT', help='Additional context for the commit message')
@click.option('--workdir-path', '-w', default='.', show_default=True, metavar='DIR',
              help='Path to the working directory')
@click.option('--model', '-m', metavar='MODEL',
              help='OpenAI model to use (defaults to gpt-4, or $COMMIT_GPT_MODEL)')
@click.option('--base-url', envvar='OPENAI_BASE_URL', metavar='URL',
              help='OpenAI-compatible API endpoint')
@click.option('--max-changes', default=DEFAULT_MAX_CHANGES, show_default=True, type=click.IntRange(min=0),
              help='Maximum number of changed lines sent to the model, 0 for no limit')
@click.option('--timeout', default=DEFAULT_TIMEOUT, show_default=True, type=click.FloatRange(min=0, min_open=True),
              help='Request timeout in seconds')
@click.option('--retries', default=DEFAULT_RETRIES, show_default=True, type=click.IntRange(min=0),
              help='Retries for transient API failures')
@click.option('--verbose', '-v', is_flag=True, help='Log progress to stderr')
@click.pass_context
def cli(ctx, api_key_path, context, workdir_path, model, base_url, max_changes, timeout, retries, verbose):
    """
    commit-gpt - generate Git commit messages using OpenAI.

    Without a command, describes every change in the working tree (staged,
    unstaged and untracked) and prints the suggested commit message.
    """
    setup_logging(verbose)
    load_environment()

    ctx.obj = {'workdir_path': workdir_path}

    if ctx.invoked_subcommand is not None:
        return

    try:
        message = generate(
            api_key_path=api_key_path,
            context=context,
            workdir_path=workdir_path,
            model=model,
            base_url=base_url,
            max_changes=max_changes,
            timeout=timeout,
            retries=retries,
        )
    except CommitGPTError as e:
        _fail(e)

    if message is None:
        click.echo(NO_CHANGES_MESSAGE)
        return

    # Output the commit message without extra text
    click.echo(message)


@cli.command()
def setup():
    """
    Save an OpenAI API key to ~/.commit-gpt/.env.
    """
    env_path = os.path.join(get_config_dir(), ".env")

    if os.path.exists(env_path):
        if not click.confirm("Configuration file already exists. Overwrite?", default=False):
            click.echo("Setup canceled.")
            return

    api_key = click.prompt("Enter your OpenAI API key", hide_input=True)

    env_path = save_api_key(api_key)
    click.secho("Configuration saved successfully!", fg='green')
    click.echo(f"Configuration file: {env_path}")


@cli.group()
def hook():
    """
    Manage the prepare-commit-msg hook.
    """


@hook.command('install')
@click.option('--api-key-path', '-a', type=click.Path(exists=True, dir_okay=False), metavar='FILE',
              help='API key file the hook passes to commit-gpt')
@click.option('--model', '-m', metavar='MODEL', help='Model the hook passes to commit-gpt')
@click.option('--force', '-f', is_flag=True, help='Replace an existing hook not created by commit-gpt')
@click.pass_obj
def hook_install(obj, api_key_path, model, force):
    """
    Install commit-gpt as a prepare-commit-msg hook.

    The hook drafts the message whenever 'git commit' opens the editor.
    """
    success, message = install_git_hook(obj['workdir_path'], api_key_path=api_key_path, model=model, force=force)
    if not success:
        _fail(message)
    click.secho(message, fg='green')


@hook.command('uninstall')
@click.pass_obj
def hook_uninstall(obj):
    """
    Remove the commit-gpt hook.
    """
    success, message = uninstall_git_hook(obj['workdir_path'])
    if not success:
        _fail(message)
    click.secho(message, fg='green')


@hook.command('status')
@click.pass_obj
def hook_status(obj):
    """
    Show whether the commit-gpt hook is installed.
    """
    status = check_git_hook_status(obj['workdir_path'])

    if not status['git_repo']:
        _fail("Not a Git repository.")

    click.echo(f"Hook path: {status['hook_path']}")
    if not status['hook_exists']:
        click.secho("Hook is not installed.", fg='yellow')
    elif not status['is_our_hook']:
        click.secho("A different prepare-commit-msg hook is installed.", fg='yellow')
    elif not status['is_executable']:
        click.secho("Hook is installed but not executable.", fg='yellow')
    else:
        click.secho("Hook is installed.", fg='green')


# Entry point for the command-line interface
if __name__ == "__main__":
    cli()
