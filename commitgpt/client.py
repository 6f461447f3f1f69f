"""
OpenAI chat-completion calls for commit-gpt.
"""

import openai
from openai import OpenAI
from loguru import logger

from .errors import APIError

DEFAULT_TIMEOUT = 60.0
DEFAULT_RETRIES = 2


def create_client(api_key, base_url=None, timeout=DEFAULT_TIMEOUT, max_retries=DEFAULT_RETRIES):
    """
    Create the OpenAI client.

    Retries with exponential backoff on connection errors, 408/409/429 and
    5xx responses are handled by the client itself.

    Args:
        api_key (str): OpenAI API key
        base_url (str): Optional OpenAI-compatible endpoint
        timeout (float): Request timeout in seconds
        max_retries (int): Number of retries for transient failures

    Returns:
        OpenAI: Configured client
    """
    logger.debug(f"Creating OpenAI client (base_url={base_url or 'default'}, retries={max_retries})")
    return OpenAI(api_key=api_key, base_url=base_url, timeout=timeout, max_retries=max_retries)


def generate_commit_message(client, messages, model):
    """
    Ask the model for a commit message.

    Args:
        client (OpenAI): Client from create_client
        messages (list): Chat messages from prompts.build_messages
        model (str): Model name, e.g. "gpt-4"

    Returns:
        str: The commit message with surrounding whitespace removed

    Raises:
        APIError: If the request fails or the response holds no message
    """
    logger.debug(f"Requesting commit message from model {model}")

    try:
        response = client.chat.completions.create(model=model, messages=messages)
    except openai.APIStatusError as e:
        raise APIError(
            f"Failed to generate commit message. API response status: {e.status_code}",
            status_code=e.status_code,
            body=e.response.text,
        )
    except openai.APIConnectionError as e:
        raise APIError(f"Error sending request to OpenAI API: {e}")
    except openai.APIError as e:
        raise APIError(f"Failed to generate commit message. Invalid API response: {e}")

    if not response.choices:
        raise APIError("Failed to generate commit message. API response contained no choices")

    content = response.choices[0].message.content
    if not content or not content.strip():
        raise APIError("Failed to generate commit message. API response was empty")

    return content.strip()
