"""
Prompt construction for commit-gpt.
"""

SYSTEM_PROMPT = (
    "You are a helpful assistant that writes clear and concise Git commit "
    "messages in the imperative mood, without any speculation."
)

USER_PROMPT_TEMPLATE = """\
Write a Git commit message with a short title and a detailed body, using the imperative mood. Do not include any speculation or guesses. Be concise and precise. Use bullet points in the body to list changes.

Changes:
{structured_changes}
"""


def format_changes_for_prompt(changes, max_summaries=None):
    """
    Render file changes as a markdown list for the prompt.

    Each file becomes "- **path**: Type" followed by its indented summaries.
    When max_summaries is set, summary lines beyond the budget are dropped
    and a final line reports how many were left out, together with any
    lines the changes themselves already left out.

    Args:
        changes (list): FileChange objects
        max_summaries (int): Optional budget of summary lines, None or 0 for unlimited

    Returns:
        str: The formatted changes
    """
    lines = []
    remaining = max_summaries if max_summaries else None
    omitted = 0

    for change in changes:
        lines.append(f"- **{change.file_path}**: {change.change_type}\n")
        omitted += change.omitted

        for summary in change.summaries:
            if remaining is not None:
                if remaining <= 0:
                    omitted += 1
                    continue
                remaining -= 1
            lines.append(f"  - {summary}\n")

    if omitted:
        lines.append(f"- ... ({omitted} more changes omitted)\n")

    return "".join(lines)


def build_user_prompt(structured_changes, context=None):
    """Fill the user prompt template, appending any extra context."""
    prompt = USER_PROMPT_TEMPLATE.replace("{structured_changes}", structured_changes)
    if context and context.strip():
        prompt += f"\nAdditional context:\n{context.strip()}\n"
    return prompt


def build_messages(structured_changes, context=None):
    """
    Build the chat messages sent to the model.

    Args:
        structured_changes (str): Output of format_changes_for_prompt
        context (str): Optional extra context from the user

    Returns:
        list: System and user messages as role/content dicts
    """
    return [
        {"role": "system", "content": SYSTEM_PROMPT},
        {"role": "user", "content": build_user_prompt(structured_changes, context)},
    ]
