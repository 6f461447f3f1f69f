"""
commit-gpt - generate Git commit messages from working tree changes using OpenAI.
"""

__version__ = "0.1.0"
