#!/usr/bin/env python3
"""
Setup configuration for commit-gpt
"""

from setuptools import setup, find_packages
import os

# Read the README file for long description
def read_readme():
    try:
        readme_path = os.path.join(os.path.dirname(__file__), "README.md")
        with open(readme_path, "r", encoding="utf-8") as fh:
            return fh.read()
    except (FileNotFoundError, UnicodeDecodeError):
        return "A tool to generate Git commit messages using OpenAI"

setup(
    name="commit-gpt",
    version="0.1.0",
    author="Julius Koskela",
    description="A tool to generate Git commit messages using OpenAI",
    long_description=read_readme(),
    long_description_content_type="text/markdown",
    license="MIT",
    packages=find_packages(exclude=["tests", "tests.*"]),
    include_package_data=True,
    install_requires=[
        "openai>=1.0.0",
        "gitpython>=3.1.30",
        "click>=8.2.0",
        "python-dotenv>=1.0.0",
        "loguru>=0.7.0",
    ],
    extras_require={
        "test": [
            "pytest>=7.0",
            "httpx>=0.23.0",
        ],
    },
    python_requires=">=3.8",
    classifiers=[
        "Development Status :: 4 - Beta",
        "Intended Audience :: Developers",
        "Topic :: Software Development :: Version Control :: Git",
        "License :: OSI Approved :: MIT License",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.8",
        "Programming Language :: Python :: 3.9",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
        "Operating System :: OS Independent",
    ],
    keywords="git, commit, ai, openai, gpt, developer-tools, cli",
    entry_points={
        "console_scripts": [
            "commit-gpt=commitgpt.main:cli",
        ],
    },
)
