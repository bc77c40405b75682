"""
gptt - A tool for generating GPT prompts for coding projects.

This package resolves source files from glob patterns (merged from the
command line and an optional ``.gpt.json``), filters them through the
project's ``.gitignore``, and assembles their contents around a user
request so the whole thing can be pasted into a language model.
"""

__version__ = "0.1.0"
__author__ = "gptt Team"
