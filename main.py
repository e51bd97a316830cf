#!/usr/bin/env python3
"""CLI for rendering prompt documents."""

from prompt_tree.cli import main

if __name__ == "__main__":
    main()
