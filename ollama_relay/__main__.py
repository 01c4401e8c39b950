#!/usr/bin/env python3
"""Ollama relay - unified entry point.

- No arguments or flags → serve the relay
- serve [flags]        → serve the relay
- chat [URL]           → terminal chat against a running relay
"""

import sys


def main():
    """Main entry point."""
    args = sys.argv[1:]

    if args and args[0] == "chat":
        from .cli import chat_main
        chat_main(args[1:])
        return

    if args and args[0] == "serve":
        args = args[1:]

    from .cli import main as cli_main
    cli_main(args)


if __name__ == "__main__":
    main()
