"""Package entry point for ``python -m tubescribe``.

Delegates to the CLI, which offers ``serve``, ``transcribe`` and
``youtube`` subcommands.
"""

from tubescribe.cli import main

if __name__ == "__main__":
    main()
