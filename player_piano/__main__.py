"""Entry point wrapper for ``python -m player_piano``.

Forwards to :func:`player_piano.cli.main` so ``python -m player_piano`` and
the installed ``player-piano`` console script behave identically.
"""

from .cli import main

if __name__ == "__main__":
    main()
