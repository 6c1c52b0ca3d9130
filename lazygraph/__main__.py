"""Module entrypoint for ``python -m lazygraph``."""

from .cli import main


if __name__ == "__main__":
    main()
