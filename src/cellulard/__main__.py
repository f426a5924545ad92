"""Entry point for ``python -m cellulard``."""

from cellulard.cli import main

if __name__ == "__main__":
    main()
