"""Entry point for the fluffls server."""

from fluffls.cli import main

if __name__ == "__main__":
    main()
