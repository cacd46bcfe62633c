"""Entry point for python -m specmock."""

from specmock.cli import main

if __name__ == "__main__":
    main()
