"""Module entry point: python -m navigation.tracker ..."""

from navigation.tracker.main import main


if __name__ == "__main__":
    raise SystemExit(main())
