"""Module entrypoint for ``python -m family_events`` CLI usage."""

from family_events.cli import app as cli_app


def main() -> None:
    cli_app()


if __name__ == "__main__":
    main()
