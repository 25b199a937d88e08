"""Entry point for `python -m lumina`."""

from lumina.cli import cli


def main() -> None:
    cli()


if __name__ == "__main__":
    main()
