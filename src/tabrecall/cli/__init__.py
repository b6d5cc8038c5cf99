"""CLI package for tabrecall."""


def main() -> None:
    """Run the CLI entry point with lazy import."""
    from tabrecall.cli.main import main as cli_main

    cli_main()


__all__ = ["main"]
