"""tabrecall - save browser tab sessions and find them again with AI summaries."""

__version__ = "0.1.0"

def main() -> None:
    """Run the CLI entry point with lazy import."""
    from tabrecall.cli.main import main as cli_main

    cli_main()

__all__ = ["main", "__version__"]
