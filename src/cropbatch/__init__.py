"""cropbatch package entrypoint."""

from cropbatch.cli.app import main as _cli_main


def main() -> None:
    """Run the cropbatch CLI."""
    _cli_main()
