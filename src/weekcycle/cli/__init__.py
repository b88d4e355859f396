"""Command-line host: bootstrap, slash commands, entrypoint."""
