"""Command line tools for Busana."""
