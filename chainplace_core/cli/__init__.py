"""Command line interface for Chainplace."""
