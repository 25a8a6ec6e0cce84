"""Command line tools for photoselect."""
