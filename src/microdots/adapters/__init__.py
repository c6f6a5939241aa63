"""Concrete adapters for the filesystem, the environment, and dotfiles.conf."""
