"""Use-case services (symlink engine, infrastructure, installers) and their ports."""
