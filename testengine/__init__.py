"""Process execution engine for test runners."""
