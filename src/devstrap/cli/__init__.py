"""
devstrap CLI package.

The entry point lives in devstrap.cli.main; display and logging helpers are
importable on their own so the setup components can use them.
"""
