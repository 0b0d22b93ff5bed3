"""Command-line interface: ``cronspine crontab|db|serve``."""
