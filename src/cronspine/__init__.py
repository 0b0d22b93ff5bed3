"""
cronspine - periodic jobs for web apps without a cron daemon.

Incoming HTTP requests check whether any scheduled job is due and, if so,
run it after the response has been sent.

- cronspine.core: errors, logging, settings, storage connections, events
- cronspine.scheduling: crontab loading, due selection, claiming, running
- cronspine.ops: management operations shared by the API and the CLI
- cronspine.api: FastAPI app and the deferred-execution middleware
- cronspine.cli: ``cronspine`` command line
"""

__version__ = "0.1.0"
