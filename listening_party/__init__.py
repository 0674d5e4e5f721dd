"""In-memory listening-party session server (Flask + Flask-SocketIO)."""

__version__ = "1.0.0"
