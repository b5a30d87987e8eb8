"""Gauge and counter metrics: types, in-memory storage, services, push client, WSGI middlewares and agent loop."""

__version__ = "0.1.0"