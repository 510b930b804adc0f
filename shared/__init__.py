"""Proxy server: configuration, session handling, routes and shared models."""
