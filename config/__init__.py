"""Top-level package for Django configuration.

Contains settings modules for different environments and the WSGI entry
point.
"""
