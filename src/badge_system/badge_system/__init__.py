"""Badge System package.

This package is organized by feature modules (badges, sessions, requests,
reports, ...) with a thin Flask controller layer and service/repository layers.
"""
