"""
soakrunner: timed soak tests with Prometheus ceilings and docker compose stands.
"""

__version__ = "0.1.0"
