"""Gunicorn configuration.

The admin token cache and the bulk import guard live in process memory, so
the service runs as a single worker with a single thread: two workers would
each hold their own token and could run two imports at once.
"""
import os

bind = os.environ.get("GUNICORN_BIND", "0.0.0.0:5000")
workers = 1
threads = 1
# Bulk imports are sequential HTTP round-trips; leave them time to finish
timeout = int(os.environ.get("GUNICORN_TIMEOUT", "300"))
accesslog = "-"
errorlog = "-"
loglevel = os.environ.get("LOG_LEVEL", "info").lower()


def post_fork(server, worker):
    """Log the effective mode once the worker is up."""
    demo_mode = os.environ.get("DEMO_MODE", "false").lower() == "true"
    if demo_mode:
        worker.log.warning("DEMO_MODE=true: default Keycloak admin credentials may be in use")
    if os.environ.get("API_AUTH_ENABLED", str(not demo_mode)).lower() != "true":
        worker.log.warning("API_AUTH_ENABLED=false: /users/bulk-create is unauthenticated")
    worker.log.info(f"Worker {worker.pid} serving realm={os.environ.get('KEYCLOAK_REALM', 'demo')}")
