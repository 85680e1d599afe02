"""
Gunicorn configuration for the Project Matching API.

Run with: gunicorn app.main:app -c gunicorn.conf.py
"""
import os

# Server socket
bind = f"{os.getenv('HOST', '0.0.0.0')}:{os.getenv('PORT', '8000')}"
backlog = 2048

# Worker processes
workers = int(os.getenv("GUNICORN_WORKERS", 2))
worker_class = "uvicorn.workers.UvicornWorker"

# Worker lifecycle
max_requests = 1000
max_requests_jitter = 100

# Timeouts
timeout = 30
keepalive = 5
graceful_timeout = 30

# Process naming
proc_name = "project_matching_api"

# Logging
accesslog = "-"
errorlog = "-"
loglevel = os.getenv("LOG_LEVEL", "info").lower()


def on_starting(server):
    """Called just before the master process is initialized."""
    server.log.info("Starting Project Matching API")


def worker_abort(worker):
    """Called when a worker is aborted (usually a request timeout)."""
    worker.log.info("Worker received SIGABRT signal")
