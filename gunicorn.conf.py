"""
Gunicorn configuration for the funnel dashboard.

    gunicorn run:app
"""
import os

bind = f"0.0.0.0:{os.getenv('PORT', '8080')}"

# Requests are independent and read-only; plain sync workers are enough
workers = int(os.getenv('GUNICORN_WORKERS', '2'))
worker_class = 'sync'
timeout = 60
keepalive = 5

# Logging
accesslog = '-'  # stdout
errorlog = '-'   # stderr
loglevel = os.getenv('LOG_LEVEL', 'info')
capture_output = True

proc_name = 'funnel-dashboard'

preload_app = True

graceful_timeout = 30


def on_starting(server):
    print("[Gunicorn] Starting funnel dashboard...")


def on_exit(server):
    print("[Gunicorn] Funnel dashboard shutting down...")
