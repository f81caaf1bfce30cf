"""
Gunicorn Configuration for AutoCare
Production WSGI server settings
"""
import os

# Server Socket
bind = os.environ.get('GUNICORN_BIND', '127.0.0.1:8000')
backlog = 2048

# Worker Processes
# The cron scheduler runs inside the app process; more than one worker would
# fire every job once per worker.
workers = 1
threads = int(os.environ.get('GUNICORN_THREADS', '4'))
worker_class = 'gthread'
max_requests = 1000
max_requests_jitter = 50
timeout = 60
keepalive = 5

# Logging
accesslog = os.environ.get('GUNICORN_ACCESS_LOG', '/home/autocare/app/logs/gunicorn_access.log')
errorlog = os.environ.get('GUNICORN_ERROR_LOG', '/home/autocare/app/logs/gunicorn_error.log')
loglevel = 'info'
access_log_format = '%(h)s %(l)s %(u)s %(t)s "%(r)s" %(s)s %(b)s "%(f)s" "%(a)s" %(D)s'

# Process Naming
proc_name = 'autocare'

# Server Mechanics
daemon = False
pidfile = '/home/autocare/app/gunicorn.pid'
umask = 0o007

# Security
limit_request_line = 4094
limit_request_fields = 100
limit_request_field_size = 8190


def post_fork(server, worker):
    """Called after a worker has been forked"""
    server.log.info("Worker spawned (pid: %s)", worker.pid)


def when_ready(server):
    """Called when the server is ready"""
    server.log.info("Server is ready. Spawning workers")


def worker_abort(worker):
    """Called when a worker fails to boot or times out"""
    worker.log.info("worker received SIGABRT signal")
