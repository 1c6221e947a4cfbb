import os

# Bind & workers
bind = os.getenv("GUNICORN_BIND", "0.0.0.0:8000")
# In-memory rate-limit windows are per worker; use RATE_LIMIT_BACKEND=redis
# when running more than one
workers = int(os.getenv("GUNICORN_WORKERS", "2"))
threads = int(os.getenv("GUNICORN_THREADS", "1"))
timeout = 30
graceful_timeout = 30
keepalive = 5

wsgi_app = "wsgi:app"

# JSON app logs go to stdout; gunicorn's own logs alongside
accesslog = "-"
errorlog = "-"
loglevel = os.getenv("LOG_LEVEL", "info").lower()

# Client IPs feed the rate limiter: only trust the front proxy
forwarded_allow_ips = os.getenv("FORWARDED_ALLOW_IPS", "127.0.0.1")
