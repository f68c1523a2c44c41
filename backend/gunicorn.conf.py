# Serve with: gunicorn -c gunicorn.conf.py "wallet_auth.factory:create_app()"
import os

# Bind & workers
bind = os.getenv("GUNICORN_BIND", "0.0.0.0:8000")
workers = int(os.getenv("GUNICORN_WORKERS", "2"))
threads = 1
# Legacy provider calls are bounded by LEGACY_PROVIDER_TIMEOUT_SECONDS
timeout = 30
graceful_timeout = 30
keepalive = 5

# Logs to stdout/stderr
accesslog = "-"
errorlog = "-"
loglevel = os.getenv("LOG_LEVEL", "info").lower()

# Client IPs recorded on refresh credentials come from X-Forwarded-For
forwarded_allow_ips = os.getenv("FORWARDED_ALLOW_IPS", "127.0.0.1")
proxy_protocol = False
