# Entry point: the factory builds one token core per process
wsgi_app = "tokenauth:create_app()"

# Bind & workers
bind = "0.0.0.0:8000"
workers = 2  # override with env GUNICORN_WORKERS
threads = 4
timeout = 60
graceful_timeout = 30
keepalive = 5

# Build the app (and an ephemeral signing key, if no PEM files are configured)
# in the master so every worker signs with the same key
preload_app = True

# Logs to stdout/stderr
accesslog = "-"
errorlog = "-"
loglevel = "info"  # override with env LOG_LEVEL

# Trust proxy headers; the throttle keys on the forwarded client address
forwarded_allow_ips = "*"
proxy_protocol = False
