import os

bind = f"0.0.0.0:{os.getenv('PORT', '8080')}"
workers = int(os.getenv("WEB_CONCURRENCY", "2"))
threads = 4          # each request blocks on outbound icon fetches
timeout = 60
graceful_timeout = 30
keepalive = 5
preload_app = True
wsgi_app = "app:app"
