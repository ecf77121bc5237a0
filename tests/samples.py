"""Hand-written artifacts as they look on a host set up by following the usual guide."""

SERVICE_UNIT = """\
[Unit]
Description=gunicorn daemon
Requires=myrepo.socket
After=network.target

[Service]
User=ubuntu
Group=www-data
WorkingDirectory=/home/ubuntu/myrepo
ExecStart=/home/ubuntu/myrepo/venv/bin/gunicorn \\
          --access-logfile - \\
          --workers 3 \\
          --bind unix:/run/myrepo.sock \\
          myproj.wsgi:application

[Install]
WantedBy=multi-user.target
"""

SOCKET_UNIT = """\
[Unit]
Description=gunicorn socket

[Socket]
ListenStream=/run/myrepo.sock

[Install]
WantedBy=sockets.target
"""

SITE = """\
server {
    listen 80;
    server_name example.com www.example.com;

    location = /favicon.ico { access_log off; log_not_found off; }
    location /static/ {
        root /home/ubuntu/myrepo;
    }

    location / {
        include proxy_params;
        proxy_pass http://unix:/run/myrepo.sock;
    }
}
"""

SETTINGS = """\
from pathlib import Path

BASE_DIR = Path(__file__).resolve().parent.parent
DEBUG = False
ALLOWED_HOSTS = ["example.com", "www.example.com"]
STATIC_URL = "/static/"
STATIC_ROOT = BASE_DIR / "static"
"""

REQUIREMENTS = """\
asgiref==3.7.2
Django==4.2.7
gunicorn==21.2.0
sqlparse==0.4.4
"""
