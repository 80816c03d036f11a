"""
wsgi.py — Server entry point for production.

Usage:
  uvicorn wsgi:application --host 0.0.0.0 --port 3002
  gunicorn -k uvicorn.workers.UvicornWorker wsgi:application

The module name stays stable however the server is launched, and app.py can
still be run directly during development (`python app.py`).
"""

import os

from app import app as application  # noqa: F401  (servers look for 'application')

if __name__ == '__main__':
    import uvicorn
    uvicorn.run(application, host='0.0.0.0', port=int(os.getenv('PORT', '3002')))
