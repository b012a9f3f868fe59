# path: wsgi.py
"""
wsgi.py
"""
from __future__ import annotations

import atexit
import logging

from panel import create_app, get_runner

logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")

app = create_app()
atexit.register(get_runner(app).stop)

if __name__ == "__main__":
    # Lokal dev: waitress om installert, ellers Flask dev-server.
    try:
        from waitress import serve
        serve(app, listen="0.0.0.0:5000", threads=8)
    except ImportError:
        app.run(host="0.0.0.0", port=5000, debug=False, threaded=True)
