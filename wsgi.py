"""WSGI entry point for the CRM API (e.g. ``gunicorn wsgi:app``)."""
import sys
import traceback

try:
    from app import app
    print(f"CRM API loaded, storing records under {app.config['STORE'].root}", flush=True)
except Exception as e:
    print(f"FATAL IMPORT ERROR: {e}", flush=True)
    traceback.print_exc()
    sys.exit(1)
