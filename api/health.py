"""Health check endpoint."""

from http.server import BaseHTTPRequestHandler
import json
import os

from src.services.coordinate_resolver import GAZETTEER
from src.utils.config import EngineConfig


def health_payload() -> dict:
    """Liveness plus the configuration the engine depends on."""
    return {
        "status": "ok",
        "service": "garagesale-backend",
        "checks": {
            "catalog_configured": bool(
                os.environ.get("SUPABASE_URL") and os.environ.get("SUPABASE_SERVICE_ROLE_KEY")
            ),
            "geocoder_country": EngineConfig.GEOCODER_COUNTRY,
            "gazetteer_entries": len(GAZETTEER),
        },
    }


class handler(BaseHTTPRequestHandler):
    """Health check handler for Vercel serverless function."""

    def do_GET(self):
        body = json.dumps(health_payload()).encode('utf-8')
        self.send_response(200)
        self.send_header('Content-Type', 'application/json')
        self.send_header('Content-Length', str(len(body)))
        self.end_headers()
        self.wfile.write(body)

    def do_POST(self):
        """Same as GET."""
        self.do_GET()
