"""Health check endpoint."""

from http.server import BaseHTTPRequestHandler
import json

from pitchdesk.utils.config import validate_config
from pitchdesk.utils.errors import ConfigurationError


class handler(BaseHTTPRequestHandler):
    """Health check handler for Vercel serverless function."""

    def do_GET(self):
        """Handle GET request."""
        try:
            validate_config()
            config_status = "ok"
        except ConfigurationError:
            config_status = "incomplete"

        self.send_response(200)
        self.send_header('Content-Type', 'application/json')
        self.end_headers()
        response = json.dumps({"status": "ok", "service": "pitchdesk-backend", "config": config_status})
        self.wfile.write(response.encode('utf-8'))

    def do_POST(self):
        """Handle POST request (same as GET for health check)."""
        self.do_GET()
