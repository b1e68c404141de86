#!/usr/bin/env python3
"""
Triangle Logic Tutor Server
===========================

Serves the step tutor API. The UI (graph editor, step panels) lives
elsewhere and talks to the /tutor/* routes.

Usage:
    python tutor_server.py

Then the API is available at http://localhost:8080/tutor/...
"""

import os

from flask import Flask, jsonify

app = Flask(__name__)

# Register tutor Blueprint (all /tutor/* routes)
from trainer_routes import trainer_bp
app.register_blueprint(trainer_bp, url_prefix='/tutor')


@app.route('/')
def index():
    return jsonify({'service': 'triangle-logic-tutor', 'status': 'ok'})


if __name__ == '__main__':
    port = int(os.environ.get('PORT', 8080))
    print(f"Starting tutor server on http://localhost:{port}")
    app.run(debug=True, port=port)
