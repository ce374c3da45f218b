"""
Read-only status endpoint for a running rush
"""
import logging
import threading

from flask import Flask, jsonify

from .status_board import StatusBoard


def create_app(board: StatusBoard) -> Flask:
    app = Flask(__name__)

    @app.route('/api/status')
    def api_status():
        """Every task plus summary counts"""
        return jsonify(board.snapshot())

    @app.route('/api/status/<item_id>')
    def api_item_status(item_id):
        entry = board.get_item(item_id)
        if entry is None:
            return jsonify({'error': f'unknown item {item_id}'}), 404
        return jsonify(entry)

    return app


def start_dashboard(board: StatusBoard, host: str = '127.0.0.1', port: int = 5000) -> threading.Thread:
    """Serve the status app from a daemon thread"""
    app = create_app(board)
    thread = threading.Thread(
        target=app.run,
        kwargs={'host': host, 'port': port, 'debug': False, 'use_reloader': False},
        name='dashboard',
        daemon=True,
    )
    thread.start()
    logging.getLogger(__name__).info(f"Status dashboard at http://{host}:{port}/api/status")
    return thread
